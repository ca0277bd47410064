"""
Reference data for vibe-dnd.

This module provides:
- Data models for D&D 5e reference content (races, classes, subclasses,
  backgrounds, spells)
- Pure normalization of Open5e v2 payloads
- Open5eClient, the read-only catalog client
- ResponseCache, an optional TTL cache for catalog responses
"""

from .models import (
    EntityRef,
    NamedDescription,
    RaceDefinition,
    ClassDefinition,
    SubclassDefinition,
    BackgroundDefinition,
    SpellDefinition,
)
from .cache import ResponseCache
from .open5e import Open5eClient, UpstreamError, NotFound

__all__ = [
    "EntityRef",
    "NamedDescription",
    "RaceDefinition",
    "ClassDefinition",
    "SubclassDefinition",
    "BackgroundDefinition",
    "SpellDefinition",
    "ResponseCache",
    "Open5eClient",
    "UpstreamError",
    "NotFound",
]
