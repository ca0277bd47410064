"""
Normalization of Open5e v2 payloads into reference models.

Every function here is pure: it only reads the payload it is given, never
mutates it, and returns the same result for the same input. The selection
helpers keep upstream order.
"""

from __future__ import annotations

import re
from typing import Any, Iterable

from .models import (
    BackgroundDefinition,
    ClassDefinition,
    EntityRef,
    NamedDescription,
    RaceDefinition,
    SpellDefinition,
    SubclassDefinition,
)

_DIE_COUNT = re.compile(r"^\d+")


# =========================================================================
# Field helpers
# =========================================================================

def _text(value: Any) -> str:
    if value is None:
        return ""
    return str(value)


def _ref(data: Any) -> EntityRef | None:
    """Map a ``{key, name, url}`` reference object. Bare strings are keys."""
    if not data:
        return None
    if isinstance(data, str):
        return EntityRef(key=data)
    key = data.get("key")
    if not key:
        return None
    return EntityRef(key=key, name=_text(data.get("name")))


def _named_blocks(items: Any) -> list[NamedDescription]:
    blocks = []
    for item in items or []:
        if isinstance(item, str):
            blocks.append(NamedDescription(name=item))
        elif item.get("name"):
            blocks.append(NamedDescription(name=item["name"], desc=_text(item.get("desc"))))
    return blocks


def _names(items: Any) -> list[str]:
    names = []
    for item in items or []:
        name = item if isinstance(item, str) else item.get("name")
        if name:
            names.append(name)
    return names


def normalize_hit_die(raw: Any) -> str:
    """Normalize hit die notation: ``"D8"``, ``"1d8"`` and ``"d8"`` all become ``"d8"``."""
    return _DIE_COUNT.sub("", _text(raw).strip().lower())


# =========================================================================
# Entity mapping
# =========================================================================

def map_race(data: dict) -> RaceDefinition:
    """Map an Open5e species record to RaceDefinition."""
    return RaceDefinition(
        key=data["key"],
        name=data["name"],
        desc=_text(data.get("desc")),
        is_subspecies=bool(data.get("is_subspecies", False)),
        subspecies_of=_ref(data.get("subspecies_of")),
        traits=_named_blocks(data.get("traits")),
    )


def map_class(data: dict) -> ClassDefinition:
    """Map an Open5e class record to ClassDefinition. Subclasses keep their parent reference."""
    return ClassDefinition(
        key=data["key"],
        name=data["name"],
        desc=_text(data.get("desc")),
        hit_die=normalize_hit_die(data.get("hit_dice")),
        saving_throws=_names(data.get("saving_throws")),
        subclass_of=_ref(data.get("subclass_of")),
    )


def map_subclass(data: dict) -> SubclassDefinition:
    """Map an Open5e class record that has a parent class to SubclassDefinition.

    Raises:
        ValueError: If the record has no parent class reference
    """
    parent = _ref(data.get("subclass_of"))
    if parent is None:
        raise ValueError(f"'{data.get('key')}' is not a subclass")
    return SubclassDefinition(
        key=data["key"],
        name=data["name"],
        desc=_text(data.get("desc")),
        parent=parent,
    )


def map_background(data: dict) -> BackgroundDefinition:
    """Map an Open5e background record to BackgroundDefinition."""
    return BackgroundDefinition(
        key=data["key"],
        name=data["name"],
        desc=_text(data.get("desc")),
        benefits=_named_blocks(data.get("benefits")),
    )


def map_spell(data: dict) -> SpellDefinition:
    """Map an Open5e spell record to SpellDefinition."""
    school = data.get("school")
    if isinstance(school, dict):
        school = school.get("name")

    classes = []
    for entry in data.get("classes") or []:
        ref = _ref(entry)
        if ref is not None:
            classes.append(ref)

    return SpellDefinition(
        key=data["key"],
        name=data["name"],
        desc=_text(data.get("desc")),
        level=int(data.get("level") or 0),
        school=_text(school),
        casting_time=_text(data.get("casting_time")),
        range=_text(data.get("range_text", data.get("range"))),
        duration=_text(data.get("duration")),
        concentration=bool(data.get("concentration", False)),
        classes=classes,
    )


# =========================================================================
# Selection
# =========================================================================

def select_base_races(records: Iterable[dict]) -> list[RaceDefinition]:
    """Keep only records that are not subspecies, in upstream order."""
    return [map_race(r) for r in records if not r.get("is_subspecies")]


def select_top_level_classes(records: Iterable[dict]) -> list[ClassDefinition]:
    """Keep only class records without a parent class."""
    return [map_class(r) for r in records if _ref(r.get("subclass_of")) is None]


def select_subclasses(records: Iterable[dict], parent_key: str | None = None) -> list[SubclassDefinition]:
    """Project the subclass view of a class collection.

    Args:
        records: Raw class records from the upstream collection
        parent_key: Only keep subclasses of this class. ``None`` keeps all.
    """
    subclasses = []
    for record in records:
        parent = _ref(record.get("subclass_of"))
        if parent is None:
            continue
        if parent_key is not None and parent.key != parent_key:
            continue
        subclasses.append(map_subclass(record))
    return subclasses


def select_spells(records: Iterable[dict], class_key: str, level: int | None = None) -> list[SpellDefinition]:
    """Keep spells castable by ``class_key``; also filter by level when one is given (0 included)."""
    spells = []
    for record in records:
        spell = map_spell(record)
        if not spell.castable_by(class_key):
            continue
        if level is not None and spell.level != level:
            continue
        spells.append(spell)
    return spells
