"""
vibe-dnd - build and keep D&D 5e characters, backed by the Open5e catalog and Supabase.
"""

from .config import AppConfig, ConfigError
from .server import WebApp, create_app

try:
    from importlib.metadata import version as _get_version
    __version__ = _get_version("vibe-dnd")
except Exception:
    __version__ = "0.1.0"  # Fallback if metadata unavailable
__all__ = ["AppConfig", "ConfigError", "WebApp", "create_app"]
