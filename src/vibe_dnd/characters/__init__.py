"""
User character records and their storage.
"""

from .models import Character, CharacterDraft, MAX_LEVEL
from .store import CharacterStore, StoreError

__all__ = ["Character", "CharacterDraft", "MAX_LEVEL", "CharacterStore", "StoreError"]
