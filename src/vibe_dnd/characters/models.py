"""
Character records owned by users.
"""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

MAX_LEVEL = 20


class CharacterDraft(BaseModel):
    """The editable part of a character, as submitted by the builder form.

    Reference fields hold catalog keys; an empty string means "not chosen".
    """
    model_config = ConfigDict(populate_by_name=True)

    name: str = Field(min_length=1, max_length=100)
    race: str = ""
    character_class: str = Field(default="", alias="class")
    subclass: str = ""
    background: str = ""
    level: int = Field(default=1, ge=1, le=MAX_LEVEL)

    def to_row(self) -> dict[str, Any]:
        """Column values for the characters table; unset choices become NULL."""
        return {
            "name": self.name,
            "race": self.race or None,
            "class": self.character_class or None,
            "subclass": self.subclass or None,
            "background": self.background or None,
            "level": self.level,
        }


class Character(BaseModel):
    """A stored character row."""
    model_config = ConfigDict(populate_by_name=True)

    id: str
    user_id: str
    name: str
    race: str | None = None
    character_class: str | None = Field(default=None, alias="class")
    subclass: str | None = None
    background: str | None = None
    level: int = 1
    created_at: datetime | None = None

    @field_validator("id", "user_id", mode="before")
    @classmethod
    def coerce_identifier(cls, v: Any) -> Any:
        """Integer and UUID primary keys are both carried as strings."""
        if v is None:
            return v
        return str(v)

    def to_draft(self) -> CharacterDraft:
        return CharacterDraft(
            name=self.name,
            race=self.race or "",
            character_class=self.character_class or "",
            subclass=self.subclass or "",
            background=self.background or "",
            level=self.level,
        )
