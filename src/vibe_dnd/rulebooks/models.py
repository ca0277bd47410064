"""
Reference data models for D&D 5e rules content.

These are the local shapes the Open5e catalog is normalized into. They are
read-only views of external records and are never persisted.
"""

from pydantic import BaseModel, ConfigDict, Field


class ReferenceModel(BaseModel):
    """Base for immutable reference records."""
    model_config = ConfigDict(frozen=True)


class EntityRef(ReferenceModel):
    """Pointer to another catalog record (parent race, parent class, casting class)."""
    key: str
    name: str = ""


class NamedDescription(ReferenceModel):
    """A named block of rules text: a racial trait or a background benefit."""
    name: str
    desc: str = ""


class RaceDefinition(ReferenceModel):
    """A playable species.

    Subspecies share the collection with their parent race and point back
    to it through ``subspecies_of``.
    """
    key: str
    name: str
    desc: str = ""
    is_subspecies: bool = False
    subspecies_of: EntityRef | None = None
    traits: list[NamedDescription] = Field(default_factory=list)


class ClassDefinition(ReferenceModel):
    """A character class, or a subclass when ``subclass_of`` is set."""
    key: str
    name: str
    desc: str = ""
    hit_die: str = Field(default="", description="Hit die notation, e.g. 'd8'")
    saving_throws: list[str] = Field(default_factory=list)
    subclass_of: EntityRef | None = None

    @property
    def is_subclass(self) -> bool:
        return self.subclass_of is not None


class SubclassDefinition(ReferenceModel):
    """A class archetype. Always tied to exactly one parent class."""
    key: str
    name: str
    desc: str = ""
    parent: EntityRef


class BackgroundDefinition(ReferenceModel):
    """A character background and the benefits it grants."""
    key: str
    name: str
    desc: str = ""
    benefits: list[NamedDescription] = Field(default_factory=list)


class SpellDefinition(ReferenceModel):
    """A spell and the classes whose spell lists include it."""
    key: str
    name: str
    desc: str = ""
    level: int = Field(default=0, ge=0, le=9, description="Spell level, 0 for cantrips")
    school: str = ""
    casting_time: str = ""
    range: str = ""
    duration: str = ""
    concentration: bool = False
    classes: list[EntityRef] = Field(default_factory=list)

    @property
    def is_cantrip(self) -> bool:
        return self.level == 0

    def castable_by(self, class_key: str) -> bool:
        return any(ref.key == class_key for ref in self.classes)
