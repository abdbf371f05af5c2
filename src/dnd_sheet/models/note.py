"""Journal note model."""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from pydantic import ConfigDict, model_validator
from sqlmodel import Field, SQLModel

from dnd_sheet.models.character import new_id, write_field


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class NoteCategory(str, Enum):
    ALL = "all"
    CAMPAIGN = "campaign"
    CHARACTERS = "characters"
    LOCATIONS = "locations"
    QUESTS = "quests"
    LORE = "lore"
    ITEMS = "items"


# category -> optional fields that only make sense for it
CATEGORY_FIELDS: dict[NoteCategory, tuple[str, ...]] = {
    NoteCategory.CHARACTERS: ("race", "occupation", "organization", "age", "appearance"),
    NoteCategory.LOCATIONS: ("location_type", "population", "government", "climate"),
    NoteCategory.ITEMS: ("item_type", "rarity", "value"),
    NoteCategory.QUESTS: ("quest_type", "status", "reward"),
    NoteCategory.LORE: ("lore_type", "era"),
}


class Note(SQLModel):
    """A free-form journal entry owned by a character."""

    model_config = ConfigDict(validate_assignment=True)

    id: str = Field(default_factory=new_id)
    title: str
    description: str = ""
    importance: int = 3
    category: NoteCategory = NoteCategory.ALL
    is_alive: bool = True
    character_id: Optional[str] = None

    race: Optional[str] = None
    occupation: Optional[str] = None
    organization: Optional[str] = None
    age: Optional[str] = None
    appearance: Optional[str] = None

    location_type: Optional[str] = None
    population: Optional[str] = None
    government: Optional[str] = None
    climate: Optional[str] = None

    item_type: Optional[str] = None
    rarity: Optional[str] = None
    value: Optional[str] = None

    quest_type: Optional[str] = None
    status: Optional[str] = None
    reward: Optional[str] = None

    lore_type: Optional[str] = None
    era: Optional[str] = None

    created_at: datetime = Field(default_factory=_utc_now)
    updated_at: datetime = Field(default_factory=_utc_now)

    @model_validator(mode="after")
    def _clamp_importance(self) -> "Note":
        write_field(self, "importance", max(1, min(5, self.importance)))
        return self

    def category_details(self) -> dict[str, str]:
        """Return the populated optional fields for this note's category."""
        fields = CATEGORY_FIELDS.get(self.category, ())
        return {
            field: getattr(self, field)
            for field in fields
            if getattr(self, field)
        }

    def touch(self) -> None:
        self.updated_at = _utc_now()

    def duplicate(self) -> "Note":
        now = _utc_now()
        return self.model_copy(
            update={
                "id": new_id(),
                "title": f"{self.title} (copy)",
                "created_at": now,
                "updated_at": now,
            }
        )
