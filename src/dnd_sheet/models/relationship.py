"""NPC relationship model."""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from pydantic import ConfigDict, model_validator
from sqlmodel import Field, SQLModel

from dnd_sheet.models.character import new_id, write_field

MIN_RELATIONSHIP_LEVEL = 0
MAX_RELATIONSHIP_LEVEL = 10
NEUTRAL_RELATIONSHIP_LEVEL = 5


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class RelationshipStatus(str, Enum):
    FRIEND = "friend"
    NEUTRAL = "neutral"
    ENEMY = "enemy"


class Relationship(SQLModel):
    """An NPC known to a character."""

    model_config = ConfigDict(validate_assignment=True)

    id: str = Field(default_factory=new_id)
    name: str
    description: str = ""
    relationship_level: int = NEUTRAL_RELATIONSHIP_LEVEL
    is_alive: bool = True
    organization: Optional[str] = None
    character_id: Optional[str] = None

    created_at: datetime = Field(default_factory=_utc_now)
    updated_at: datetime = Field(default_factory=_utc_now)

    @model_validator(mode="after")
    def _clamp_level(self) -> "Relationship":
        write_field(
            self,
            "relationship_level",
            max(MIN_RELATIONSHIP_LEVEL, min(MAX_RELATIONSHIP_LEVEL, self.relationship_level)),
        )
        return self

    @property
    def status(self) -> RelationshipStatus:
        if self.relationship_level >= 6:
            return RelationshipStatus.FRIEND
        if self.relationship_level <= 4:
            return RelationshipStatus.ENEMY
        return RelationshipStatus.NEUTRAL

    @property
    def is_friend(self) -> bool:
        return self.status is RelationshipStatus.FRIEND

    @property
    def is_enemy(self) -> bool:
        return self.status is RelationshipStatus.ENEMY

    def set_relationship_level(self, value: int) -> int:
        self.relationship_level = max(
            MIN_RELATIONSHIP_LEVEL, min(MAX_RELATIONSHIP_LEVEL, value)
        )
        return self.relationship_level

    def touch(self) -> None:
        self.updated_at = _utc_now()

    def duplicate(self) -> "Relationship":
        now = _utc_now()
        return self.model_copy(
            update={
                "id": new_id(),
                "name": f"{self.name} (copy)",
                "created_at": now,
                "updated_at": now,
            }
        )
