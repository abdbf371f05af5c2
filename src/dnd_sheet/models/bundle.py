"""Document shapes used for character import/export."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

from sqlmodel import Field, SQLModel

from dnd_sheet.models.character import Character
from dnd_sheet.models.note import Note
from dnd_sheet.models.reference import Monster, Spell
from dnd_sheet.models.relationship import Relationship

EXTENDED_EXPORT_VERSION = "1.0"
EXTERNAL_JSON_TYPE = "character"
EXTERNAL_VERSION = "2"
EXTERNAL_EDITION = "2024"


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class ExtendedCharacterExport(SQLModel):
    """A character bundled with the records that belong to it."""

    version: str = EXTENDED_EXPORT_VERSION
    export_date: datetime = Field(default_factory=_utc_now)
    character: Character
    relationships: list[Relationship] = Field(default_factory=list)
    notes: list[Note] = Field(default_factory=list)
    favorite_spells: list[Spell] = Field(default_factory=list)
    favorite_monsters: list[Monster] = Field(default_factory=list)


class ExternalSpells(SQLModel):
    mode: str = "cards"
    prepared: list[str] = Field(default_factory=list)
    book: list[str] = Field(default_factory=list)


class ExternalCharacter(SQLModel):
    """Envelope of the external character-sheet format.

    Key names follow the third-party schema. ``data`` holds the sheet itself
    as a JSON-encoded string.
    """

    tags: list[str] = Field(default_factory=list)
    disabledBlocks: dict[str, Any] = Field(default_factory=dict)
    edition: str = EXTERNAL_EDITION
    spells: ExternalSpells = Field(default_factory=ExternalSpells)
    data: str
    jsonType: str = EXTERNAL_JSON_TYPE
    version: str = EXTERNAL_VERSION
