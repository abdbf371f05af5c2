"""Data models for dnd_sheet."""

from dnd_sheet.models.bundle import (
    ExtendedCharacterExport,
    ExternalCharacter,
    ExternalSpells,
)
from dnd_sheet.models.character import (
    ABILITIES,
    SKILLS,
    Character,
    ClassEntry,
    ClassResource,
)
from dnd_sheet.models.note import Note, NoteCategory
from dnd_sheet.models.quote import Quote, QuotesData
from dnd_sheet.models.reference import (
    Background,
    Feat,
    MagicItem,
    Monster,
    MonsterAction,
    Spell,
)
from dnd_sheet.models.relationship import Relationship, RelationshipStatus
from dnd_sheet.models.storage import AppSetting, Favorite, StoredRecord

__all__ = [
    "ABILITIES",
    "SKILLS",
    "AppSetting",
    "Background",
    "Character",
    "ClassEntry",
    "ClassResource",
    "ExtendedCharacterExport",
    "ExternalCharacter",
    "ExternalSpells",
    "Favorite",
    "Feat",
    "MagicItem",
    "Monster",
    "MonsterAction",
    "Note",
    "NoteCategory",
    "Quote",
    "QuotesData",
    "Relationship",
    "RelationshipStatus",
    "Spell",
    "StoredRecord",
]
