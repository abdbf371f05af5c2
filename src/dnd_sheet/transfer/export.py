"""Character export in the basic and extended JSON dialects."""

from __future__ import annotations

import base64
import binascii
import re
from pathlib import Path
from typing import Callable, Protocol

from pydantic_core import PydanticSerializationError
from sqlmodel import SQLModel

from dnd_sheet.errors import ExportError
from dnd_sheet.logging_config import get_logger
from dnd_sheet.models.bundle import ExtendedCharacterExport
from dnd_sheet.models.character import Character
from dnd_sheet.models.note import Note
from dnd_sheet.models.reference import Monster, Spell
from dnd_sheet.models.relationship import Relationship

logger = get_logger(__name__)


class RelatedRecords(Protocol):
    """Anything that can look up a character's related records by id."""

    def get_relationships(self, character_id: str | None) -> list[Relationship]: ...

    def get_notes(self, character_id: str | None) -> list[Note]: ...

    def favorite_spells(self, character_id: str) -> list[Spell]: ...

    def favorite_monsters(self, character_id: str) -> list[Monster]: ...


def encode_document(document: SQLModel) -> str:
    """Serialize a model to pretty-printed JSON, raising ExportError on failure."""
    try:
        return document.model_dump_json(indent=2)
    except (PydanticSerializationError, TypeError, ValueError) as exc:
        raise ExportError(f"Could not encode {type(document).__name__}: {exc}") from exc


def _check_avatar(character: Character) -> None:
    if character.avatar is None:
        return
    try:
        base64.b64decode(character.avatar, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise ExportError("Avatar payload is not valid base64") from exc


def _encode_with_avatar_fallback(
    character: Character, build: Callable[[Character], SQLModel]
) -> str:
    try:
        _check_avatar(character)
        return encode_document(build(character))
    except ExportError as exc:
        if character.avatar is None:
            raise
        logger.warning(
            "export_retry_without_avatar",
            character_id=character.id,
            error=str(exc),
        )
    stripped = character.model_copy(update={"avatar": None})
    return encode_document(build(stripped))


def export_basic(character: Character) -> str:
    """Serialize the character alone."""
    return _encode_with_avatar_fallback(character, lambda c: c)


def build_extended_export(
    character: Character, related: RelatedRecords
) -> ExtendedCharacterExport:
    return ExtendedCharacterExport(
        character=character,
        relationships=related.get_relationships(character.id),
        notes=related.get_notes(character.id),
        favorite_spells=related.favorite_spells(character.id),
        favorite_monsters=related.favorite_monsters(character.id),
    )


def export_extended(character: Character, related: RelatedRecords) -> str:
    """Serialize the character bundled with its relationships, notes and favorites."""
    bundle = build_extended_export(character, related)
    return _encode_with_avatar_fallback(
        character,
        lambda c: bundle.model_copy(update={"character": c}),
    )


def export_filename(character_name: str, suffix: str = "export") -> str:
    stem = re.sub(r"[^\w\- ]+", "", character_name).strip().replace(" ", "_")
    return f"{stem or 'character'}_{suffix}.json"


def write_export_file(
    payload: str, directory: str | Path, character_name: str, suffix: str = "export"
) -> Path:
    """Write an export payload to ``directory`` and return the file path."""
    target_dir = Path(directory)
    path = target_dir / export_filename(character_name, suffix)
    try:
        target_dir.mkdir(parents=True, exist_ok=True)
        path.write_text(payload, encoding="utf-8")
    except OSError as exc:
        raise ExportError(f"Cannot write {path}: {exc}") from exc
    return path
