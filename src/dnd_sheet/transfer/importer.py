"""Character import: an ordered chain of parse strategies."""

from __future__ import annotations

import json
from datetime import datetime, timezone
from typing import Any, Callable, NamedTuple

from dnd_sheet.errors import ImportFormatError
from dnd_sheet.logging_config import get_logger
from dnd_sheet.models.bundle import ExtendedCharacterExport
from dnd_sheet.models.character import ABILITIES, SKILLS, Character, new_id
from dnd_sheet.models.note import Note
from dnd_sheet.models.reference import Monster, Spell
from dnd_sheet.models.relationship import Relationship
from dnd_sheet.transfer.external import parse_external

logger = get_logger(__name__)

FORMAT_EXTERNAL = "external"
FORMAT_EXTENDED = "extended"
FORMAT_BASIC = "basic"
FORMAT_MANUAL = "manual"


class ImportResult(NamedTuple):
    character: Character
    relationships: list[Relationship]
    notes: list[Note]
    spells: list[Spell]
    monsters: list[Monster]
    format: str


Parser = Callable[[str], ImportResult]


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _parse_external(text: str) -> ImportResult:
    return ImportResult(parse_external(text), [], [], [], [], FORMAT_EXTERNAL)


def _parse_extended(text: str) -> ImportResult:
    bundle = ExtendedCharacterExport.model_validate_json(text)
    return ImportResult(
        bundle.character,
        list(bundle.relationships),
        list(bundle.notes),
        list(bundle.favorite_spells),
        list(bundle.favorite_monsters),
        FORMAT_EXTENDED,
    )


def _parse_basic(text: str) -> ImportResult:
    return ImportResult(Character.model_validate_json(text), [], [], [], [], FORMAT_BASIC)


# field -> keys accepted by the manual extraction, in lookup order
REQUIRED_KEYS: dict[str, tuple[str, ...]] = {
    "name": ("name", "character_name", "characterName"),
    "race": ("race", "species"),
    "character_class": (
        "character_class",
        "characterClass",
        "class",
        "charClass",
        "class_name",
    ),
    "background": ("background",),
    "alignment": ("alignment",),
}

OPTIONAL_INT_KEYS: dict[str, tuple[str, ...]] = {
    "level": ("level",),
    "armor_class": ("armor_class", "armorClass", "ac"),
    "initiative": ("initiative",),
    "speed": ("speed",),
    "max_hit_points": ("max_hit_points", "maxHitPoints", "hp_max", "hpMax"),
    "hit_points": ("hit_points", "hitPoints", "hp", "current_hit_points"),
    "temporary_hit_points": ("temporary_hit_points", "temporaryHitPoints", "temp_hp"),
    "proficiency_bonus": ("proficiency_bonus", "proficiencyBonus", "proficiency"),
    "copper": ("copper", "cp"),
    "silver": ("silver", "sp"),
    "electrum": ("electrum", "ep"),
    "gold": ("gold", "gp"),
    "platinum": ("platinum", "pp"),
}

OPTIONAL_TEXT_KEYS: dict[str, tuple[str, ...]] = {
    "subclass": ("subclass", "charSubclass"),
    "personality_traits": ("personality_traits", "personalityTraits", "personality", "traits"),
    "ideals": ("ideals",),
    "bonds": ("bonds",),
    "flaws": ("flaws",),
    "features": ("features",),
    "class_abilities": ("class_abilities", "classAbilities"),
}

LIST_KEYS: dict[str, tuple[str, ...]] = {
    "equipment": ("equipment",),
    "treasures": ("treasures", "treasure"),
}


def _unwrap(value: Any) -> Any:
    if isinstance(value, dict) and "value" in value:
        return value["value"]
    return value


def _lookup(document: dict[str, Any], keys: tuple[str, ...]) -> Any:
    for key in keys:
        if key in document and document[key] is not None:
            return _unwrap(document[key])
    return None


def _coerce_int(value: Any) -> int | None:
    if isinstance(value, bool):
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def _ability_scores(document: dict[str, Any]) -> dict[str, int]:
    scores: dict[str, int] = {}
    containers = [document]
    for nested in ("abilities", "ability_scores", "stats"):
        if isinstance(document.get(nested), dict):
            containers.append(document[nested])
    for attribute, short in ABILITIES.items():
        for container in containers:
            raw = _lookup(container, (attribute, short, attribute.capitalize()))
            if isinstance(raw, dict):
                raw = raw.get("score")
            score = _coerce_int(raw)
            if score is not None:
                scores[attribute] = score
                break
    return scores


def _proficiency_flags(value: Any, known: dict[str, Any]) -> dict[str, bool]:
    if isinstance(value, dict):
        return {key: bool(_unwrap(flag)) for key, flag in value.items() if key in known}
    if isinstance(value, list):
        return {str(key): True for key in value if str(key) in known}
    return {}


def extract_character_fields(document: dict[str, Any]) -> dict[str, Any]:
    """Pull character fields out of a loosely shaped key/value document.

    Raises ValueError when any of name, race, class, background or alignment
    is missing or empty.
    """
    fields: dict[str, Any] = {}
    for field, keys in REQUIRED_KEYS.items():
        value = _lookup(document, keys)
        if not isinstance(value, str) or not value.strip():
            raise ValueError(f"Missing required field: {field}")
        fields[field] = value.strip()

    for field, keys in OPTIONAL_INT_KEYS.items():
        value = _coerce_int(_lookup(document, keys))
        if value is not None:
            fields[field] = value

    for field, keys in OPTIONAL_TEXT_KEYS.items():
        value = _lookup(document, keys)
        if isinstance(value, str):
            fields[field] = value

    for field, keys in LIST_KEYS.items():
        value = _lookup(document, keys)
        if isinstance(value, list):
            fields[field] = [str(entry) for entry in value]
        elif isinstance(value, str) and value.strip():
            fields[field] = [line for line in value.splitlines() if line.strip()]

    fields.update(_ability_scores(document))
    if "hit_points" in fields and "max_hit_points" not in fields:
        fields["max_hit_points"] = fields["hit_points"]

    skills = _proficiency_flags(document.get("skills"), SKILLS)
    if skills:
        fields["skills"] = skills
    saves = _proficiency_flags(
        document.get("saving_throws") or document.get("savingThrows"), ABILITIES
    )
    if saves:
        fields["saving_throws"] = saves
    return fields


def _parse_manual(text: str) -> ImportResult:
    document = json.loads(text)
    if not isinstance(document, dict):
        raise ValueError("Document is not a JSON object")
    character = Character.model_validate(extract_character_fields(document))
    return ImportResult(character, [], [], [], [], FORMAT_MANUAL)


# Tried in order; the first parser that succeeds wins.
IMPORT_STRATEGIES: list[tuple[str, Parser]] = [
    (FORMAT_EXTERNAL, _parse_external),
    (FORMAT_EXTENDED, _parse_extended),
    (FORMAT_BASIC, _parse_basic),
    (FORMAT_MANUAL, _parse_manual),
]


def _try_parse(parser: Parser, text: str) -> tuple[ImportResult | None, str | None]:
    try:
        return parser(text), None
    except (KeyError, TypeError, ValueError) as exc:
        return None, f"{type(exc).__name__}: {exc}"


def reidentify(result: ImportResult) -> ImportResult:
    """Give imported records fresh identities owned by a new character id."""
    now = _utc_now()
    character = result.character.model_copy(
        update={"id": new_id(), "created_at": now, "updated_at": now}
    )
    relationships = [
        relationship.model_copy(
            update={"id": new_id(), "character_id": character.id}
        )
        for relationship in result.relationships
    ]
    notes = [
        note.model_copy(update={"id": new_id(), "character_id": character.id})
        for note in result.notes
    ]
    return result._replace(
        character=character, relationships=relationships, notes=notes
    )


def import_any(
    text: str, strategies: list[tuple[str, Parser]] | None = None
) -> ImportResult:
    """Parse a character document in any supported dialect.

    Strategies run in priority order (external, extended, basic, manual).
    Raises ImportFormatError, carrying each strategy's failure, when none
    of them accepts the document.
    """
    attempts: dict[str, str] = {}
    for name, parser in strategies or IMPORT_STRATEGIES:
        result, error = _try_parse(parser, text)
        if result is not None:
            logger.info(
                "character_document_parsed",
                format=name,
                relationships=len(result.relationships),
                notes=len(result.notes),
            )
            return reidentify(result)
        attempts[name] = error or "unknown error"
    logger.warning("character_document_rejected", attempts=list(attempts))
    raise ImportFormatError(attempts)
