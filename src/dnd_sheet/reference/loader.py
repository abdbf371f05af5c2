"""Readers and normalizers for bundled reference assets."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Callable

from dnd_sheet.errors import AssetDecodeError, AssetNotFoundError
from dnd_sheet.logging_config import get_logger
from dnd_sheet.models.reference import slugify

logger = get_logger(__name__)

SPELLS_FILE = "spells.json"
FEATS_FILE = "feats.json"
BACKGROUNDS_FILE = "backgrounds.json"
MAGIC_ITEMS_FILE = "items.json"
BESTIARY_FILE = "bestiary_5e.ndjson"
QUOTES_FILE = "quotes.json"

# model field -> accepted asset keys (English first, then the Russian asset keys)
SPELL_KEYS: dict[str, tuple[str, ...]] = {
    "name": ("name", "Название"),
    "casting_time": ("casting_time", "Время сотворения"),
    "level": ("level", "Уровень"),
    "range": ("range", "Дистанция"),
    "components": ("components", "Компоненты"),
    "duration": ("duration", "Длительность"),
    "classes": ("classes", "Классы"),
    "subclasses": ("subclasses", "Подклассы"),
    "ritual": ("ritual", "Ритуал"),
    "school": ("school", "Школа"),
    "concentration": ("concentration", "Концентрация"),
    "description": ("description", "Описание"),
    "upgrades": ("upgrades", "Улучшения"),
}

FEAT_KEYS: dict[str, tuple[str, ...]] = {
    "name": ("name", "Название"),
    "category": ("category", "Категория"),
    "requirements": ("requirements", "Требования"),
    "ability_increase": ("ability_increase", "Повышение характеристики"),
    "description": ("description", "Описание"),
}

BACKGROUND_KEYS: dict[str, tuple[str, ...]] = {
    "name": ("name", "Название"),
    "abilities": ("abilities", "Характеристики"),
    "feat": ("feat", "Черта"),
    "skills": ("skills", "Навыки"),
    "tools": ("tools", "Инструменты"),
    "equipment": ("equipment", "Снаряжение"),
    "description": ("description", "Описание"),
}

BOOLEAN_FIELDS = {"ritual", "concentration"}


def _read_json(path: Path) -> Any:
    if not path.exists():
        raise AssetNotFoundError(path.name)
    try:
        return json.loads(path.read_text(encoding="utf-8"))
    except (OSError, UnicodeDecodeError, json.JSONDecodeError) as exc:
        raise AssetDecodeError(f"Invalid JSON in {path.name}: {exc}") from exc


def read_json_array(path: Path) -> list[dict[str, Any]]:
    """Read a JSON array of objects from ``path``."""
    payload = _read_json(path)
    if not isinstance(payload, list):
        raise AssetDecodeError(f"Expected a JSON array in {path.name}")
    return [entry for entry in payload if isinstance(entry, dict)]


def read_json_object(path: Path) -> dict[str, Any]:
    """Read a single JSON object from ``path``."""
    payload = _read_json(path)
    if not isinstance(payload, dict):
        raise AssetDecodeError(f"Expected a JSON object in {path.name}")
    return payload


def read_ndjson(path: Path) -> tuple[list[dict[str, Any]], int]:
    """Read newline-delimited JSON objects, returning (entries, error_count)."""
    if not path.exists():
        raise AssetNotFoundError(path.name)
    try:
        lines = path.read_text(encoding="utf-8").splitlines()
    except (OSError, UnicodeDecodeError) as exc:
        raise AssetDecodeError(f"Cannot read {path.name}: {exc}") from exc

    entries: list[dict[str, Any]] = []
    errors = 0
    for line_number, line in enumerate(lines, start=1):
        if not line.strip():
            continue
        try:
            entry = json.loads(line)
        except json.JSONDecodeError:
            errors += 1
            if errors <= 5:
                logger.warning("ndjson_line_invalid", file=path.name, line=line_number)
            continue
        if not isinstance(entry, dict):
            errors += 1
            continue
        entries.append(entry)
    return entries, errors


def _pick(payload: dict[str, Any], keys: tuple[str, ...]) -> Any:
    for key in keys:
        if key in payload:
            return payload[key]
    return None


def _as_bool(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in {"true", "yes", "1", "да"}
    return bool(value)


def _map_fields(
    payload: dict[str, Any], key_map: dict[str, tuple[str, ...]]
) -> dict[str, Any]:
    data: dict[str, Any] = {}
    for field, keys in key_map.items():
        value = _pick(payload, keys)
        if value is None:
            continue
        if field in BOOLEAN_FIELDS:
            data[field] = _as_bool(value)
        else:
            data[field] = str(value)
    name = data.get("name")
    if not name:
        raise ValueError("Reference record without a name")
    data["key"] = str(payload.get("key") or slugify(name))
    return data


def normalize_spell(payload: dict[str, Any]) -> dict[str, Any]:
    return _map_fields(payload, SPELL_KEYS)


def normalize_feat(payload: dict[str, Any]) -> dict[str, Any]:
    return _map_fields(payload, FEAT_KEYS)


def normalize_background(payload: dict[str, Any]) -> dict[str, Any]:
    return _map_fields(payload, BACKGROUND_KEYS)


def _nested(payload: dict[str, Any], outer: str, inner: str) -> Any:
    value = payload.get(outer)
    if isinstance(value, dict):
        return value.get(inner)
    return value


def _block(payload: dict[str, Any], name: str) -> dict[str, Any]:
    value = payload.get(name)
    return value if isinstance(value, dict) else {}


def _optional_text(value: Any) -> str | None:
    if value is None or value == "":
        return None
    if isinstance(value, (list, tuple)):
        return ", ".join(str(entry) for entry in value)
    return str(value)


def normalize_monster(payload: dict[str, Any]) -> dict[str, Any]:
    """Flatten a bestiary entry (nested ac/hp/abilities blocks)."""
    name = payload.get("name")
    if not isinstance(name, str) or not name.strip():
        raise ValueError("Monster without a name")

    abilities = _block(payload, "abilities")
    scores: dict[str, int] = {}
    for short, field in (
        ("str", "strength"),
        ("dex", "dexterity"),
        ("con", "constitution"),
        ("int", "intelligence"),
        ("wis", "wisdom"),
        ("cha", "charisma"),
    ):
        score = _nested(abilities, short, "score")
        scores[field] = int(score) if score is not None else 10

    skills = _block(payload, "skills")

    raw_actions = _block(payload, "blocks").get("actions")
    actions = []
    for action in raw_actions if isinstance(raw_actions, list) else []:
        if not isinstance(action, dict) or not action.get("name"):
            continue
        actions.append(
            {
                "name": action["name"],
                "desc": action.get("text") or action.get("desc") or "",
                "attack_bonus": action.get("attack_bonus"),
                "damage_dice": action.get("damage_dice"),
                "damage_bonus": action.get("damage_bonus"),
            }
        )

    armor_class = _nested(payload, "ac", "ac")
    hit_points = _nested(payload, "hp", "hp")
    challenge = _nested(payload, "challenge", "cr")
    xp = _nested(payload, "challenge", "xp")
    speed = _nested(payload, "speed", "walk")
    hp_block = payload.get("hp")
    hit_dice = hp_block.get("formula") if isinstance(hp_block, dict) else None

    return {
        "key": str(payload.get("key") or slugify(name)),
        "name": name,
        "size": payload.get("size") or "",
        "monster_type": payload.get("type") or "",
        "alignment": payload.get("alignment") or "",
        "armor_class": int(armor_class) if armor_class is not None else 10,
        "hit_points": int(hit_points) if hit_points is not None else 1,
        "hit_dice": hit_dice,
        "speed": str(speed) if speed is not None else "",
        **scores,
        "skills": {str(key): str(value) for key, value in skills.items()},
        "damage_resistances": _optional_text(payload.get("damage_resistances")),
        "damage_immunities": _optional_text(payload.get("damage_immunities")),
        "condition_immunities": _optional_text(payload.get("condition_immunities")),
        "senses": _optional_text(payload.get("senses")),
        "languages": _optional_text(payload.get("languages")),
        "challenge_rating": str(challenge) if challenge is not None else "0",
        "xp": int(xp) if xp is not None else None,
        "actions": actions,
    }


def normalize_magic_item(payload: dict[str, Any]) -> dict[str, Any]:
    key = payload.get("id") or payload.get("key")
    if not key:
        raise ValueError("Magic item without an id")
    return {
        "key": str(key),
        "names": payload.get("names") or [],
        "rarity": payload.get("rarity") or "",
        "item_type": payload.get("type") or payload.get("item_type") or "",
        "descriptions": payload.get("descriptions") or [],
        "properties": payload.get("properties") or [],
        "tables": payload.get("tables") or [],
        "url": payload.get("url"),
    }


def normalize_entries(
    entries: list[dict[str, Any]],
    normalize: Callable[[dict[str, Any]], dict[str, Any]],
) -> tuple[list[dict[str, Any]], int]:
    """Normalize raw entries, skipping malformed ones; returns (rows, error_count)."""
    rows: list[dict[str, Any]] = []
    errors = 0
    for entry in entries:
        try:
            rows.append(normalize(entry))
        except (KeyError, TypeError, ValueError):
            errors += 1
    return rows, errors
