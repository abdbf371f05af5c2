"""Mapping between Character and the external "Long Story Short" sheet format."""

from __future__ import annotations

import json
from datetime import datetime, timezone
from typing import Any

from dnd_sheet.errors import ExportError
from dnd_sheet.models.bundle import EXTERNAL_JSON_TYPE, ExternalCharacter
from dnd_sheet.models.character import (
    ABILITIES,
    SKILLS,
    Character,
    ClassResource,
    ability_modifier_for_score,
)
from dnd_sheet.transfer.export import encode_document

# internal skill key -> external skill key
EXTERNAL_SKILL_NAMES: dict[str, str] = {
    skill: skill.replace("_", " ") for skill in SKILLS
}

# internal coin field -> external coin key
EXTERNAL_COINS: dict[str, str] = {
    "copper": "cp",
    "silver": "sp",
    "electrum": "ep",
    "gold": "gp",
    "platinum": "pp",
}

ABILITY_LABELS: dict[str, str] = {
    "str": "Strength",
    "dex": "Dexterity",
    "con": "Constitution",
    "int": "Intelligence",
    "wis": "Wisdom",
    "cha": "Charisma",
}

# external text block -> character attribute
EXTERNAL_TEXT_FIELDS: dict[str, str] = {
    "traits": "personality_traits",
    "personality": "personality_traits",
    "ideals": "ideals",
    "bonds": "bonds",
    "flaws": "flaws",
    "features": "features",
    "attacks": "class_abilities",
    "equipment": "equipment",
}

SUB_INFO_KEYS = ("age", "height", "weight", "eyes", "skin", "hair")

DISABLED_BLOCKS: dict[str, Any] = {
    "info-left": [],
    "info-right": [],
    "subinfo-left": [],
    "subinfo-right": [],
    "notes-left": [],
    "notes-right": [],
    "_id": "",
}


def _value(value: Any) -> dict[str, Any]:
    return {"value": value}


def _text_block(text: str) -> dict[str, Any]:
    paragraphs = [line for line in text.splitlines() if line.strip()]
    return {
        "value": {
            "data": {
                "type": "doc",
                "content": [
                    {
                        "type": "paragraph",
                        "content": [{"type": "text", "text": line}],
                    }
                    for line in paragraphs
                ],
            }
        },
        "size": len(text),
    }


def extract_text(node: Any) -> str:
    """Flatten a rich-text document into plain text, one line per paragraph."""
    if isinstance(node, list):
        parts = [extract_text(child) for child in node]
        return "\n".join(part for part in parts if part)
    if not isinstance(node, dict):
        return ""
    if isinstance(node.get("text"), str):
        return node["text"]
    content = node.get("content")
    if isinstance(content, list):
        if node.get("type") == "paragraph":
            return "".join(extract_text(child) for child in content)
        return extract_text(content)
    return ""


def _skill_level(character: Character, skill: str) -> int:
    if character.skill_expertise.get(skill):
        return 2
    if character.skills.get(skill):
        return 1
    return 0


def build_external_data(character: Character) -> dict[str, Any]:
    """Build the inner sheet document of the external format."""
    stats = {}
    saves = {}
    for attribute, short in ABILITIES.items():
        score = getattr(character, attribute)
        stats[short] = {
            "name": short,
            "score": score,
            "modifier": ability_modifier_for_score(score),
            "label": ABILITY_LABELS[short],
        }
        saves[short] = {
            "name": short,
            "isProf": bool(character.saving_throws.get(attribute)),
        }

    skills = {}
    for skill, external_name in EXTERNAL_SKILL_NAMES.items():
        skills[external_name] = {
            "baseStat": ABILITIES[SKILLS[skill]],
            "name": external_name,
            "isProf": _skill_level(character, skill),
        }

    text: dict[str, Any] = {}
    for block, attribute in EXTERNAL_TEXT_FIELDS.items():
        value = getattr(character, attribute)
        if isinstance(value, list):
            value = "\n".join(value)
        text[block] = _text_block(value)

    resources = {
        key: {
            "id": key,
            "name": resource.name,
            "current": resource.current,
            "max": resource.max,
            "location": "inside",
            "isLongRest": True,
            "icon": "",
            "isShortRest": False,
        }
        for key, resource in character.class_resources.items()
    }

    return {
        "isDefault": False,
        "jsonType": EXTERNAL_JSON_TYPE,
        "template": "default",
        "name": _value(character.name),
        "info": {
            "charClass": _value(character.character_class),
            "charSubclass": _value(character.subclass or ""),
            "level": _value(character.level),
            "background": _value(character.background),
            "playerName": _value(""),
            "race": _value(character.race),
            "alignment": _value(character.alignment),
            "experience": _value(""),
        },
        "subInfo": {key: _value("") for key in SUB_INFO_KEYS},
        "spellsInfo": {
            "base": _value(""),
            "save": _value(""),
            "mod": _value(""),
        },
        "spells": {},
        "spellsPact": {},
        "proficiency": character.proficiency_bonus,
        "stats": stats,
        "saves": saves,
        "skills": skills,
        "vitality": {
            "hp-dice-current": _value(character.level),
            "hp-dice-multi": {},
            "speed": _value(str(character.speed)),
            "hp-max": _value(character.max_hit_points),
            "hp-current": _value(character.hit_points),
            "hp-temp": _value(character.temporary_hit_points),
            "ac": _value(character.armor_class),
            "isDying": character.hit_points == 0,
        },
        "attunementsList": [],
        "weaponsList": [],
        "weapons": {},
        "text": text,
        "coins": {
            short: _value(getattr(character, coin))
            for coin, short in EXTERNAL_COINS.items()
        },
        "resources": resources,
        "bonusesSkills": {},
        "bonusesStats": {},
        "conditions": [],
        "createdAt": character.created_at.isoformat(),
    }


def export_external(character: Character) -> str:
    """Serialize the character in the external nested format.

    Unlike the basic and extended exports there is no retry: any encoding
    failure raises ExportError.
    """
    try:
        data = json.dumps(build_external_data(character), ensure_ascii=False)
    except (TypeError, ValueError) as exc:
        raise ExportError(f"Could not encode external sheet data: {exc}") from exc
    envelope = ExternalCharacter(data=data, disabledBlocks=dict(DISABLED_BLOCKS))
    return encode_document(envelope)


def _int_value(block: Any, default: int | None = None) -> int:
    value = block.get("value") if isinstance(block, dict) else block
    try:
        return int(value)
    except (TypeError, ValueError):
        if default is None:
            raise ValueError(f"Expected an integer, got {value!r}") from None
        return default


def _str_value(block: Any) -> str:
    if isinstance(block, dict):
        block = block.get("value")
    return "" if block is None else str(block)


def _mapping(value: Any) -> dict[str, Any]:
    # optional blocks of the wrong shape are treated as absent
    return value if isinstance(value, dict) else {}


def character_from_external_data(data: dict[str, Any]) -> Character:
    """Build a Character from the inner sheet document.

    Raises KeyError/TypeError/ValueError when the document lacks the
    identity, info or stats blocks.
    """
    info = data["info"]
    stats = data["stats"]
    fields: dict[str, Any] = {
        "name": _str_value(data["name"]),
        "race": _str_value(info["race"]),
        "character_class": _str_value(info["charClass"]),
        "background": _str_value(info["background"]),
        "alignment": _str_value(info["alignment"]),
        "level": _int_value(info["level"]),
    }
    subclass = _str_value(info.get("charSubclass"))
    if subclass:
        fields["subclass"] = subclass

    for attribute, short in ABILITIES.items():
        fields[attribute] = int(stats[short]["score"])

    saves = _mapping(data.get("saves"))
    fields["saving_throws"] = {
        attribute: bool(_mapping(saves.get(short)).get("isProf"))
        for attribute, short in ABILITIES.items()
    }

    skills = _mapping(data.get("skills"))
    proficient: dict[str, bool] = {}
    expertise: dict[str, bool] = {}
    for skill, external_name in EXTERNAL_SKILL_NAMES.items():
        level = _mapping(skills.get(external_name)).get("isProf") or 0
        proficient[skill] = int(level) >= 1
        expertise[skill] = int(level) >= 2
    fields["skills"] = proficient
    fields["skill_expertise"] = expertise

    vitality = _mapping(data.get("vitality"))
    if "proficiency" in data:
        fields["proficiency_bonus"] = _int_value(data["proficiency"], 2)
    max_hp = _int_value(vitality.get("hp-max"), 10)
    fields["max_hit_points"] = max_hp
    fields["hit_points"] = _int_value(vitality.get("hp-current"), max_hp)
    fields["temporary_hit_points"] = _int_value(vitality.get("hp-temp"), 0)
    fields["armor_class"] = _int_value(vitality.get("ac"), 10)
    fields["speed"] = _int_value(vitality.get("speed"), 30)

    coins = _mapping(data.get("coins"))
    for coin, short in EXTERNAL_COINS.items():
        fields[coin] = _int_value(coins.get(short), 0)

    text = _mapping(data.get("text"))
    for block, attribute in EXTERNAL_TEXT_FIELDS.items():
        if attribute in fields or block not in text:
            continue
        value = extract_text(_mapping(_mapping(text[block]).get("value")).get("data"))
        if attribute == "equipment":
            fields[attribute] = [line for line in value.splitlines() if line.strip()]
        else:
            fields[attribute] = value

    resources = {}
    for key, resource in _mapping(data.get("resources")).items():
        if not isinstance(resource, dict) or "name" not in resource:
            continue
        resources[str(key)] = ClassResource(
            name=str(resource["name"]),
            current=_int_value(resource.get("current"), 0),
            max=_int_value(resource.get("max"), 0),
        )
    fields["class_resources"] = resources

    return Character.model_validate(fields)


def parse_external(text: str) -> Character:
    """Parse an external-format document into a Character."""
    envelope = ExternalCharacter.model_validate_json(text)
    if envelope.jsonType != EXTERNAL_JSON_TYPE:
        raise ValueError(f"Unsupported jsonType: {envelope.jsonType}")
    data = json.loads(envelope.data)
    if not isinstance(data, dict):
        raise ValueError("External sheet data is not an object")
    return character_from_external_data(data)
