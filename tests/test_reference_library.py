from __future__ import annotations

import json
from pathlib import Path
import sys

import pytest

sys.path.append(str(Path(__file__).resolve().parents[1] / "src"))

from dnd_sheet.errors import AssetDecodeError, AssetNotFoundError
from dnd_sheet.models.reference import MagicItem, Monster
from dnd_sheet.reference.cache import FileCache
from dnd_sheet.reference.library import ReferenceLibrary
from dnd_sheet.reference.loader import (
    normalize_magic_item,
    normalize_monster,
    normalize_spell,
    read_json_array,
    read_ndjson,
)

GOBLIN = {
    "name": "Goblin",
    "size": "Small",
    "type": "humanoid",
    "alignment": "neutral evil",
    "ac": {"ac": 15, "from": ["leather armor", "shield"]},
    "hp": {"hp": 7, "formula": "2d6"},
    "speed": {"walk": 30},
    "abilities": {
        "str": {"score": 8},
        "dex": {"score": 14},
        "con": {"score": 10},
        "int": {"score": 10},
        "wis": {"score": 8},
        "cha": {"score": 8},
    },
    "skills": {"stealth": "+6"},
    "senses": ["darkvision 60 ft."],
    "challenge": {"cr": "1/4", "xp": 50},
    "blocks": {
        "actions": [
            {"name": "Scimitar", "text": "Melee Weapon Attack: +4 to hit."},
            {"text": "nameless"},
        ]
    },
}


def _write_assets(data_dir: Path) -> None:
    data_dir.mkdir(parents=True, exist_ok=True)
    spells = [
        {
            "Название": "Огненный снаряд",
            "Уровень": "Заговор",
            "Школа": "Воплощение",
            "Ритуал": "Нет",
            "Концентрация": "да",
        },
        {"name": "Fire Bolt", "level": "0", "school": "Evocation", "ritual": False},
        {"name": "Shield", "level": "1", "school": "Abjuration"},
        {"level": "2"},
    ]
    (data_dir / "spells.json").write_text(
        json.dumps(spells, ensure_ascii=False), encoding="utf-8"
    )
    (data_dir / "feats.json").write_text(
        json.dumps([{"name": "Alert", "category": "Origin"}]), encoding="utf-8"
    )
    (data_dir / "backgrounds.json").write_text("{not json", encoding="utf-8")
    owlbear = {**GOBLIN, "name": "Owlbear", "challenge": {"cr": "3", "xp": 700}}
    lines = [json.dumps(owlbear), "garbage line", "", json.dumps(GOBLIN)]
    (data_dir / "bestiary_5e.ndjson").write_text("\n".join(lines), encoding="utf-8")


def test_normalize_spell_accepts_russian_keys() -> None:
    spell = normalize_spell({"Название": "Щит", "Уровень": "1", "Ритуал": "да"})

    assert spell["name"] == "Щит"
    assert spell["level"] == "1"
    assert spell["ritual"] is True
    assert spell["key"] == "щит"


def test_normalize_monster_flattens_nested_blocks() -> None:
    monster = Monster.model_validate(normalize_monster(GOBLIN))

    assert monster.key == "goblin"
    assert monster.armor_class == 15
    assert monster.hit_points == 7
    assert monster.hit_dice == "2d6"
    assert monster.speed == "30"
    assert monster.dexterity == 14
    assert monster.challenge_rating == "1/4"
    assert monster.xp == 50
    assert monster.senses == "darkvision 60 ft."
    assert [action.name for action in monster.actions] == ["Scimitar"]
    assert monster.size_type_alignment == "Small, humanoid, neutral evil"
    assert monster.proficiency_bonus == 2
    assert monster.passive_perception == 9


def test_normalize_monster_ignores_misshapen_blocks() -> None:
    row = normalize_monster(
        {"name": "Kobold", "blocks": [{"x": 1}], "abilities": ["str"], "skills": "none"}
    )

    monster = Monster.model_validate(row)
    assert monster.actions == []
    assert monster.strength == 10
    assert monster.skills == {}


def test_monster_passive_perception_prefers_skill_bonus() -> None:
    monster = Monster(key="scout", name="Scout", wisdom=12, skills={"Perception": "+5"})

    assert monster.passive_perception == 15
    assert Monster(key="lich", name="Lich", challenge_rating="21").proficiency_bonus == 7


def test_magic_item_derived_fields() -> None:
    item = MagicItem.model_validate(
        normalize_magic_item(
            {
                "id": "cloak-of-elvenkind",
                "names": [{"name_ru": "", "name_en": "Cloak of Elvenkind"}],
                "rarity": "uncommon",
                "type": "wondrous",
                "properties": ["Wondrous item (cloak), uncommon (requires attunement)"],
            }
        )
    )

    assert item.key == "cloak-of-elvenkind"
    assert item.display_name == "Cloak of Elvenkind"
    assert item.extracted_type == "Wondrous item"
    assert item.extracted_rarity == "uncommon"

    bare = MagicItem(key="x", item_type="ring", rarity="rare", properties=["x" * 150])
    assert bare.display_name == "Unknown item"
    assert bare.extracted_type == "ring"
    assert bare.extracted_rarity == "rare"


def test_readers_raise_for_missing_or_broken_files(tmp_path: Path) -> None:
    with pytest.raises(AssetNotFoundError):
        read_json_array(tmp_path / "missing.json")

    broken = tmp_path / "broken.json"
    broken.write_text("[1, 2", encoding="utf-8")
    with pytest.raises(AssetDecodeError):
        read_json_array(broken)

    ndjson = tmp_path / "lines.ndjson"
    ndjson.write_text('{"name": "a"}\nnope\n[1]\n{"name": "b"}\n', encoding="utf-8")
    entries, errors = read_ndjson(ndjson)
    assert [entry["name"] for entry in entries] == ["a", "b"]
    assert errors == 2


def test_library_load_tolerates_missing_and_broken_assets(tmp_path: Path) -> None:
    data_dir = tmp_path / "assets"
    _write_assets(data_dir)

    library = ReferenceLibrary(str(data_dir)).load()

    assert library.loaded
    assert library.counts() == {
        "spells": 3,
        "feats": 1,
        "backgrounds": 0,
        "monsters": 2,
        "magic_items": 0,
    }
    assert "backgrounds" in library.errors
    assert "magic_items" in library.errors
    assert library.skipped["spells.json"] == 1
    assert library.skipped["bestiary_5e.ndjson"] == 1
    assert [monster.name for monster in library.monsters] == ["Goblin", "Owlbear"]

    cantrip = library.find("spell", "огненный-снаряд")
    assert cantrip is not None
    assert cantrip.is_cantrip
    assert cantrip.concentration is True
    assert cantrip.ritual is False


def test_library_search(tmp_path: Path) -> None:
    data_dir = tmp_path / "assets"
    _write_assets(data_dir)
    library = ReferenceLibrary(str(data_dir)).load()

    assert [s.name for s in library.search_spells("fire")] == ["Fire Bolt"]
    assert [s.name for s in library.search_spells(level="1")] == ["Shield"]
    assert [s.name for s in library.search_spells(school="evocation")] == ["Fire Bolt"]
    assert [m.name for m in library.search_monsters("HUMANOID")] == ["Goblin", "Owlbear"]
    assert [m.key for m in library.find_many("monster", {"owlbear"})] == ["owlbear"]
    assert library.find("feat", "alert").category == "Origin"
    with pytest.raises(ValueError):
        library.find("vehicle", "cart")


def test_library_reads_through_cache(tmp_path: Path) -> None:
    data_dir = tmp_path / "assets"
    _write_assets(data_dir)
    cache = FileCache(str(tmp_path / "cache"))

    ReferenceLibrary(str(data_dir), cache=cache).load()
    assert cache.exists("spells_cache")

    (data_dir / "spells.json").write_text("[]", encoding="utf-8")
    library = ReferenceLibrary(str(data_dir), cache=FileCache(str(tmp_path / "cache")))
    library.load()

    assert len(library.spells) == 3


def test_bestiary_with_misshapen_lines_keeps_loading(tmp_path: Path) -> None:
    data_dir = tmp_path / "assets"
    data_dir.mkdir()
    lines = [
        json.dumps({"name": "Goblin", "blocks": [{"x": 1}]}),
        json.dumps({"name": "Kobold", "abilities": "strong", "hp": [7]}),
        json.dumps({"name": ["Imp"]}),
        json.dumps(GOBLIN | {"name": "Hobgoblin"}),
    ]
    (data_dir / "bestiary_5e.ndjson").write_text("\n".join(lines), encoding="utf-8")

    library = ReferenceLibrary(str(data_dir)).load()

    assert [monster.name for monster in library.monsters] == ["Goblin", "Hobgoblin"]
    assert library.skipped["bestiary_5e.ndjson"] == 2
    assert "monsters" not in library.errors


def test_unusable_cache_dir_falls_back_to_assets(tmp_path: Path) -> None:
    data_dir = tmp_path / "assets"
    _write_assets(data_dir)
    blocker = tmp_path / "blocker"
    blocker.write_text("not a directory", encoding="utf-8")

    library = ReferenceLibrary(str(data_dir), cache=FileCache(str(blocker / "cache")))
    library.load()

    assert library.loaded
    assert library.counts()["spells"] == 3
    assert library.counts()["monsters"] == 2
    assert "spells" not in library.errors
