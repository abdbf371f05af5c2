from __future__ import annotations

from pathlib import Path
import sys

import pytest

sys.path.append(str(Path(__file__).resolve().parents[1] / "src"))

from dnd_sheet.db.engine import get_engine
from dnd_sheet.errors import RecordNotFoundError
from dnd_sheet.models.character import Character
from dnd_sheet.models.note import Note, NoteCategory
from dnd_sheet.models.reference import Monster, Spell
from dnd_sheet.models.relationship import Relationship
from dnd_sheet.reference.library import ReferenceLibrary
from dnd_sheet.state.app_state import AppState


def _character(name: str = "Lia", **overrides) -> Character:
    fields = {
        "name": name,
        "race": "Elf",
        "character_class": "Wizard",
        "background": "Sage",
        "alignment": "Neutral Good",
    }
    fields.update(overrides)
    return Character.model_validate(fields)


def _state(tmp_path: Path) -> AppState:
    library = ReferenceLibrary(str(tmp_path / "assets"))
    library.spells = [Spell(key="fire-bolt", name="Fire Bolt", level="0")]
    library.monsters = [Monster(key="goblin", name="Goblin", challenge_rating="1/4")]
    return AppState(get_engine(str(tmp_path / "state.db")), library)


def test_character_crud(tmp_path: Path) -> None:
    state = _state(tmp_path)
    character = state.add_character(_character(level=3))

    loaded = state.get_character(character.id)
    assert loaded is not None
    assert loaded.name == "Lia"
    assert loaded.classes[0].name == "Wizard"
    assert loaded.classes[0].level == 3

    loaded.set_hit_points(4)
    loaded.name = "Lia the Wise"
    state.update_character(loaded)

    reloaded = state.get_character(character.id)
    assert reloaded.name == "Lia the Wise"
    assert reloaded.hit_points == 4
    assert reloaded.updated_at >= character.updated_at

    assert [c.id for c in state.list_characters()] == [character.id]
    assert state.delete_character(character.id) is True
    assert state.get_character(character.id) is None
    assert state.delete_character(character.id) is False


def test_update_unknown_character_raises(tmp_path: Path) -> None:
    state = _state(tmp_path)

    with pytest.raises(RecordNotFoundError):
        state.update_character(_character())


def test_delete_character_cascades(tmp_path: Path) -> None:
    state = _state(tmp_path)
    keep = state.add_character(_character("Keep"))
    gone = state.add_character(_character("Gone"))

    state.add_relationship(Relationship(name="Mara", character_id=gone.id))
    state.add_relationship(Relationship(name="Bram", character_id=keep.id))
    state.add_note(Note(title="Quest", character_id=gone.id))
    state.toggle_favorite("spell", "fire-bolt", gone.id)
    state.toggle_favorite("spell", "fire-bolt", keep.id)
    state.select_character(gone.id)

    state.delete_character(gone.id)

    assert state.get_relationships(gone.id) == []
    assert state.get_notes(gone.id) == []
    assert state.favorite_keys("spell", gone.id) == set()
    assert state.selected_character() is None
    assert [r.name for r in state.get_relationships(keep.id)] == ["Bram"]
    assert state.is_favorite("spell", "fire-bolt", keep.id)


def test_duplicate_and_selection(tmp_path: Path) -> None:
    state = _state(tmp_path)
    character = state.add_character(_character())

    copy = state.duplicate_character(character.id)

    assert copy.id != character.id
    assert state.get_character(copy.id).name == "Lia (copy)"
    assert len(state.list_characters()) == 2

    state.select_character(copy.id)
    assert state.selected_character().id == copy.id

    state.deselect_character()
    assert state.selected_character() is None

    with pytest.raises(RecordNotFoundError):
        state.select_character("missing")
    with pytest.raises(RecordNotFoundError):
        state.duplicate_character("missing")


def test_character_statistics(tmp_path: Path) -> None:
    state = _state(tmp_path)
    state.add_character(_character("A"))
    state.add_character(_character("B", race="Dwarf", character_class="Cleric"))
    state.add_character(_character("C", race="Dwarf"))

    assert state.characters_by_class() == {"Wizard": 2, "Cleric": 1}
    assert state.characters_by_race() == {"Elf": 1, "Dwarf": 2}


def test_relationship_crud(tmp_path: Path) -> None:
    state = _state(tmp_path)
    character = state.add_character(_character())
    mara = state.add_relationship(
        Relationship(name="Mara", organization="Harpers", character_id=character.id)
    )
    state.add_relationship(
        Relationship(name="Vex", organization="Zhentarim", character_id=character.id)
    )
    state.add_relationship(Relationship(name="Loose", organization="Harpers"))

    mara.set_relationship_level(9)
    state.update_relationship(mara)
    copy = state.duplicate_relationship(mara.id)

    relationships = state.get_relationships(character.id)
    assert [r.name for r in relationships] == ["Mara", "Vex", "Mara (copy)"]
    assert relationships[0].relationship_level == 9
    assert copy.character_id == character.id
    assert [r.name for r in state.get_relationships(None)] == ["Loose"]

    assert state.unique_organizations() == ["Harpers", "Zhentarim"]
    assert state.unique_organizations(character.id) == ["Harpers", "Zhentarim"]

    assert state.delete_relationship(copy.id) is True
    assert len(state.get_relationships(character.id)) == 2

    with pytest.raises(RecordNotFoundError):
        state.update_relationship(Relationship(name="Ghost"))


def test_note_crud(tmp_path: Path) -> None:
    state = _state(tmp_path)
    character = state.add_character(_character())
    note = state.add_note(
        Note(
            title="Phandalin",
            category=NoteCategory.LOCATIONS,
            population="300",
            character_id=character.id,
        )
    )

    note.importance = 5
    state.update_note(note)
    copy = state.duplicate_note(note.id)

    notes = state.get_notes(character.id)
    assert [n.title for n in notes] == ["Phandalin", "Phandalin (copy)"]
    assert notes[0].importance == 5
    assert notes[0].category is NoteCategory.LOCATIONS
    assert notes[1].population == "300"

    assert state.delete_note(copy.id) is True
    assert state.delete_note(copy.id) is False
    with pytest.raises(RecordNotFoundError):
        state.duplicate_note(copy.id)


def test_favorites(tmp_path: Path) -> None:
    state = _state(tmp_path)
    character = state.add_character(_character())

    assert state.toggle_favorite("spell", "fire-bolt", character.id) is True
    assert state.is_favorite("spell", "fire-bolt", character.id)
    assert [s.name for s in state.favorite_spells(character.id)] == ["Fire Bolt"]

    assert state.toggle_favorite("spell", "fire-bolt", character.id) is False
    assert state.favorite_spells(character.id) == []

    assert state.add_favorites("monster", ["goblin", "goblin", "owlbear"], character.id) == 2
    assert state.add_favorites("monster", ["goblin"], character.id) == 0
    assert state.favorite_keys("monster", character.id) == {"goblin", "owlbear"}
    # only keys present in the library resolve
    assert [m.name for m in state.favorite_monsters(character.id)] == ["Goblin"]

    with pytest.raises(ValueError):
        state.toggle_favorite("vehicle", "cart", character.id)


def test_settings_and_theme(tmp_path: Path) -> None:
    state = _state(tmp_path)

    assert state.theme == "light"
    state.set_setting("theme", "dark")
    assert state.theme == "dark"
    assert state.get_setting("theme") == "dark"

    with pytest.raises(ValueError):
        state.set_setting("theme", "sepia")

    state.set_setting("custom", "1")
    state.set_setting("custom", None)
    assert state.get_setting("custom") is None


def test_state_survives_reopen(tmp_path: Path) -> None:
    state = _state(tmp_path)
    character = state.add_character(_character())
    state.select_character(character.id)

    reopened = _state(tmp_path)

    assert reopened.selected_character().name == "Lia"
