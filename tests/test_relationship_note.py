from __future__ import annotations

from pathlib import Path
import sys

sys.path.append(str(Path(__file__).resolve().parents[1] / "src"))

from dnd_sheet.models.note import Note, NoteCategory
from dnd_sheet.models.relationship import Relationship, RelationshipStatus


def test_relationship_status_thresholds() -> None:
    assert Relationship(name="A", relationship_level=4).status is RelationshipStatus.ENEMY
    assert Relationship(name="B", relationship_level=5).status is RelationshipStatus.NEUTRAL
    assert Relationship(name="C", relationship_level=6).status is RelationshipStatus.FRIEND
    assert Relationship(name="D").status is RelationshipStatus.NEUTRAL


def test_relationship_level_is_clamped() -> None:
    relationship = Relationship(name="Mara", relationship_level=14)
    assert relationship.relationship_level == 10
    assert relationship.is_friend

    assert relationship.set_relationship_level(-3) == 0
    assert relationship.is_enemy


def test_relationship_duplicate() -> None:
    relationship = Relationship(name="Mara", organization="Harpers", character_id="c1")

    copy = relationship.duplicate()

    assert copy.id != relationship.id
    assert copy.name == "Mara (copy)"
    assert copy.organization == "Harpers"
    assert copy.character_id == "c1"


def test_note_importance_is_clamped() -> None:
    assert Note(title="low", importance=0).importance == 1
    assert Note(title="high", importance=9).importance == 5


def test_note_category_details() -> None:
    note = Note(
        title="Neverwinter",
        category=NoteCategory.LOCATIONS,
        location_type="City",
        population="23000",
        race="Human",
    )

    assert note.category_details() == {"location_type": "City", "population": "23000"}


def test_note_duplicate() -> None:
    note = Note(title="Lost Mine", category=NoteCategory.QUESTS, status="open")

    copy = note.duplicate()

    assert copy.id != note.id
    assert copy.title == "Lost Mine (copy)"
    assert copy.category is NoteCategory.QUESTS


def test_assignment_clamps_relationship_level_and_note_importance() -> None:
    relationship = Relationship(name="Mara", relationship_level=5)
    relationship.relationship_level = 12
    assert relationship.relationship_level == 10
    assert relationship.status == RelationshipStatus.FRIEND

    note = Note(title="rumor", importance=3)
    note.importance = 0
    assert note.importance == 1
