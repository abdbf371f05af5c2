from __future__ import annotations

from pathlib import Path
import sys

sys.path.append(str(Path(__file__).resolve().parents[1] / "src"))

from sqlmodel import Session, select

from dnd_sheet.db.engine import create_db_and_tables, get_engine
from dnd_sheet.db.upsert import canonical_json_hash, upsert_record
from dnd_sheet.models.storage import StoredRecord


def test_upsert_record_idempotent(tmp_path: Path) -> None:
    db_path = tmp_path / "stored_records.db"
    engine = get_engine(str(db_path))
    create_db_and_tables(engine)

    payload = {
        "id": "rel-1",
        "name": "Mara",
        "relationship_level": 7,
        "organization": "Harpers",
    }

    with Session(engine) as session:
        record, created, updated = upsert_record(
            session,
            collection="relationships",
            record_id=payload["id"],
            payload=payload,
            character_id="char-1",
        )
        assert created is True
        assert updated is False
        first_hash = record.payload_hash

        record, created, updated = upsert_record(
            session,
            collection="relationships",
            record_id=payload["id"],
            payload=dict(reversed(list(payload.items()))),
            character_id="char-1",
        )
        assert created is False
        assert updated is False
        assert record.payload_hash == first_hash

        payload_changed = {**payload, "relationship_level": 2}
        record, created, updated = upsert_record(
            session,
            collection="relationships",
            record_id=payload["id"],
            payload=payload_changed,
            character_id="char-1",
        )
        assert created is False
        assert updated is True
        assert record.payload_hash != first_hash
        assert record.payload["relationship_level"] == 2

        records = session.exec(select(StoredRecord)).all()
        assert len(records) == 1


def test_upsert_record_reassigns_owner(tmp_path: Path) -> None:
    engine = get_engine(str(tmp_path / "owner.db"))
    create_db_and_tables(engine)
    payload = {"id": "note-1", "title": "Quest"}

    with Session(engine) as session:
        upsert_record(
            session, collection="notes", record_id="note-1", payload=payload
        )
        record, created, updated = upsert_record(
            session,
            collection="notes",
            record_id="note-1",
            payload=payload,
            character_id="char-2",
        )

        assert created is False
        assert updated is True
        assert record.character_id == "char-2"


def test_same_record_id_in_different_collections(tmp_path: Path) -> None:
    engine = get_engine(str(tmp_path / "collections.db"))
    create_db_and_tables(engine)

    with Session(engine) as session:
        upsert_record(session, collection="notes", record_id="x", payload={"a": 1})
        upsert_record(session, collection="relationships", record_id="x", payload={"a": 1})

        assert len(session.exec(select(StoredRecord)).all()) == 2


def test_canonical_hash_ignores_key_order() -> None:
    assert canonical_json_hash({"a": 1, "b": [1, 2]}) == canonical_json_hash(
        {"b": [1, 2], "a": 1}
    )
    assert canonical_json_hash({"a": 1}) != canonical_json_hash({"a": 2})
