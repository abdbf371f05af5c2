"""Load/save helpers for JSON records kept in ``stored_records``."""

from __future__ import annotations

from typing import Any, TypeVar

from sqlalchemy import delete
from sqlmodel import Session, SQLModel, select

from dnd_sheet.db.upsert import upsert_record
from dnd_sheet.models.storage import StoredRecord

ModelT = TypeVar("ModelT", bound=SQLModel)

CHARACTERS = "characters"
RELATIONSHIPS = "relationships"
NOTES = "notes"

# passed as character_id to mean "do not filter by owner"
ANY_OWNER: Any = object()


def save_record(
    session: Session,
    collection: str,
    record: SQLModel,
    *,
    character_id: str | None = None,
    commit: bool = True,
) -> tuple[bool, bool]:
    """Persist ``record`` under its ``id``; returns (created, updated)."""
    payload = record.model_dump(mode="json")
    _, created, updated = upsert_record(
        session,
        collection=collection,
        record_id=payload["id"],
        payload=payload,
        character_id=character_id,
        commit=commit,
    )
    return created, updated


def record_exists(session: Session, collection: str, record_id: str) -> bool:
    statement = select(StoredRecord.id).where(
        StoredRecord.collection == collection,
        StoredRecord.record_id == record_id,
    )
    return session.exec(statement).first() is not None


def load_record(
    session: Session, collection: str, record_id: str, model: type[ModelT]
) -> ModelT | None:
    statement = select(StoredRecord).where(
        StoredRecord.collection == collection,
        StoredRecord.record_id == record_id,
    )
    row = session.exec(statement).one_or_none()
    if row is None:
        return None
    return model.model_validate(row.payload)


def load_records(
    session: Session,
    collection: str,
    model: type[ModelT],
    *,
    character_id: Any = ANY_OWNER,
) -> list[ModelT]:
    statement = select(StoredRecord).where(StoredRecord.collection == collection)
    if character_id is not ANY_OWNER:
        if character_id is None:
            statement = statement.where(StoredRecord.character_id.is_(None))
        else:
            statement = statement.where(StoredRecord.character_id == character_id)
    rows = session.exec(statement.order_by(StoredRecord.id)).all()
    return [model.model_validate(row.payload) for row in rows]


def delete_record(
    session: Session, collection: str, record_id: str, *, commit: bool = True
) -> bool:
    result = session.exec(
        delete(StoredRecord).where(
            StoredRecord.collection == collection,
            StoredRecord.record_id == record_id,
        )
    )
    if commit:
        session.commit()
    return bool(result.rowcount)


def delete_owned_records(
    session: Session, collection: str, character_id: str, *, commit: bool = True
) -> int:
    result = session.exec(
        delete(StoredRecord).where(
            StoredRecord.collection == collection,
            StoredRecord.character_id == character_id,
        )
    )
    if commit:
        session.commit()
    return int(result.rowcount or 0)
