"""Upsert helpers for stored records."""

from __future__ import annotations

import hashlib
import json
from datetime import datetime, timezone
from typing import Any

from sqlmodel import Session, select

from dnd_sheet.models.storage import StoredRecord


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def canonical_json_hash(payload: Any) -> str:
    """Return a sha256 hash of a canonical JSON serialization."""
    serialized = json.dumps(payload, sort_keys=True, separators=(",", ":"))
    return hashlib.sha256(serialized.encode("utf-8")).hexdigest()


def upsert_record(
    session: Session,
    *,
    collection: str,
    record_id: str,
    payload: Any,
    character_id: str | None = None,
    commit: bool = True,
) -> tuple[StoredRecord, bool, bool]:
    """Insert or update a stored record, returning (record, created, updated)."""
    payload_hash = canonical_json_hash(payload)
    statement = select(StoredRecord).where(
        StoredRecord.collection == collection,
        StoredRecord.record_id == record_id,
    )
    existing = session.exec(statement).one_or_none()
    now = _utc_now()

    if existing is None:
        record = StoredRecord(
            collection=collection,
            record_id=record_id,
            character_id=character_id,
            payload=payload,
            payload_hash=payload_hash,
            created_at=now,
            updated_at=now,
        )
        session.add(record)
        if commit:
            session.commit()
            session.refresh(record)
        else:
            session.flush()
        return record, True, False

    if existing.payload_hash == payload_hash and existing.character_id == character_id:
        return existing, False, False

    existing.payload = payload
    existing.payload_hash = payload_hash
    existing.character_id = character_id
    existing.updated_at = now
    session.add(existing)
    if commit:
        session.commit()
        session.refresh(existing)
    else:
        session.flush()
    return existing, False, True
