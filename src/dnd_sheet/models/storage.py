"""Persistence tables backing the application state."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Optional

from sqlalchemy import Column, DateTime, Index, JSON, String, Text, UniqueConstraint
from sqlmodel import Field, SQLModel


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class StoredRecord(SQLModel, table=True):
    """One JSON document per record, grouped by collection."""

    __tablename__ = "stored_records"
    __table_args__ = (
        UniqueConstraint(
            "collection", "record_id", name="uq_stored_records_collection_record"
        ),
        Index("ix_stored_records_collection_character", "collection", "character_id"),
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    collection: str = Field(sa_column=Column(String, nullable=False))
    record_id: str = Field(sa_column=Column(String, nullable=False))
    character_id: Optional[str] = Field(
        default=None, sa_column=Column(String, nullable=True)
    )
    payload: Any = Field(sa_column=Column(JSON, nullable=False))
    payload_hash: str = Field(sa_column=Column(String, nullable=False))
    created_at: datetime = Field(
        sa_column=Column(DateTime(timezone=True), default=_utc_now, nullable=False)
    )
    updated_at: datetime = Field(
        sa_column=Column(
            DateTime(timezone=True),
            default=_utc_now,
            onupdate=_utc_now,
            nullable=False,
        )
    )


class Favorite(SQLModel, table=True):
    """Marks a reference record as a favorite of one character."""

    __tablename__ = "favorites"
    __table_args__ = (
        UniqueConstraint(
            "item_type", "item_key", "character_id", name="uq_favorites_item_character"
        ),
        Index("ix_favorites_character", "character_id"),
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    item_type: str = Field(sa_column=Column(String, nullable=False))
    item_key: str = Field(sa_column=Column(String, nullable=False))
    character_id: str = Field(sa_column=Column(String, nullable=False))
    created_at: datetime = Field(
        sa_column=Column(DateTime(timezone=True), default=_utc_now, nullable=False)
    )


class AppSetting(SQLModel, table=True):
    """Simple key/value application setting."""

    __tablename__ = "app_settings"

    key: str = Field(sa_column=Column(String, primary_key=True))
    value: Optional[str] = Field(default=None, sa_column=Column(Text, nullable=True))
    updated_at: datetime = Field(
        sa_column=Column(
            DateTime(timezone=True),
            default=_utc_now,
            onupdate=_utc_now,
            nullable=False,
        )
    )
