"""Per-character favorites for reference records."""

from __future__ import annotations

from typing import Iterable

from sqlalchemy import delete
from sqlmodel import Session, select

from dnd_sheet.models.storage import Favorite


def _find(
    session: Session, item_type: str, item_key: str, character_id: str
) -> Favorite | None:
    return session.exec(
        select(Favorite).where(
            Favorite.item_type == item_type,
            Favorite.item_key == item_key,
            Favorite.character_id == character_id,
        )
    ).one_or_none()


def is_favorite(
    session: Session, item_type: str, item_key: str, character_id: str
) -> bool:
    return _find(session, item_type, item_key, character_id) is not None


def toggle_favorite(
    session: Session, item_type: str, item_key: str, character_id: str
) -> bool:
    """Flip the favorite flag and return the new state."""
    existing = _find(session, item_type, item_key, character_id)
    if existing is not None:
        session.delete(existing)
        session.commit()
        return False
    session.add(
        Favorite(item_type=item_type, item_key=item_key, character_id=character_id)
    )
    session.commit()
    return True


def add_favorites(
    session: Session,
    item_type: str,
    item_keys: Iterable[str],
    character_id: str,
    *,
    commit: bool = True,
) -> int:
    """Mark each key as a favorite; returns how many were newly added."""
    added = 0
    for item_key in dict.fromkeys(item_keys):
        if _find(session, item_type, item_key, character_id) is not None:
            continue
        session.add(
            Favorite(item_type=item_type, item_key=item_key, character_id=character_id)
        )
        session.flush()
        added += 1
    if commit:
        session.commit()
    return added


def favorite_keys(session: Session, item_type: str, character_id: str) -> set[str]:
    rows = session.exec(
        select(Favorite.item_key).where(
            Favorite.item_type == item_type,
            Favorite.character_id == character_id,
        )
    ).all()
    return set(rows)


def delete_favorites_for_character(
    session: Session, character_id: str, *, commit: bool = True
) -> int:
    result = session.exec(delete(Favorite).where(Favorite.character_id == character_id))
    if commit:
        session.commit()
    return int(result.rowcount or 0)
