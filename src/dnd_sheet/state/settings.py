"""Key/value application settings."""

from __future__ import annotations

from datetime import datetime, timezone

from sqlmodel import Session, select

from dnd_sheet.models.storage import AppSetting

SELECTED_CHARACTER_KEY = "selected_character_id"
THEME_KEY = "theme"
THEMES = ("light", "dark", "system")
DEFAULT_THEME = "light"
SELECTED_QUOTE_CATEGORY_KEY = "selected_quote_category"
DEFAULT_QUOTE_CATEGORY = "общение"
# full category -> quotes snapshot, written on the first quote edit
CUSTOM_QUOTES_KEY = "custom_quotes_data"


def get_setting(session: Session, key: str) -> str | None:
    row = session.exec(select(AppSetting).where(AppSetting.key == key)).one_or_none()
    return row.value if row is not None else None


def set_setting(session: Session, key: str, value: str | None) -> None:
    """Store ``value`` under ``key``; ``None`` removes the setting."""
    row = session.exec(select(AppSetting).where(AppSetting.key == key)).one_or_none()
    if value is None:
        if row is not None:
            session.delete(row)
            session.commit()
        return
    if row is None:
        row = AppSetting(key=key, value=value, updated_at=datetime.now(timezone.utc))
    else:
        row.value = value
        row.updated_at = datetime.now(timezone.utc)
    session.add(row)
    session.commit()
