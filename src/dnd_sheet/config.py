"""Configuration helpers for dnd_sheet."""

from __future__ import annotations

import os
from pathlib import Path

DEFAULT_DB_PATH = Path("data/sqlite/dnd_sheet.db")
DEFAULT_DATA_DIR = Path("data/assets")
DEFAULT_CACHE_DIR = Path("data/cache")
DEFAULT_LOG_LEVEL = "INFO"

DB_PATH_ENV_VAR = "DND_SHEET_DB_PATH"
DATA_DIR_ENV_VAR = "DND_SHEET_DATA_DIR"
CACHE_DIR_ENV_VAR = "DND_SHEET_CACHE_DIR"
LOG_LEVEL_ENV_VAR = "DND_SHEET_LOG_LEVEL"

CACHE_EXPIRATION_S = 24 * 60 * 60
MAX_MEMORY_CACHE_BYTES = 50 * 1024 * 1024
MAX_DISK_CACHE_BYTES = 100 * 1024 * 1024


def _resolved(env_var: str, default: Path) -> str:
    env_value = os.getenv(env_var)
    if env_value:
        return str(Path(env_value).expanduser().resolve())
    return str(default.resolve())


def get_db_path() -> str:
    """Return the absolute database path, honoring environment overrides."""
    return _resolved(DB_PATH_ENV_VAR, DEFAULT_DB_PATH)


def get_data_dir() -> str:
    """Return the directory holding the bundled reference assets."""
    return _resolved(DATA_DIR_ENV_VAR, DEFAULT_DATA_DIR)


def get_cache_dir() -> str:
    """Return the file cache directory."""
    return _resolved(CACHE_DIR_ENV_VAR, DEFAULT_CACHE_DIR)


def get_log_level() -> str:
    env_value = os.getenv(LOG_LEVEL_ENV_VAR)
    if env_value:
        return env_value.strip().upper()
    return DEFAULT_LOG_LEVEL
