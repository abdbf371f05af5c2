"""File-based JSON cache with time-based expiration."""

from __future__ import annotations

import json
import re
import shutil
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any, Callable

from dnd_sheet.config import (
    CACHE_EXPIRATION_S,
    MAX_DISK_CACHE_BYTES,
    MAX_MEMORY_CACHE_BYTES,
    get_cache_dir,
)
from dnd_sheet.errors import CacheError
from dnd_sheet.logging_config import get_logger

logger = get_logger(__name__)

_KEY_PATTERN = re.compile(r"^[A-Za-z0-9_.-]+$")


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _created_at(value: Any) -> datetime | None:
    try:
        created = datetime.fromisoformat(value)
    except (TypeError, ValueError):
        return None
    if created.tzinfo is None:
        created = created.replace(tzinfo=timezone.utc)
    return created


class FileCache:
    """Caches JSON-serializable payloads on disk and in memory.

    Each key is stored as ``<key>.json`` holding a wrapper with the creation
    time. Entries older than ``expiration_s`` are dropped on read. The size
    budgets are reported by :meth:`info` but not enforced by eviction.
    """

    def __init__(
        self,
        cache_dir: str | None = None,
        *,
        expiration_s: float = CACHE_EXPIRATION_S,
        max_memory_bytes: int = MAX_MEMORY_CACHE_BYTES,
        max_disk_bytes: int = MAX_DISK_CACHE_BYTES,
        now: Callable[[], datetime] = _utc_now,
    ) -> None:
        self.cache_dir = Path(cache_dir or get_cache_dir())
        self.expiration = timedelta(seconds=expiration_s)
        self.max_memory_bytes = max_memory_bytes
        self.max_disk_bytes = max_disk_bytes
        self._now = now
        # key -> (created_at, payload)
        self._memory: dict[str, tuple[datetime, Any]] = {}

    def _path(self, key: str) -> Path:
        if not _KEY_PATTERN.match(key):
            raise CacheError(f"Invalid cache key: {key!r}")
        return self.cache_dir / f"{key}.json"

    def _is_expired(self, created: datetime | None) -> bool:
        return created is None or self._now() - created > self.expiration

    def set(self, key: str, payload: Any) -> None:
        path = self._path(key)
        created = self._now()
        wrapper = {
            "key": key,
            "created_at": created.isoformat(),
            "json": payload,
        }
        try:
            serialized = json.dumps(wrapper, ensure_ascii=False, sort_keys=True)
        except (TypeError, ValueError) as exc:
            raise CacheError(f"Payload for {key!r} is not JSON serializable") from exc
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(serialized, encoding="utf-8")
        except OSError as exc:
            raise CacheError(f"Could not write cache entry {key!r}: {exc}") from exc
        self._memory[key] = (created, payload)

    def get(self, key: str) -> Any | None:
        entry = self._memory.get(key)
        if entry is not None:
            created, payload = entry
            if not self._is_expired(created):
                return payload
            logger.info("cache_entry_expired", key=key)
            self.remove(key)
            return None
        path = self._path(key)
        if not path.exists():
            return None
        try:
            wrapper = json.loads(path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError):
            logger.warning("cache_entry_unreadable", key=key)
            self.remove(key)
            return None
        created = _created_at(wrapper.get("created_at")) if isinstance(wrapper, dict) else None
        if self._is_expired(created):
            logger.info("cache_entry_expired", key=key)
            self.remove(key)
            return None
        payload = wrapper.get("json")
        self._memory[key] = (created, payload)
        return payload

    def exists(self, key: str) -> bool:
        entry = self._memory.get(key)
        if entry is not None and not self._is_expired(entry[0]):
            return True
        return self._path(key).exists()

    def remove(self, key: str) -> None:
        self._memory.pop(key, None)
        self._path(key).unlink(missing_ok=True)

    def clear_all(self) -> None:
        self._memory.clear()
        if self.cache_dir.exists():
            shutil.rmtree(self.cache_dir)
        self.cache_dir.mkdir(parents=True, exist_ok=True)

    def cleanup_expired(self) -> int:
        """Drop expired entries; returns how many were removed from disk."""
        for key, (created, _) in list(self._memory.items()):
            if self._is_expired(created):
                del self._memory[key]
        if not self.cache_dir.exists():
            return 0
        removed = 0
        for path in self.cache_dir.glob("*.json"):
            try:
                wrapper = json.loads(path.read_text(encoding="utf-8"))
                expired = not isinstance(wrapper, dict) or self._is_expired(
                    _created_at(wrapper.get("created_at"))
                )
            except (OSError, json.JSONDecodeError):
                expired = True
            if expired:
                self._memory.pop(path.stem, None)
                path.unlink(missing_ok=True)
                removed += 1
        return removed

    def disk_size(self) -> int:
        if not self.cache_dir.exists():
            return 0
        return sum(path.stat().st_size for path in self.cache_dir.glob("*.json"))

    def info(self) -> dict[str, int]:
        return {
            "entries": len(list(self.cache_dir.glob("*.json")))
            if self.cache_dir.exists()
            else 0,
            "disk_bytes": self.disk_size(),
            "max_memory_bytes": self.max_memory_bytes,
            "max_disk_bytes": self.max_disk_bytes,
        }

    def load_with_cache(self, key: str, loader: Callable[[], Any]) -> Any:
        """Return the cached payload for ``key`` or compute and store it."""
        cached = self.get(key)
        if cached is not None:
            return cached
        payload = loader()
        self.set(key, payload)
        return payload
