"""In-memory reference library built from bundled assets."""

from __future__ import annotations

from pathlib import Path
from typing import Any, Callable, TypeVar

from pydantic import ValidationError
from sqlmodel import SQLModel

from dnd_sheet.config import get_data_dir
from dnd_sheet.errors import CacheError, ReferenceDataError
from dnd_sheet.logging_config import get_logger
from dnd_sheet.models.quote import QuotesData
from dnd_sheet.models.reference import Background, Feat, MagicItem, Monster, Spell
from dnd_sheet.reference.cache import FileCache
from dnd_sheet.reference.loader import (
    BACKGROUNDS_FILE,
    BESTIARY_FILE,
    FEATS_FILE,
    MAGIC_ITEMS_FILE,
    QUOTES_FILE,
    SPELLS_FILE,
    normalize_background,
    normalize_entries,
    normalize_feat,
    normalize_magic_item,
    normalize_monster,
    normalize_spell,
    read_json_array,
    read_json_object,
    read_ndjson,
)

logger = get_logger(__name__)

ModelT = TypeVar("ModelT", bound=SQLModel)

ITEM_TYPES = ("spell", "feat", "background", "monster", "magic_item")


class ReferenceLibrary:
    """Holds spells, feats, backgrounds, monsters, magic items and quotes.

    A collection that fails to load stays empty and its diagnostic message is
    kept in ``errors``.
    """

    def __init__(self, data_dir: str | None = None, cache: FileCache | None = None) -> None:
        self.data_dir = Path(data_dir or get_data_dir())
        self.cache = cache
        self.spells: list[Spell] = []
        self.feats: list[Feat] = []
        self.backgrounds: list[Background] = []
        self.monsters: list[Monster] = []
        self.magic_items: list[MagicItem] = []
        self.quotes = QuotesData()
        self.errors: dict[str, str] = {}
        self.skipped: dict[str, int] = {}
        self.loaded = False

    def _read_array(
        self, filename: str, normalize: Callable[[dict[str, Any]], dict[str, Any]]
    ) -> list[dict[str, Any]]:
        entries = read_json_array(self.data_dir / filename)
        rows, errors = normalize_entries(entries, normalize)
        if errors:
            self.skipped[filename] = errors
        return rows

    def _read_bestiary(self) -> list[dict[str, Any]]:
        entries, line_errors = read_ndjson(self.data_dir / BESTIARY_FILE)
        rows, errors = normalize_entries(entries, normalize_monster)
        if line_errors + errors:
            self.skipped[BESTIARY_FILE] = line_errors + errors
        return rows

    def _read_rows(self, name: str, reader: Callable[[], Any]) -> Any:
        if self.cache is None:
            return reader()
        try:
            return self.cache.load_with_cache(f"{name}_cache", reader)
        except CacheError as exc:
            logger.warning("reference_cache_unavailable", collection=name, error=str(exc))
            return reader()

    def _load_collection(
        self,
        name: str,
        model: type[ModelT],
        reader: Callable[[], list[dict[str, Any]]],
    ) -> list[ModelT]:
        try:
            rows = self._read_rows(name, reader)
        except ReferenceDataError as exc:
            self.errors[name] = str(exc)
            logger.warning("reference_load_failed", collection=name, error=str(exc))
            return []

        records: list[ModelT] = []
        for row in rows:
            try:
                records.append(model.model_validate(row))
            except ValidationError:
                self.skipped[name] = self.skipped.get(name, 0) + 1
        logger.info("reference_loaded", collection=name, count=len(records))
        return records

    def _load_quotes(self) -> QuotesData:
        try:
            payload = self._read_rows(
                "quotes", lambda: read_json_object(self.data_dir / QUOTES_FILE)
            )
            quotes = QuotesData.model_validate(payload)
        except ReferenceDataError as exc:
            self.errors["quotes"] = str(exc)
            logger.warning("reference_load_failed", collection="quotes", error=str(exc))
            return QuotesData()
        except ValidationError as exc:
            self.errors["quotes"] = f"Invalid quotes data: {exc.error_count()} errors"
            logger.warning("reference_load_failed", collection="quotes", error=str(exc))
            return QuotesData()
        logger.info("reference_loaded", collection="quotes", count=len(quotes.categories))
        return quotes

    def load(self) -> "ReferenceLibrary":
        """Load every collection; never raises for missing or broken assets."""
        self.errors.clear()
        self.skipped.clear()
        self.spells = self._load_collection(
            "spells", Spell, lambda: self._read_array(SPELLS_FILE, normalize_spell)
        )
        self.feats = self._load_collection(
            "feats", Feat, lambda: self._read_array(FEATS_FILE, normalize_feat)
        )
        self.backgrounds = self._load_collection(
            "backgrounds",
            Background,
            lambda: self._read_array(BACKGROUNDS_FILE, normalize_background),
        )
        self.monsters = sorted(
            self._load_collection("monsters", Monster, self._read_bestiary),
            key=lambda monster: monster.name,
        )
        self.magic_items = self._load_collection(
            "magic_items",
            MagicItem,
            lambda: self._read_array(MAGIC_ITEMS_FILE, normalize_magic_item),
        )
        self.quotes = self._load_quotes()
        self.loaded = True
        return self

    def counts(self) -> dict[str, int]:
        return {
            "spells": len(self.spells),
            "feats": len(self.feats),
            "backgrounds": len(self.backgrounds),
            "monsters": len(self.monsters),
            "magic_items": len(self.magic_items),
        }

    def _collection(self, item_type: str) -> list[Any]:
        collections = {
            "spell": self.spells,
            "feat": self.feats,
            "background": self.backgrounds,
            "monster": self.monsters,
            "magic_item": self.magic_items,
        }
        if item_type not in collections:
            raise ValueError(f"Unknown reference type: {item_type}")
        return collections[item_type]

    def find(self, item_type: str, key: str) -> Any | None:
        for record in self._collection(item_type):
            if record.key == key:
                return record
        return None

    def find_many(self, item_type: str, keys: set[str]) -> list[Any]:
        return [record for record in self._collection(item_type) if record.key in keys]

    def search_spells(
        self,
        query: str = "",
        *,
        level: str | None = None,
        school: str | None = None,
    ) -> list[Spell]:
        needle = query.strip().lower()
        results = []
        for spell in self.spells:
            if needle and needle not in spell.name.lower():
                continue
            if level is not None and spell.level != level:
                continue
            if school is not None and spell.school.lower() != school.lower():
                continue
            results.append(spell)
        return results

    def search_monsters(self, query: str = "") -> list[Monster]:
        needle = query.strip().lower()
        if not needle:
            return list(self.monsters)
        return [
            monster
            for monster in self.monsters
            if needle in monster.name.lower()
            or needle in monster.monster_type.lower()
            or needle in monster.alignment.lower()
        ]

    def search_magic_items(self, query: str = "") -> list[MagicItem]:
        needle = query.strip().lower()
        if not needle:
            return list(self.magic_items)
        return [
            item
            for item in self.magic_items
            if needle in item.display_name.lower()
            or needle in item.item_type.lower()
            or needle in item.rarity.lower()
            or needle in " ".join(item.descriptions).lower()
        ]
