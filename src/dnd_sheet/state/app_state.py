"""Application state: characters, their related records, favorites, quotes and settings."""

from __future__ import annotations

from collections import Counter
import random
from typing import Iterable, Optional

from pydantic import ValidationError
from sqlalchemy.engine import Engine
from sqlmodel import Session

from dnd_sheet.db.engine import create_db_and_tables, get_engine
from dnd_sheet.errors import RecordNotFoundError
from dnd_sheet.logging_config import get_logger
from dnd_sheet.models.character import Character
from dnd_sheet.models.note import Note
from dnd_sheet.models.quote import Quote, QuotesData
from dnd_sheet.models.reference import Monster, Spell
from dnd_sheet.models.relationship import Relationship
from dnd_sheet.reference.cache import FileCache
from dnd_sheet.reference.library import ITEM_TYPES, ReferenceLibrary
from dnd_sheet.state import favorites, settings
from dnd_sheet.state.records import (
    CHARACTERS,
    NOTES,
    RELATIONSHIPS,
    delete_owned_records,
    delete_record,
    load_record,
    load_records,
    record_exists,
    save_record,
)
from dnd_sheet.transfer.export import export_basic, export_extended
from dnd_sheet.transfer.external import export_external
from dnd_sheet.transfer.importer import ImportResult, import_any

logger = get_logger(__name__)

EXPORT_FORMATS = ("basic", "extended", "external")


class AppState:
    """Entry point handed to the UI layer.

    Every operation opens its own session on ``engine``; reference lookups
    for favorites go through ``library``.
    """

    def __init__(self, engine: Engine, library: ReferenceLibrary | None = None) -> None:
        self.engine = engine
        self.library = library or ReferenceLibrary()
        create_db_and_tables(engine)

    @classmethod
    def from_config(
        cls,
        db_path: str | None = None,
        data_dir: str | None = None,
        cache_dir: str | None = None,
        *,
        load_reference: bool = True,
    ) -> "AppState":
        library = ReferenceLibrary(data_dir, cache=FileCache(cache_dir))
        if load_reference:
            library.load()
        return cls(get_engine(db_path), library)

    def _session(self) -> Session:
        return Session(self.engine)

    # -- characters -----------------------------------------------------------

    def add_character(self, character: Character) -> Character:
        character.migrate_classes()
        with self._session() as session:
            save_record(session, CHARACTERS, character)
        logger.info("character_added", character_id=character.id, name=character.name)
        return character

    def update_character(self, character: Character) -> Character:
        with self._session() as session:
            if not record_exists(session, CHARACTERS, character.id):
                raise RecordNotFoundError(CHARACTERS, character.id)
            character.sync_primary_class()
            character.touch()
            save_record(session, CHARACTERS, character)
        return character

    def delete_character(self, character_id: str) -> bool:
        """Delete a character together with everything it owns."""
        with self._session() as session:
            deleted = delete_record(session, CHARACTERS, character_id, commit=False)
            relationships = delete_owned_records(
                session, RELATIONSHIPS, character_id, commit=False
            )
            notes = delete_owned_records(session, NOTES, character_id, commit=False)
            favorites.delete_favorites_for_character(session, character_id, commit=False)
            if settings.get_setting(session, settings.SELECTED_CHARACTER_KEY) == character_id:
                settings.set_setting(session, settings.SELECTED_CHARACTER_KEY, None)
            session.commit()
        if deleted:
            logger.info(
                "character_deleted",
                character_id=character_id,
                relationships=relationships,
                notes=notes,
            )
        return deleted

    def get_character(self, character_id: str) -> Character | None:
        with self._session() as session:
            return load_record(session, CHARACTERS, character_id, Character)

    def list_characters(self) -> list[Character]:
        with self._session() as session:
            return load_records(session, CHARACTERS, Character)

    def duplicate_character(self, character_id: str) -> Character:
        original = self.get_character(character_id)
        if original is None:
            raise RecordNotFoundError(CHARACTERS, character_id)
        return self.add_character(original.duplicate())

    def select_character(self, character_id: str) -> Character:
        character = self.get_character(character_id)
        if character is None:
            raise RecordNotFoundError(CHARACTERS, character_id)
        self.set_setting(settings.SELECTED_CHARACTER_KEY, character_id)
        return character

    def deselect_character(self) -> None:
        self.set_setting(settings.SELECTED_CHARACTER_KEY, None)

    def selected_character(self) -> Character | None:
        character_id = self.get_setting(settings.SELECTED_CHARACTER_KEY)
        if character_id is None:
            return None
        return self.get_character(character_id)

    def characters_by_class(self) -> dict[str, int]:
        return dict(Counter(c.character_class for c in self.list_characters()))

    def characters_by_race(self) -> dict[str, int]:
        return dict(Counter(c.race for c in self.list_characters()))

    # -- relationships --------------------------------------------------------

    def add_relationship(self, relationship: Relationship) -> Relationship:
        with self._session() as session:
            save_record(
                session,
                RELATIONSHIPS,
                relationship,
                character_id=relationship.character_id,
            )
        return relationship

    def get_relationships(self, character_id: str | None) -> list[Relationship]:
        with self._session() as session:
            return load_records(
                session, RELATIONSHIPS, Relationship, character_id=character_id
            )

    def update_relationship(self, relationship: Relationship) -> Relationship:
        with self._session() as session:
            if not record_exists(session, RELATIONSHIPS, relationship.id):
                raise RecordNotFoundError(RELATIONSHIPS, relationship.id)
            relationship.touch()
            save_record(
                session,
                RELATIONSHIPS,
                relationship,
                character_id=relationship.character_id,
            )
        return relationship

    def delete_relationship(self, relationship_id: str) -> bool:
        with self._session() as session:
            return delete_record(session, RELATIONSHIPS, relationship_id)

    def duplicate_relationship(self, relationship_id: str) -> Relationship:
        with self._session() as session:
            original = load_record(session, RELATIONSHIPS, relationship_id, Relationship)
        if original is None:
            raise RecordNotFoundError(RELATIONSHIPS, relationship_id)
        return self.add_relationship(original.duplicate())

    def unique_organizations(self, character_id: str | None = None) -> list[str]:
        with self._session() as session:
            if character_id is None:
                relationships = load_records(session, RELATIONSHIPS, Relationship)
            else:
                relationships = load_records(
                    session, RELATIONSHIPS, Relationship, character_id=character_id
                )
        return sorted(
            {r.organization for r in relationships if r.organization}
        )

    # -- notes ----------------------------------------------------------------

    def add_note(self, note: Note) -> Note:
        with self._session() as session:
            save_record(session, NOTES, note, character_id=note.character_id)
        return note

    def get_notes(self, character_id: str | None) -> list[Note]:
        with self._session() as session:
            return load_records(session, NOTES, Note, character_id=character_id)

    def update_note(self, note: Note) -> Note:
        with self._session() as session:
            if not record_exists(session, NOTES, note.id):
                raise RecordNotFoundError(NOTES, note.id)
            note.touch()
            save_record(session, NOTES, note, character_id=note.character_id)
        return note

    def delete_note(self, note_id: str) -> bool:
        with self._session() as session:
            return delete_record(session, NOTES, note_id)

    def duplicate_note(self, note_id: str) -> Note:
        with self._session() as session:
            original = load_record(session, NOTES, note_id, Note)
        if original is None:
            raise RecordNotFoundError(NOTES, note_id)
        return self.add_note(original.duplicate())

    # -- favorites ------------------------------------------------------------

    @staticmethod
    def _check_item_type(item_type: str) -> None:
        if item_type not in ITEM_TYPES:
            raise ValueError(f"Unknown reference type: {item_type}")

    def toggle_favorite(self, item_type: str, item_key: str, character_id: str) -> bool:
        self._check_item_type(item_type)
        with self._session() as session:
            return favorites.toggle_favorite(session, item_type, item_key, character_id)

    def is_favorite(self, item_type: str, item_key: str, character_id: str) -> bool:
        with self._session() as session:
            return favorites.is_favorite(session, item_type, item_key, character_id)

    def favorite_keys(self, item_type: str, character_id: str) -> set[str]:
        with self._session() as session:
            return favorites.favorite_keys(session, item_type, character_id)

    def add_favorites(
        self, item_type: str, item_keys: Iterable[str], character_id: str
    ) -> int:
        self._check_item_type(item_type)
        with self._session() as session:
            return favorites.add_favorites(session, item_type, item_keys, character_id)

    def favorite_spells(self, character_id: str) -> list[Spell]:
        return self.library.find_many("spell", self.favorite_keys("spell", character_id))

    def favorite_monsters(self, character_id: str) -> list[Monster]:
        return self.library.find_many(
            "monster", self.favorite_keys("monster", character_id)
        )

    # -- transfer -------------------------------------------------------------

    def import_character(self, text: str) -> ImportResult:
        """Parse ``text`` in any supported dialect and persist the result."""
        result = import_any(text)
        character = result.character
        character.migrate_classes()
        with self._session() as session:
            save_record(session, CHARACTERS, character, commit=False)
            for relationship in result.relationships:
                save_record(
                    session,
                    RELATIONSHIPS,
                    relationship,
                    character_id=character.id,
                    commit=False,
                )
            for note in result.notes:
                save_record(session, NOTES, note, character_id=character.id, commit=False)
            favorites.add_favorites(
                session, "spell", [s.key for s in result.spells], character.id, commit=False
            )
            favorites.add_favorites(
                session,
                "monster",
                [m.key for m in result.monsters],
                character.id,
                commit=False,
            )
            session.commit()
        logger.info(
            "character_imported",
            character_id=character.id,
            format=result.format,
            relationships=len(result.relationships),
            notes=len(result.notes),
        )
        return result

    def export_character(self, character_id: str, export_format: str = "extended") -> str:
        character = self.get_character(character_id)
        if character is None:
            raise RecordNotFoundError(CHARACTERS, character_id)
        if export_format == "basic":
            return export_basic(character)
        if export_format == "extended":
            return export_extended(character, self)
        if export_format == "external":
            return export_external(character)
        raise ValueError(f"Unknown export format: {export_format}")

    # -- settings -------------------------------------------------------------

    def get_setting(self, key: str) -> str | None:
        with self._session() as session:
            return settings.get_setting(session, key)

    def set_setting(self, key: str, value: str | None) -> None:
        if key == settings.THEME_KEY and value not in settings.THEMES:
            raise ValueError(f"Unknown theme: {value}")
        with self._session() as session:
            settings.set_setting(session, key, value)

    @property
    def theme(self) -> str:
        return self.get_setting(settings.THEME_KEY) or settings.DEFAULT_THEME

    # -- quotes ---------------------------------------------------------------

    def quotes(self) -> QuotesData:
        """Current quotes: the stored snapshot once edited, else the bundled set."""
        stored = self.get_setting(settings.CUSTOM_QUOTES_KEY)
        if stored is not None:
            try:
                return QuotesData.model_validate_json(stored)
            except ValidationError:
                logger.warning("custom_quotes_unreadable")
        return self.library.quotes.model_copy(deep=True)

    def _save_quotes(self, quotes: QuotesData) -> None:
        self.set_setting(settings.CUSTOM_QUOTES_KEY, quotes.model_dump_json())

    def quote_categories(self) -> list[str]:
        return self.quotes().category_names

    def quotes_for(self, category: str) -> list[Quote]:
        return self.quotes().quotes_for(category)

    @property
    def selected_quote_category(self) -> str:
        return (
            self.get_setting(settings.SELECTED_QUOTE_CATEGORY_KEY)
            or settings.DEFAULT_QUOTE_CATEGORY
        )

    def select_quote_category(self, category: str) -> None:
        if category not in self.quotes().categories:
            raise ValueError(f"Unknown quote category: {category}")
        self.set_setting(settings.SELECTED_QUOTE_CATEGORY_KEY, category)

    def random_quote(
        self, category: str | None = None, rng: Optional[random.Random] = None
    ) -> Quote | None:
        return self.quotes().random_quote(category or self.selected_quote_category, rng)

    def add_quote_category(self, name: str) -> bool:
        """Create an empty category; returns False when it already exists."""
        name = name.strip()
        if not name:
            raise ValueError("Quote category name is empty")
        quotes = self.quotes()
        if name in quotes.categories:
            return False
        quotes.categories[name] = []
        self._save_quotes(quotes)
        return True

    def delete_quote_category(self, name: str) -> bool:
        quotes = self.quotes()
        if quotes.categories.pop(name, None) is None:
            return False
        self._save_quotes(quotes)
        if self.get_setting(settings.SELECTED_QUOTE_CATEGORY_KEY) == name:
            remaining = quotes.category_names
            self.set_setting(
                settings.SELECTED_QUOTE_CATEGORY_KEY, remaining[0] if remaining else None
            )
        return True

    def _copy_category(self, source: str, target: str, *, keep_source: bool) -> None:
        target = target.strip()
        quotes = self.quotes()
        if source not in quotes.categories:
            raise RecordNotFoundError("quote category", source)
        if not target or target in quotes.categories:
            raise ValueError(f"Quote category name unavailable: {target!r}")
        texts = quotes.categories[source] if keep_source else quotes.categories.pop(source)
        quotes.categories[target] = list(texts)
        self._save_quotes(quotes)

    def rename_quote_category(self, old_name: str, new_name: str) -> None:
        self._copy_category(old_name, new_name, keep_source=False)
        if self.get_setting(settings.SELECTED_QUOTE_CATEGORY_KEY) == old_name:
            self.set_setting(settings.SELECTED_QUOTE_CATEGORY_KEY, new_name.strip())

    def duplicate_quote_category(self, name: str, new_name: str | None = None) -> str:
        target = (new_name or f"{name} (copy)").strip()
        self._copy_category(name, target, keep_source=True)
        return target

    def add_quote(self, category: str, text: str) -> Quote:
        """Append a quote, creating ``category`` when it does not exist yet."""
        text = text.strip()
        if not text:
            raise ValueError("Quote text is empty")
        quotes = self.quotes()
        quotes.categories.setdefault(category, []).append(text)
        self._save_quotes(quotes)
        return Quote(text=text, category=category)

    def update_quote(self, category: str, old_text: str, new_text: str) -> Quote:
        new_text = new_text.strip()
        if not new_text:
            raise ValueError("Quote text is empty")
        quotes = self.quotes()
        texts = quotes.categories.get(category, [])
        if old_text not in texts:
            raise RecordNotFoundError("quote", old_text)
        texts[:] = [text for text in texts if text != old_text]
        texts.append(new_text)
        self._save_quotes(quotes)
        return Quote(text=new_text, category=category)

    def delete_quote(self, category: str, text: str) -> bool:
        quotes = self.quotes()
        texts = quotes.categories.get(category, [])
        if text not in texts:
            return False
        texts[:] = [entry for entry in texts if entry != text]
        self._save_quotes(quotes)
        return True

    def duplicate_quote(self, category: str, text: str) -> Quote:
        if text not in self.quotes().categories.get(category, []):
            raise RecordNotFoundError("quote", text)
        return self.add_quote(category, f"{text} (copy)")
