"""Command-line interface for dnd_sheet."""

from __future__ import annotations

import argparse
import sys
from pathlib import Path

from sqlalchemy import inspect

from dnd_sheet.config import get_cache_dir, get_data_dir, get_db_path, get_log_level
from dnd_sheet.db.engine import create_db_and_tables, get_engine
from dnd_sheet.errors import DndSheetError, ImportSourceError, RecordNotFoundError
from dnd_sheet.logging_config import configure_logging
from dnd_sheet.models.character import ABILITIES, Character
from dnd_sheet.models.note import Note, NoteCategory
from dnd_sheet.models.relationship import Relationship
from dnd_sheet.reference.cache import FileCache
from dnd_sheet.reference.library import ReferenceLibrary
from dnd_sheet.state.app_state import EXPORT_FORMATS, AppState
from dnd_sheet.transfer.export import write_export_file

EXPORT_SUFFIXES = {
    "basic": "export",
    "extended": "extended_export",
    "external": "lss",
}


def _app_state(load_reference: bool = False) -> AppState:
    return AppState.from_config(load_reference=load_reference)


def _require_character(state: AppState, character_id: str) -> Character:
    character = state.get_character(character_id)
    if character is None:
        raise RecordNotFoundError("characters", character_id)
    return character


def _init_db() -> None:
    engine = get_engine()
    create_db_and_tables(engine)
    print(f"Database initialized at {get_db_path()}")


def _info() -> None:
    engine = get_engine()
    inspector = inspect(engine)
    tables = inspector.get_table_names()
    print(f"Database path: {get_db_path()}")
    print(f"Data dir: {get_data_dir()}")
    print(f"Cache dir: {get_cache_dir()}")
    print("Tables:")
    for table in tables:
        print(f"- {table}")


def _create_character(args: argparse.Namespace) -> None:
    state = _app_state()
    fields = {
        "name": args.name,
        "race": args.race,
        "character_class": args.character_class,
        "background": args.background,
        "alignment": args.alignment,
        "level": args.level,
    }
    for attribute in ABILITIES:
        value = getattr(args, attribute)
        if value is not None:
            fields[attribute] = value
    if args.max_hp is not None:
        fields["max_hit_points"] = args.max_hp
        fields["hit_points"] = args.max_hp
    character = Character.model_validate(fields)
    state.add_character(character)
    print(f"Created character {character.id}: {character.name}")


def _list_characters() -> None:
    state = _app_state()
    selected = state.get_setting("selected_character_id")
    characters = state.list_characters()
    if not characters:
        print("No characters.")
        return
    for character in characters:
        marker = "*" if character.id == selected else " "
        print(
            f"{marker} {character.id}  {character.name} "
            f"({character.race} {character.character_class} {character.level})"
        )


def _show_character(character_id: str) -> None:
    state = _app_state()
    character = _require_character(state, character_id)
    print(f"Character {character.id}: {character.name}")
    print(
        f"- {character.race} {character.character_class}"
        f"{f' ({character.subclass})' if character.subclass else ''}, "
        f"level {character.total_level}"
    )
    print(f"- Background: {character.background}; alignment: {character.alignment}")
    print(
        f"- HP {character.hit_points}/{character.max_hit_points}"
        f" (+{character.temporary_hit_points} temp), AC {character.armor_class},"
        f" speed {character.speed}"
    )
    print("Abilities:")
    for attribute, short in ABILITIES.items():
        score = getattr(character, attribute)
        modifier = character.ability_modifier(attribute)
        print(f"- {short.upper()} {score} ({modifier:+d})")
    print(f"Passive perception: {character.passive_perception}")
    if len(character.classes) > 1:
        print("Classes:")
        for entry in character.classes:
            print(f"- {entry.name} {entry.level}")

    relationships = state.get_relationships(character.id)
    print(f"Relationships: {len(relationships)}")
    for relationship in relationships:
        print(
            f"- {relationship.name} [{relationship.status.value}]"
            f" level {relationship.relationship_level}"
        )
    notes = state.get_notes(character.id)
    print(f"Notes: {len(notes)}")
    for note in notes:
        print(f"- {note.title} ({note.category.value}, importance {note.importance})")


def _delete_character(character_id: str) -> None:
    state = _app_state()
    if not state.delete_character(character_id):
        raise RecordNotFoundError("characters", character_id)
    print(f"Deleted character {character_id}")


def _select_character(character_id: str | None, clear: bool) -> None:
    state = _app_state()
    if clear or character_id is None:
        state.deselect_character()
        print("Selection cleared")
        return
    character = state.select_character(character_id)
    print(f"Selected character {character.id}: {character.name}")


def _export_character(character_id: str, export_format: str, output: str | None) -> None:
    state = _app_state(load_reference=export_format == "extended")
    character = _require_character(state, character_id)
    payload = state.export_character(character_id, export_format)
    if output is None:
        print(payload)
        return
    path = write_export_file(
        payload, output, character.name, suffix=EXPORT_SUFFIXES[export_format]
    )
    print(f"Exported {character.name} to {path}")


def _import_character(path: str) -> None:
    try:
        text = Path(path).read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        raise ImportSourceError(f"Cannot read {path}: {exc}") from exc
    state = _app_state()
    result = state.import_character(text)
    print(
        f"Imported {result.character.name} as {result.character.id}"
        f" ({result.format} format, {len(result.relationships)} relationships,"
        f" {len(result.notes)} notes)"
    )


def _add_relationship(args: argparse.Namespace) -> None:
    state = _app_state()
    _require_character(state, args.character_id)
    relationship = Relationship(
        name=args.name,
        description=args.description or "",
        relationship_level=args.level,
        organization=args.organization,
        character_id=args.character_id,
    )
    state.add_relationship(relationship)
    print(f"Added relationship {relationship.id}: {relationship.name}")


def _add_note(args: argparse.Namespace) -> None:
    state = _app_state()
    _require_character(state, args.character_id)
    note = Note(
        title=args.title,
        description=args.description or "",
        importance=args.importance,
        category=NoteCategory(args.category),
        character_id=args.character_id,
    )
    state.add_note(note)
    print(f"Added note {note.id}: {note.title}")


def _reference_info() -> None:
    library = ReferenceLibrary(cache=FileCache()).load()
    print(f"Data dir: {library.data_dir}")
    for name, count in library.counts().items():
        line = f"- {name}: {count}"
        if name in library.errors:
            line += f" (error: {library.errors[name]})"
        print(line)
    line = f"- quote categories: {len(library.quotes.categories)}"
    if "quotes" in library.errors:
        line += f" (error: {library.errors['quotes']})"
    print(line)
    for name, skipped in sorted(library.skipped.items()):
        print(f"Skipped {skipped} malformed entries in {name}")


def _quote_categories() -> None:
    state = _app_state(load_reference=True)
    selected = state.selected_quote_category
    for category in state.quote_categories():
        marker = "*" if category == selected else " "
        print(f"{marker} {category} ({len(state.quotes_for(category))} quotes)")


def _random_quote(category: str | None) -> None:
    state = _app_state(load_reference=True)
    quote = state.random_quote(category)
    if quote is None:
        print(f"No quotes in {category or state.selected_quote_category}")
        return
    print(f"[{quote.category}] {quote.text}")


def _add_quote(category: str, text: str) -> None:
    state = _app_state(load_reference=True)
    quote = state.add_quote(category, text)
    print(f"Added quote to {quote.category}")


def _cache_info() -> None:
    cache = FileCache()
    print(f"Cache dir: {cache.cache_dir}")
    for key, value in cache.info().items():
        print(f"- {key}: {value}")


def _clear_cache(expired_only: bool) -> None:
    cache = FileCache()
    if expired_only:
        removed = cache.cleanup_expired()
        print(f"Removed {removed} expired cache entries")
        return
    cache.clear_all()
    print(f"Cleared cache at {cache.cache_dir}")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="dnd_sheet CLI")
    parser.add_argument("--log-level", default=None, help="Override log level")
    parser.add_argument(
        "--log-json", action="store_true", help="Emit JSON log lines"
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    subparsers.add_parser("init-db", help="Initialize the database schema")
    subparsers.add_parser("info", help="Show configured paths and table names")

    create_character_parser = subparsers.add_parser(
        "create-character", help="Create a character"
    )
    create_character_parser.add_argument("--name", required=True)
    create_character_parser.add_argument("--race", required=True)
    create_character_parser.add_argument(
        "--class", dest="character_class", required=True
    )
    create_character_parser.add_argument("--background", required=True)
    create_character_parser.add_argument("--alignment", required=True)
    create_character_parser.add_argument("--level", type=int, default=1)
    create_character_parser.add_argument("--max-hp", type=int)
    for attribute, short in ABILITIES.items():
        create_character_parser.add_argument(
            f"--{short}", dest=attribute, type=int, help=f"{attribute} score"
        )

    subparsers.add_parser("list-characters", help="List stored characters")

    show_character_parser = subparsers.add_parser(
        "show-character", help="Show a character and related records"
    )
    show_character_parser.add_argument("--id", required=True)

    delete_character_parser = subparsers.add_parser(
        "delete-character", help="Delete a character and everything it owns"
    )
    delete_character_parser.add_argument("--id", required=True)

    select_character_parser = subparsers.add_parser(
        "select-character", help="Select the active character"
    )
    select_character_parser.add_argument("--id")
    select_character_parser.add_argument(
        "--clear", action="store_true", help="Clear the current selection"
    )

    export_parser = subparsers.add_parser(
        "export-character", help="Export a character as JSON"
    )
    export_parser.add_argument("--id", required=True)
    export_parser.add_argument(
        "--format", dest="export_format", choices=EXPORT_FORMATS, default="extended"
    )
    export_parser.add_argument(
        "--output", help="Directory to write the export file into"
    )

    import_parser = subparsers.add_parser(
        "import-character", help="Import a character from a JSON file"
    )
    import_parser.add_argument("path")

    relationship_parser = subparsers.add_parser(
        "add-relationship", help="Add an NPC relationship to a character"
    )
    relationship_parser.add_argument("--character-id", required=True)
    relationship_parser.add_argument("--name", required=True)
    relationship_parser.add_argument("--description")
    relationship_parser.add_argument("--level", type=int, default=5)
    relationship_parser.add_argument("--organization")

    note_parser = subparsers.add_parser("add-note", help="Add a note to a character")
    note_parser.add_argument("--character-id", required=True)
    note_parser.add_argument("--title", required=True)
    note_parser.add_argument("--description")
    note_parser.add_argument("--importance", type=int, default=3)
    note_parser.add_argument(
        "--category",
        choices=[category.value for category in NoteCategory],
        default=NoteCategory.ALL.value,
    )

    subparsers.add_parser(
        "reference-info", help="Load reference assets and show counts"
    )
    subparsers.add_parser("quote-categories", help="List quote categories")
    random_quote_parser = subparsers.add_parser(
        "random-quote", help="Print a random quote"
    )
    random_quote_parser.add_argument("--category")
    add_quote_parser = subparsers.add_parser("add-quote", help="Add a custom quote")
    add_quote_parser.add_argument("--category", required=True)
    add_quote_parser.add_argument("--text", required=True)

    subparsers.add_parser("cache-info", help="Show cache location and size")
    clear_cache_parser = subparsers.add_parser(
        "clear-cache", help="Remove cached reference data"
    )
    clear_cache_parser.add_argument(
        "--expired-only", action="store_true", help="Only drop expired entries"
    )

    return parser


def main() -> None:
    parser = build_parser()
    args = parser.parse_args()
    configure_logging(level=args.log_level or get_log_level(), json_format=args.log_json)

    try:
        if args.command == "init-db":
            _init_db()
        elif args.command == "info":
            _info()
        elif args.command == "create-character":
            _create_character(args)
        elif args.command == "list-characters":
            _list_characters()
        elif args.command == "show-character":
            _show_character(args.id)
        elif args.command == "delete-character":
            _delete_character(args.id)
        elif args.command == "select-character":
            _select_character(args.id, args.clear)
        elif args.command == "export-character":
            _export_character(args.id, args.export_format, args.output)
        elif args.command == "import-character":
            _import_character(args.path)
        elif args.command == "add-relationship":
            _add_relationship(args)
        elif args.command == "add-note":
            _add_note(args)
        elif args.command == "reference-info":
            _reference_info()
        elif args.command == "quote-categories":
            _quote_categories()
        elif args.command == "random-quote":
            _random_quote(args.category)
        elif args.command == "add-quote":
            _add_quote(args.category, args.text)
        elif args.command == "cache-info":
            _cache_info()
        elif args.command == "clear-cache":
            _clear_cache(args.expired_only)
        else:
            parser.error(f"Unknown command: {args.command}")
    except (DndSheetError, ValueError) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
