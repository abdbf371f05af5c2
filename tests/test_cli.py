from __future__ import annotations

import json
from pathlib import Path
import sys

import pytest

sys.path.append(str(Path(__file__).resolve().parents[1] / "src"))

from dnd_sheet import cli


@pytest.fixture
def cli_env(tmp_path: Path, monkeypatch) -> Path:
    monkeypatch.setenv("DND_SHEET_DB_PATH", str(tmp_path / "sheet.db"))
    monkeypatch.setenv("DND_SHEET_DATA_DIR", str(tmp_path / "assets"))
    monkeypatch.setenv("DND_SHEET_CACHE_DIR", str(tmp_path / "cache"))
    monkeypatch.setenv("DND_SHEET_LOG_LEVEL", "WARNING")
    return tmp_path


def _run(monkeypatch, capsys, *args: str) -> str:
    monkeypatch.setattr(sys, "argv", ["dnd-sheet", *args])
    cli.main()
    return capsys.readouterr().out


def _create(monkeypatch, capsys, name: str = "Lia") -> str:
    out = _run(
        monkeypatch,
        capsys,
        "create-character",
        "--name",
        name,
        "--race",
        "Elf",
        "--class",
        "Wizard",
        "--background",
        "Sage",
        "--alignment",
        "Neutral Good",
        "--level",
        "3",
        "--int",
        "17",
        "--max-hp",
        "18",
    )
    return out.split("Created character ", 1)[1].split(":", 1)[0]


def test_init_db_and_info(cli_env: Path, monkeypatch, capsys) -> None:
    out = _run(monkeypatch, capsys, "init-db")
    assert "Database initialized at" in out
    assert (cli_env / "sheet.db").exists()

    out = _run(monkeypatch, capsys, "info")
    assert "- stored_records" in out
    assert "- app_settings" in out


def test_character_lifecycle(cli_env: Path, monkeypatch, capsys) -> None:
    character_id = _create(monkeypatch, capsys)

    out = _run(monkeypatch, capsys, "list-characters")
    assert character_id in out
    assert "Lia (Elf Wizard 3)" in out

    _run(monkeypatch, capsys, "select-character", "--id", character_id)
    out = _run(monkeypatch, capsys, "list-characters")
    assert f"* {character_id}" in out

    _run(
        monkeypatch,
        capsys,
        "add-relationship",
        "--character-id",
        character_id,
        "--name",
        "Mara",
        "--level",
        "8",
    )
    _run(
        monkeypatch,
        capsys,
        "add-note",
        "--character-id",
        character_id,
        "--title",
        "Find the map",
        "--category",
        "quests",
    )

    out = _run(monkeypatch, capsys, "show-character", "--id", character_id)
    assert "INT 17 (+3)" in out
    assert "HP 18/18" in out
    assert "- Mara [friend] level 8" in out
    assert "- Find the map (quests, importance 3)" in out

    out = _run(monkeypatch, capsys, "delete-character", "--id", character_id)
    assert f"Deleted character {character_id}" in out
    out = _run(monkeypatch, capsys, "list-characters")
    assert "No characters." in out


def test_export_and_import(cli_env: Path, monkeypatch, capsys) -> None:
    character_id = _create(monkeypatch, capsys)
    _run(
        monkeypatch,
        capsys,
        "add-relationship",
        "--character-id",
        character_id,
        "--name",
        "Mara",
    )

    out = _run(
        monkeypatch,
        capsys,
        "export-character",
        "--id",
        character_id,
        "--format",
        "extended",
        "--output",
        str(cli_env / "exports"),
    )
    path = cli_env / "exports" / "Lia_extended_export.json"
    assert f"to {path}" in out
    assert json.loads(path.read_text(encoding="utf-8"))["character"]["name"] == "Lia"

    out = _run(monkeypatch, capsys, "import-character", str(path))
    assert "(extended format, 1 relationships, 0 notes)" in out

    out = _run(monkeypatch, capsys, "export-character", "--id", character_id, "--format", "external")
    assert json.loads(out)["jsonType"] == "character"

    out = _run(monkeypatch, capsys, "list-characters")
    assert out.count("Lia (Elf Wizard 3)") == 2


def test_errors_exit_non_zero(cli_env: Path, monkeypatch, capsys) -> None:
    with pytest.raises(SystemExit) as excinfo:
        _run(monkeypatch, capsys, "show-character", "--id", "missing")
    assert excinfo.value.code == 1
    assert "No characters record with id missing" in capsys.readouterr().err

    bad = cli_env / "bad.json"
    bad.write_text("{}", encoding="utf-8")
    with pytest.raises(SystemExit):
        _run(monkeypatch, capsys, "import-character", str(bad))
    assert "Unrecognized character document" in capsys.readouterr().err


def test_unreadable_import_file_reports_error(cli_env: Path, monkeypatch, capsys) -> None:
    with pytest.raises(SystemExit) as excinfo:
        _run(monkeypatch, capsys, "import-character", str(cli_env / "nowhere.json"))
    assert excinfo.value.code == 1
    assert "Error: Cannot read" in capsys.readouterr().err

    binary = cli_env / "portrait.png"
    binary.write_bytes(b"\xff\xfe\x00bad")
    with pytest.raises(SystemExit) as excinfo:
        _run(monkeypatch, capsys, "import-character", str(binary))
    assert excinfo.value.code == 1
    assert "Error: Cannot read" in capsys.readouterr().err


def test_reference_and_cache_commands(cli_env: Path, monkeypatch, capsys) -> None:
    assets = cli_env / "assets"
    assets.mkdir()
    (assets / "feats.json").write_text(
        json.dumps([{"name": "Alert"}, {"name": "Lucky"}]), encoding="utf-8"
    )

    out = _run(monkeypatch, capsys, "reference-info")
    assert "- feats: 2" in out
    assert "- spells: 0 (error: Asset not found: spells.json)" in out

    out = _run(monkeypatch, capsys, "cache-info")
    assert "- entries: 1" in out

    out = _run(monkeypatch, capsys, "clear-cache", "--expired-only")
    assert "Removed 0 expired cache entries" in out

    _run(monkeypatch, capsys, "clear-cache")
    out = _run(monkeypatch, capsys, "cache-info")
    assert "- entries: 0" in out
