"""Unit tests for the command-line entry points."""

from __future__ import annotations

import json
import logging
from pathlib import Path
import zipfile

import pytest

from bundlefix.cli.main import build_arg_parser, main, resolve_collisions_main
from bundlefix.core.config.loader import MAIN_IDENTIFIER_ENV

MAIN_ID = "com.example.app"


@pytest.fixture(autouse=True)
def _isolate(monkeypatch: pytest.MonkeyPatch):
    monkeypatch.delenv(MAIN_IDENTIFIER_ENV, raising=False)
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)


def test_parser_accepts_all_flags() -> None:
    args = build_arg_parser().parse_args(
        [
            "resolve",
            "App.ipa",
            MAIN_ID,
            "out.ipa",
            "--mode",
            "unconditional",
            "--scope",
            "bundles",
            "--subtree",
            "Frameworks",
            "--subtree",
            "PlugIns",
            "--report-format",
            "yaml",
            "--json-logs",
        ]
    )
    assert args.cmd == "resolve"
    assert args.output == "out.ipa"
    assert args.subtree == ["Frameworks", "PlugIns"]
    assert args.json_logs


def test_resolve_command_succeeds(collision_ipa: Path, tmp_path: Path) -> None:
    output = tmp_path / "out" / "Fixed.ipa"

    code = main(["resolve", str(collision_ipa), MAIN_ID, str(output)])

    assert code == 0
    assert zipfile.is_zipfile(output)
    report = json.loads((tmp_path / "out" / "Fixed.report.json").read_text())
    assert report["collisions_fixed"] == 2


def test_positional_entry_point_uses_default_output(collision_ipa: Path) -> None:
    code = resolve_collisions_main([str(collision_ipa), MAIN_ID])

    assert code == 0
    assert (collision_ipa.parent / "App_fixed.ipa").is_file()


def test_main_identifier_from_environment(
    collision_ipa: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    monkeypatch.setenv(MAIN_IDENTIFIER_ENV, MAIN_ID)

    assert main(["resolve", str(collision_ipa)]) == 0


def test_missing_main_identifier_fails(
    collision_ipa: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    assert main(["resolve", str(collision_ipa)]) == 1
    assert "Main identifier is empty" in capsys.readouterr().err
    assert not (collision_ipa.parent / "App_fixed.ipa").exists()


def test_no_application_root_exits_1(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    archive = tmp_path / "Empty.ipa"
    with zipfile.ZipFile(archive, "w") as zf:
        zf.writestr("Payload/readme.txt", b"no app")

    code = resolve_collisions_main([str(archive), MAIN_ID])

    assert code == 1
    err = capsys.readouterr().err
    assert "ERROR (extract)" in err
    assert "No application root" in err
    assert not (tmp_path / "Empty_fixed.ipa").exists()


def test_application_root_file_exits_1(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    archive = tmp_path / "Flat.ipa"
    with zipfile.ZipFile(archive, "w") as zf:
        zf.writestr("Payload/App.app", b"not a directory")

    code = resolve_collisions_main([str(archive), MAIN_ID])

    assert code == 1
    err = capsys.readouterr().err
    assert "ERROR (extract)" in err
    assert "Application root is not a directory" in err
    assert "Traceback" not in err
    assert not (tmp_path / "Flat_fixed.ipa").exists()


def test_scan_command_writes_nothing(
    collision_ipa: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    before = sorted(p.name for p in collision_ipa.parent.iterdir())

    code = main(["scan", str(collision_ipa), MAIN_ID])

    assert code == 0
    out = capsys.readouterr().out
    assert "Collisions found: 2" in out
    assert "Would change: 2" in out
    assert sorted(p.name for p in collision_ipa.parent.iterdir()) == before


def test_bad_config_exits_1(collision_ipa: Path, capsys: pytest.CaptureFixture[str]) -> None:
    assert main(["resolve", str(collision_ipa), MAIN_ID, "--log-level", "LOUD"]) == 1
    assert "ERROR (config)" in capsys.readouterr().err
