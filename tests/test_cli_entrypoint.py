from __future__ import annotations

import importlib
from pathlib import Path

import pytest


def test_console_entrypoint_exposes_app() -> None:
    pytest.importorskip("typer")

    module = importlib.import_module("rehearsal_coach.main")

    assert hasattr(module, "app")
    assert module.app is not None


def test_analyze_command_reports_narrative(monkeypatch, tmp_path: Path) -> None:
    pytest.importorskip("typer")
    from typer.testing import CliRunner

    from rehearsal_coach import main
    from rehearsal_coach.config import settings

    monkeypatch.setattr(settings, "records_path", str(tmp_path / "stories.json"))
    result = CliRunner().invoke(
        main.app,
        ["analyze", "--text", "At first it was calm. However it broke. Finally we fixed it.", "--duration", "90"],
    )

    assert result.exit_code == 0
    assert "'percentage': 100" in result.output
    assert "01:30" in result.output


def test_analyze_command_compares_with_prepared_text(monkeypatch, tmp_path: Path) -> None:
    pytest.importorskip("typer")
    from typer.testing import CliRunner

    from rehearsal_coach import main
    from rehearsal_coach.config import settings

    monkeypatch.setattr(settings, "records_path", str(tmp_path / "stories.json"))
    text = "At first it was calm. However it broke. Finally we fixed it."
    result = CliRunner().invoke(main.app, ["analyze", "--text", text, "--duration", "90", "--prepared", text])

    assert result.exit_code == 0
    assert "'similarity': 100" in result.output


def test_practice_command_replays_script_and_saves(monkeypatch, tmp_path: Path) -> None:
    pytest.importorskip("typer")
    from typer.testing import CliRunner

    from rehearsal_coach import main
    from rehearsal_coach.config import settings
    from rehearsal_coach.models import PracticeRecord
    from rehearsal_coach.repository import JsonPracticeRepository

    records_path = tmp_path / "stories.json"
    monkeypatch.setattr(settings, "records_path", str(records_path))
    JsonPracticeRepository(records_path).save(PracticeRecord(id="launch", title="Launch weekend"))
    script = tmp_path / "attempt.txt"
    script.write_text("At first the launch looked routine.\nBut the database failed.\nEventually we recovered.\n", encoding="utf-8")

    result = CliRunner().invoke(
        main.app,
        ["practice", "launch", "--script-file", str(script), "--duration", "90", "--rating", "4"],
    )

    assert result.exit_code == 0, result.output
    stored = JsonPracticeRepository(records_path).load("launch")
    assert stored.practice_count == 1
    assert stored.feedback["self_rating"] == 4
    assert stored.feedback["narrative"]["score"] == 3
    assert stored.transcript.startswith("At first the launch looked routine.")


def test_practice_command_fails_for_unknown_story(monkeypatch, tmp_path: Path) -> None:
    pytest.importorskip("typer")
    from typer.testing import CliRunner

    from rehearsal_coach import main
    from rehearsal_coach.config import settings

    monkeypatch.setattr(settings, "records_path", str(tmp_path / "stories.json"))
    result = CliRunner().invoke(main.app, ["practice", "missing", "--script-file", __file__, "--rating", "3"])

    assert result.exit_code == 1
