from __future__ import annotations

import json
from pathlib import Path

import pytest

from fair_play.cli import main
from fair_play.io import load_lineups_from_json
from lineup_builders import write_team_export


def test_report_prints_summary_and_writes_json(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    write_team_export(tmp_path, player_count=10, games=3)
    out = tmp_path / "out" / "report.json"

    assert main(["--data-dir", str(tmp_path), "report", "--out-json", str(out)]) == 0

    printed = capsys.readouterr().out
    assert "Fair play report for team t1" in printed
    assert "Season fair play score" in printed
    report = json.loads(out.read_text(encoding="utf-8"))
    assert set(report["windows"]) == {"last_game", "last_3_games", "last_5_games", "last_10_games", "season"}


def test_generate_writes_lineup(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    write_team_export(tmp_path, player_count=12, games=3)
    out = tmp_path / "next.json"

    code = main(["--data-dir", str(tmp_path), "generate", "--innings", "5", "--game-id", "g04", "--out-json", str(out)])
    assert code == 0
    assert "Lineup generated-g04 (5 innings)" in capsys.readouterr().out

    (lineup,) = load_lineups_from_json(out)
    assert lineup.game_id == "g04"
    assert len(lineup.innings) == 5
    assert lineup.unfilled_slots == ()


def test_generate_rotation_plans_several_games(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    write_team_export(tmp_path, player_count=11, games=2)

    assert main(["--data-dir", str(tmp_path), "--team-id", "t1", "generate", "--games", "3", "--innings", "4"]) == 0
    printed = capsys.readouterr().out
    assert "Lineup generated-t1-1" in printed
    assert "Lineup generated-t1-3" in printed


def test_generate_optimal_rejects_multiple_games(tmp_path: Path) -> None:
    write_team_export(tmp_path, player_count=10, games=2)
    assert main(["--data-dir", str(tmp_path), "generate", "--optimal", "--games", "2"]) == 2


def test_validate_stored_lineup(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    write_team_export(tmp_path, player_count=10, games=3)

    assert main(["--data-dir", str(tmp_path), "validate", "--game-id", "g02"]) == 0
    printed = capsys.readouterr().out
    assert '"rule": "positions_filled"' in printed


def test_validate_unknown_game(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    write_team_export(tmp_path, player_count=10, games=2)

    assert main(["--data-dir", str(tmp_path), "validate", "--game-id", "nope"]) == 1
    assert "No lineup found" in capsys.readouterr().err


def test_missing_data_dir_is_reported(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    assert main(["--data-dir", str(tmp_path / "missing"), "report"]) == 1
    assert capsys.readouterr().err.startswith("error:")
