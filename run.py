from __future__ import annotations

import json
from pathlib import Path

from fair_play.generator import generate_lineup
from fair_play.io import lineup_to_document
from fair_play.main import build_fair_play_report, build_histories, configure_logging, load_team_snapshot
from fair_play.solution import dumps_team_report_pretty
from fair_play.validation import get_fair_play_issues


def main() -> None:
    repo_root = Path(__file__).resolve().parent
    data_dir = repo_root / "data"
    output_dir = repo_root / "output"
    output_dir.mkdir(parents=True, exist_ok=True)

    configure_logging()
    snapshot = load_team_snapshot(data_dir)

    report = build_fair_play_report(snapshot)
    (output_dir / "fair_play_report.json").write_text(dumps_team_report_pretty(report), encoding="utf-8")

    # Optional next-game request.
    # next_game.json format:
    #   {"game_id": "g12", "innings": 6}
    next_game_path = data_dir / "next_game.json"
    if next_game_path.exists():
        raw = json.loads(next_game_path.read_text(encoding="utf-8-sig"))
        histories = build_histories(snapshot)
        roster = list(snapshot.roster.values())
        lineup = generate_lineup(
            roster,
            int(raw.get("innings", 6)),
            histories,
            team_id=snapshot.team_id,
            game_id=raw.get("game_id"),
            policy=snapshot.policy,
        )
        payload = {
            "lineup": lineup_to_document(lineup),
            "issues": get_fair_play_issues(lineup, roster, histories, policy=snapshot.policy),
        }
        (output_dir / "next_lineup.json").write_text(json.dumps(payload, indent=2), encoding="utf-8")

    print(dumps_team_report_pretty(report))


if __name__ == "__main__":
    main()
