"""Command-line entry point for :mod:`fair_play`.

Reads a document-store export (``roster.json``, ``games.json``,
``lineups.json`` and an optional ``policy.json``) from a data directory.

Example
-------
python -m fair_play.cli report --data-dir ./data
python -m fair_play.cli generate --data-dir ./data --innings 6 --game-id g42
python -m fair_play.cli validate --data-dir ./data --game-id g41
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Sequence

from fair_play.data import FIELD_POSITIONS, LINEUP_POSITIONS, Lineup
from fair_play.generator import generate_lineup, generate_rotation
from fair_play.io import dump_lineups_to_json
from fair_play.main import (
    TeamSnapshot,
    build_fair_play_report,
    build_histories,
    configure_logging,
    load_team_snapshot,
    solve_lineup,
)
from fair_play.solution import dumps_team_report_pretty, validation_results_to_json
from fair_play.validation import get_fair_play_issues, has_errors, validate_lineup


def _print_lineup(snapshot: TeamSnapshot, lineup: Lineup) -> None:
    print(f"Lineup {lineup.lineup_id} ({len(lineup.innings)} innings)")
    for inning in lineup.innings:
        cells = []
        for a in inning.assignments:
            player = snapshot.roster.get(a.player_id) if a.player_id else None
            cells.append(f"{a.position.value}={player.name if player else (a.player_id or '-')}")
        print(f"- Inning {inning.number}: " + ", ".join(cells))
    if lineup.unfilled_slots:
        print(f"Unfilled slots: {len(lineup.unfilled_slots)}")


def _run_report(snapshot: TeamSnapshot, args: argparse.Namespace) -> int:
    report = build_fair_play_report(snapshot)
    season = report.windows.get("season")

    print(f"Fair play report for team {report.team_id or '<unknown>'}")
    print(f"- Players: {len(report.players)}")
    if season is not None:
        print(f"- Season fair play score: {season.fair_play_score:.1f}")
        print(f"- Average playing time: {season.team_average_playing_time:.1f}%")
        if season.most_bench_time:
            print("\nMost bench time:")
            for e in season.most_bench_time:
                print(f"- {e.player_name}: {e.value:.1f}%")
        if season.needs_experience:
            print("\nNeeds experience:")
            for pid, ptype in season.needs_experience.items():
                print(f"- {snapshot.roster[pid].name if pid in snapshot.roster else pid}: {ptype}")

    out_json: Path | None = args.out_json
    if out_json is not None:
        out_json.parent.mkdir(parents=True, exist_ok=True)
        out_json.write_text(dumps_team_report_pretty(report), encoding="utf-8")
        print(f"\nWrote report to {out_json}")
    return 0


def _run_generate(snapshot: TeamSnapshot, args: argparse.Namespace) -> int:
    histories = build_histories(snapshot)
    roster = list(snapshot.roster.values())
    positions = LINEUP_POSITIONS if args.dh else FIELD_POSITIONS

    if args.optimal:
        if args.games != 1:
            print("--optimal plans a single game; drop --games", file=sys.stderr)
            return 2
        result = solve_lineup(
            roster=roster,
            inning_count=args.innings,
            history_by_player=histories,
            team_id=snapshot.team_id,
            game_id=args.game_id,
            positions=positions,
            policy=snapshot.policy,
            time_limit_seconds=args.time_limit,
            log_level=None,
        )
        if result.lineup is None:
            print(f"Optimiser finished without a lineup (status={result.status})", file=sys.stderr)
            return 1
        lineups: Sequence[Lineup] = (result.lineup,)
    elif args.games > 1:
        lineups = generate_rotation(
            roster,
            args.games,
            args.innings,
            histories,
            team_id=snapshot.team_id,
            positions=positions,
            policy=snapshot.policy,
        )
    else:
        lineups = (
            generate_lineup(
                roster,
                args.innings,
                histories,
                team_id=snapshot.team_id,
                game_id=args.game_id,
                positions=positions,
                policy=snapshot.policy,
            ),
        )

    for lineup in lineups:
        _print_lineup(snapshot, lineup)
        for issue in get_fair_play_issues(lineup, roster, histories, policy=snapshot.policy):
            print(f"  ! {issue}")

    if args.out_json is not None:
        args.out_json.parent.mkdir(parents=True, exist_ok=True)
        dump_lineups_to_json(lineups, args.out_json)
        print(f"\nWrote {len(lineups)} lineups to {args.out_json}")
    return 0


def _run_validate(snapshot: TeamSnapshot, args: argparse.Namespace) -> int:
    lineup = snapshot.lineups_by_game_id.get(args.game_id)
    if lineup is None:
        print(f"No lineup found for game {args.game_id!r}", file=sys.stderr)
        return 1

    # Validate against history from other games only.
    others = {gid: other for gid, other in snapshot.lineups_by_game_id.items() if gid != args.game_id}
    histories = build_histories(
        TeamSnapshot(
            team_id=snapshot.team_id,
            roster=snapshot.roster,
            games=snapshot.games,
            lineups_by_game_id=others,
            policy=snapshot.policy,
        )
    )
    active_ids = [p.player_id for p in snapshot.active_players]
    results = validate_lineup(lineup, active_ids, histories, policy=snapshot.policy)

    print(json.dumps(validation_results_to_json(results), indent=2))
    for issue in get_fair_play_issues(lineup, list(snapshot.roster.values()), histories, policy=snapshot.policy):
        print(f"! {issue}")
    return 1 if has_errors(results) else 0


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="fair_play")
    parser.add_argument(
        "--data-dir",
        type=Path,
        default=Path("data"),
        help="Directory containing roster.json, games.json, lineups.json (default: ./data)",
    )
    parser.add_argument("--team-id", default=None, help="Only load documents for this team")
    parser.add_argument("--verbose", action="store_true", help="Log at DEBUG level")

    sub = parser.add_subparsers(dest="command", required=True)

    report = sub.add_parser("report", help="Player and team fair-play metrics")
    report.add_argument("--out-json", type=Path, default=None, help="Write the full report to this path")

    generate = sub.add_parser("generate", help="Generate a lineup (or a multi-game rotation)")
    generate.add_argument("--innings", type=int, default=6, help="Innings per game (default: 6)")
    generate.add_argument("--games", type=int, default=1, help="Number of games to plan (default: 1)")
    generate.add_argument("--game-id", default=None, help="Game the lineup is for")
    generate.add_argument("--dh", action="store_true", help="Include a designated hitter slot")
    generate.add_argument("--optimal", action="store_true", help="Use the MILP optimiser instead of the greedy generator")
    generate.add_argument("--time-limit", type=int, default=None, help="Solver time limit in seconds")
    generate.add_argument("--out-json", type=Path, default=None, help="Write generated lineups to this path")

    validate = sub.add_parser("validate", help="Validate the stored lineup for a game")
    validate.add_argument("--game-id", required=True, help="Game whose lineup to validate")

    return parser


def main(argv: Sequence[str] | None = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(list(argv) if argv is not None else None)

    configure_logging(level=logging.DEBUG if args.verbose else logging.WARNING)

    try:
        snapshot = load_team_snapshot(args.data_dir, team_id=args.team_id)
        if args.command == "report":
            return _run_report(snapshot, args)
        if args.command == "generate":
            return _run_generate(snapshot, args)
        return _run_validate(snapshot, args)
    except (OSError, ValueError) as e:
        print(f"error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
