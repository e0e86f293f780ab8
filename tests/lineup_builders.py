from __future__ import annotations

import json
from datetime import datetime, timedelta
from pathlib import Path
from typing import Dict, Mapping, Optional, Sequence, Tuple

from fair_play.data import (
    FIELD_POSITIONS,
    Game,
    Inning,
    InningAssignment,
    Lineup,
    LineupStatus,
    Player,
    Position,
)
from fair_play.io import lineup_to_document


SEASON_START = datetime(2024, 4, 6, 10, 0)


def make_player(
    player_id: str,
    *,
    primary: Sequence[Position] = (),
    secondary: Sequence[Position] = (),
    active: bool = True,
    jersey: Optional[str] = None,
) -> Player:
    return Player(
        player_id=player_id,
        first_name="Player",
        last_name=player_id.upper(),
        jersey_number=jersey,
        primary_positions=tuple(primary),
        secondary_positions=tuple(secondary),
        active=active,
    )


def make_roster(n: int, *, prefix: str = "p") -> list[Player]:
    return [make_player(f"{prefix}{i:02d}") for i in range(1, n + 1)]


def make_inning(
    number: int,
    slots: Mapping[Position, Optional[str]],
    bench: Sequence[str] = (),
) -> Inning:
    assignments = [InningAssignment(inning=number, position=pos, player_id=pid) for pos, pid in slots.items()]
    assignments.extend(InningAssignment(inning=number, position=Position.BENCH, player_id=pid) for pid in bench)
    return Inning(number=number, assignments=tuple(assignments))


def make_lineup(
    innings: Sequence[Inning],
    *,
    lineup_id: str = "l1",
    game_id: Optional[str] = "g1",
    status: LineupStatus = LineupStatus.FINAL,
) -> Lineup:
    return Lineup(lineup_id=lineup_id, team_id="t1", innings=tuple(innings), game_id=game_id, status=status)


def make_game(game_id: str, day: int, *, innings: int = 6, opponent: str = "Rivals") -> Game:
    return Game(
        game_id=game_id,
        team_id="t1",
        opponent=opponent,
        date=SEASON_START + timedelta(days=day),
        innings=innings,
    )


def single_player_lineup(
    player_id: str,
    positions: Sequence[Position],
    *,
    game_id: str = "g1",
    status: LineupStatus = LineupStatus.FINAL,
) -> Lineup:
    """A lineup where ``player_id`` holds ``positions[i]`` in inning ``i + 1``."""

    innings = []
    for n, pos in enumerate(positions, start=1):
        if pos is Position.BENCH:
            innings.append(make_inning(n, {}, bench=[player_id]))
        else:
            innings.append(make_inning(n, {pos: player_id}))
    return make_lineup(innings, lineup_id=f"l-{game_id}", game_id=game_id, status=status)


def rotating_season(
    player_ids: Sequence[str],
    *,
    games: int,
    innings_per_game: int,
    fixed: Mapping[str, Position] | None = None,
    positions: Sequence[Position] = FIELD_POSITIONS,
) -> Tuple[Tuple[Game, ...], Dict[str, Lineup]]:
    """A season of final lineups that rotate players through positions and bench.

    Players in ``fixed`` hold their position every inning; everyone else
    cycles through the remaining positions and the bench.
    """

    fixed = dict(fixed or {})
    rotating = [pid for pid in player_ids if pid not in fixed]
    open_positions = [pos for pos in positions if pos not in fixed.values()]
    bench_count = max(0, len(rotating) - len(open_positions))
    shift = bench_count or 1

    game_list = []
    lineups: Dict[str, Lineup] = {}
    t = 0
    for g in range(games):
        game_id = f"g{g + 1:02d}"
        game_list.append(make_game(game_id, day=7 * g, innings=innings_per_game))
        innings = []
        for n in range(1, innings_per_game + 1):
            slots: Dict[Position, Optional[str]] = {pos: pid for pid, pos in fixed.items()}
            bench = []
            for j, pid in enumerate(rotating):
                slot = (j + shift * t) % len(rotating)
                if slot < len(open_positions):
                    slots[open_positions[slot]] = pid
                else:
                    bench.append(pid)
            innings.append(make_inning(n, slots, bench=bench))
            t += 1
        lineups[game_id] = make_lineup(innings, lineup_id=f"l-{game_id}", game_id=game_id)

    return tuple(game_list), lineups


def write_team_export(
    data_dir: Path,
    *,
    player_count: int = 10,
    games: int = 3,
    innings_per_game: int = 6,
    draft_last: bool = True,
) -> Path:
    """Write roster.json, games.json and lineups.json for team ``t1`` under ``data_dir``.

    Lineups come from :func:`rotating_season`; the most recent one is left as a
    draft when ``draft_last`` is set.
    """

    data_dir.mkdir(parents=True, exist_ok=True)
    player_ids = [f"p{i:02d}" for i in range(1, player_count + 1)]
    game_list, lineups = rotating_season(player_ids, games=games, innings_per_game=innings_per_game)

    roster_docs = [
        {
            "id": pid,
            "teamId": "t1",
            "firstName": "Player",
            "lastName": pid.upper(),
            "jerseyNumber": str(n),
            "primaryPositions": ["P"] if n == 1 else [],
            "active": True,
        }
        for n, pid in enumerate(player_ids, start=1)
    ]
    game_docs = [
        {
            "id": g.game_id,
            "teamId": g.team_id,
            "opponent": g.opponent,
            "date": g.date.isoformat(),
            "innings": g.innings,
        }
        for g in game_list
    ]
    lineup_docs = []
    for n, g in enumerate(game_list, start=1):
        doc = lineup_to_document(lineups[g.game_id])
        if draft_last and n == len(game_list):
            doc["status"] = LineupStatus.DRAFT.value
        lineup_docs.append(doc)

    (data_dir / "roster.json").write_text(json.dumps(roster_docs), encoding="utf-8")
    (data_dir / "games.json").write_text(json.dumps(game_docs), encoding="utf-8")
    (data_dir / "lineups.json").write_text(json.dumps(lineup_docs), encoding="utf-8")
    return data_dir
