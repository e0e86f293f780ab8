"""I/O utilities for building the engine's domain objects.

This module owns:
- file format knowledge (document-store JSON exports)
- parsing and validation
- construction of domain objects from :mod:`fair_play.data`
- the reverse mapping used to persist generated lineups

Documents use the camelCase keys written by the persistence layer, e.g.::

    {"id": "p1", "firstName": "Ava", "lastName": "Diaz", "jerseyNumber": "7",
     "primaryPositions": ["SS"], "secondaryPositions": ["2B"], "active": true}

Keeping this separate from :mod:`fair_play.data` makes the core model easy to
test and reuse.
"""

from __future__ import annotations

import dataclasses
import difflib
import json
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Iterable, Mapping, Sequence, Tuple

from fair_play.data import (
    FairPlayPolicy,
    Game,
    Inning,
    InningAssignment,
    Lineup,
    LineupStatus,
    Player,
    Position,
    UnknownPositionError,
)


_POSITION_ALIASES: Mapping[str, str] = {
    "BENCH": "BN",
}


def parse_position_str(value: str) -> Position:
    """Parse a position symbol.

    Accepts a couple of common variants:
    - BENCH -> BN
    - case-insensitive
    """

    v = str(value).strip().upper()
    v = _POSITION_ALIASES.get(v, v)

    try:
        return Position(v)
    except ValueError as e:
        hint = difflib.get_close_matches(v, [p.value for p in Position], n=1, cutoff=0.5)
        suffix = f" (did you mean {hint[0]!r}?)" if hint else ""
        raise UnknownPositionError(f"Unknown position string: {value!r}{suffix}") from e


def parse_positions(values: Iterable[str]) -> Tuple[Position, ...]:
    """Parse a list of symbols, dropping duplicates while keeping order."""

    out: list[Position] = []
    for v in values:
        pos = parse_position_str(v)
        if pos not in out:
            out.append(pos)
    return tuple(out)


def parse_timestamp(value: Any) -> datetime:
    """Parse epoch milliseconds or an ISO-8601 string into an aware UTC datetime."""

    if isinstance(value, bool):
        raise ValueError(f"Invalid timestamp: {value!r}")
    if isinstance(value, (int, float)):
        return datetime.fromtimestamp(value / 1000.0, tz=timezone.utc)
    if isinstance(value, str):
        text = value.strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError as e:
            raise ValueError(f"Invalid timestamp: {value!r}") from e
        if parsed.tzinfo is None:
            parsed = parsed.replace(tzinfo=timezone.utc)
        return parsed
    raise ValueError(f"Invalid timestamp: {value!r}")


def _read_json_list(path: str | Path, label: str) -> list[dict[str, Any]]:
    path = Path(path)
    raw = json.loads(path.read_text(encoding="utf-8"))
    if not isinstance(raw, list):
        raise ValueError(f"{label} must be a JSON list: {path}")
    return [rec for rec in raw if isinstance(rec, dict)]


# ============================================================================
# Players
# ============================================================================


def player_from_document(rec: Mapping[str, Any]) -> Player:
    try:
        player_id = str(rec["id"])
    except KeyError as e:
        raise ValueError(f"Player document missing 'id': {dict(rec)!r}") from e

    jersey = rec.get("jerseyNumber")
    return Player(
        player_id=player_id,
        first_name=str(rec.get("firstName", "")),
        last_name=str(rec.get("lastName", "")),
        jersey_number=str(jersey) if jersey not in (None, "") else None,
        primary_positions=parse_positions(rec.get("primaryPositions", []) or []),
        secondary_positions=parse_positions(rec.get("secondaryPositions", []) or []),
        active=bool(rec.get("active", True)),
    )


def load_roster_from_json(path: str | Path, *, team_id: str | None = None) -> Dict[str, Player]:
    """Load the roster as ``player_id -> Player``.

    Parameters
    ----------
    team_id:
        If provided, only documents whose ``teamId`` matches are loaded.
    """

    players: Dict[str, Player] = {}
    for rec in _read_json_list(path, "roster"):
        if team_id is not None and str(rec.get("teamId")) != team_id:
            continue
        player = player_from_document(rec)
        if player.player_id in players:
            raise ValueError(f"Duplicate player id {player.player_id!r} in {path}")
        players[player.player_id] = player
    return players


# ============================================================================
# Games
# ============================================================================


def game_from_document(rec: Mapping[str, Any]) -> Game:
    lineup_id = rec.get("lineupId")
    return Game(
        game_id=str(rec["id"]),
        team_id=str(rec.get("teamId", "")),
        opponent=str(rec.get("opponent", "")),
        date=parse_timestamp(rec["date"]),
        innings=int(rec.get("innings", 6)),
        lineup_id=str(lineup_id) if lineup_id else None,
    )


def load_games_from_json(path: str | Path, *, team_id: str | None = None) -> Tuple[Game, ...]:
    games: list[Game] = []
    for rec in _read_json_list(path, "games"):
        if team_id is not None and str(rec.get("teamId")) != team_id:
            continue
        try:
            games.append(game_from_document(rec))
        except KeyError as e:
            raise ValueError(f"Game document missing key {e.args[0]!r}: {rec!r}") from e
    return tuple(games)


# ============================================================================
# Lineups
# ============================================================================


def _parse_inning(number: int, slots: Iterable[Mapping[str, Any]]) -> Inning:
    assignments = []
    for slot in slots:
        player_id = slot.get("playerId")
        assignments.append(
            InningAssignment(
                inning=number,
                position=parse_position_str(slot["position"]),
                player_id=str(player_id) if player_id else None,
            )
        )
    return Inning(number=number, assignments=tuple(assignments))


def lineup_from_document(rec: Mapping[str, Any]) -> Lineup:
    """Build a :class:`~fair_play.data.Lineup` from a stored document.

    Template lineups store a single ``positions`` list instead of ``innings``;
    they load as a one-inning lineup.
    """

    if "innings" in rec:
        innings = tuple(
            _parse_inning(int(inning["inning"]), inning.get("positions", []) or [])
            for inning in sorted(rec["innings"], key=lambda i: int(i["inning"]))
        )
    else:
        innings = (_parse_inning(1, rec.get("positions", []) or []),)

    game_id = rec.get("gameId")
    name = rec.get("name")
    return Lineup(
        lineup_id=str(rec["id"]),
        team_id=str(rec.get("teamId", "")),
        innings=innings,
        game_id=str(game_id) if game_id else None,
        status=LineupStatus(str(rec.get("status", LineupStatus.DRAFT.value)).lower()),
        is_default=bool(rec.get("isDefault", False)),
        name=str(name) if name else None,
    )


def load_lineups_from_json(path: str | Path, *, team_id: str | None = None) -> Tuple[Lineup, ...]:
    lineups: list[Lineup] = []
    for rec in _read_json_list(path, "lineups"):
        if team_id is not None and str(rec.get("teamId")) != team_id:
            continue
        lineups.append(lineup_from_document(rec))
    return tuple(lineups)


def index_lineups_by_game_id(lineups: Iterable[Lineup]) -> Dict[str, Lineup]:
    """Map game id -> lineup, ignoring template lineups.

    A game with both a draft and a final lineup keeps the final one.
    """

    by_game: Dict[str, Lineup] = {}
    for lineup in lineups:
        if lineup.game_id is None:
            continue
        existing = by_game.get(lineup.game_id)
        if existing is not None and existing.is_final and not lineup.is_final:
            continue
        by_game[lineup.game_id] = lineup
    return by_game


def lineup_to_document(lineup: Lineup) -> Dict[str, Any]:
    """Serialise a lineup back to the stored document shape."""

    doc: Dict[str, Any] = {
        "id": lineup.lineup_id,
        "teamId": lineup.team_id,
        "status": lineup.status.value,
        "isDefault": lineup.is_default,
        "innings": [
            {
                "inning": inning.number,
                "positions": [
                    {"position": a.position.value, "playerId": a.player_id or ""} for a in inning.assignments
                ],
            }
            for inning in lineup.innings
        ],
    }
    if lineup.game_id is not None:
        doc["gameId"] = lineup.game_id
    if lineup.name is not None:
        doc["name"] = lineup.name
    return doc


def dump_lineups_to_json(lineups: Sequence[Lineup], path: str | Path) -> Path:
    path = Path(path)
    path.write_text(json.dumps([lineup_to_document(lineup) for lineup in lineups], indent=2), encoding="utf-8")
    return path


def validate_lineup_player_ids(
    *,
    lineups: Iterable[Lineup],
    roster_ids: Iterable[str],
    close_match_cutoff: float = 0.6,
    close_match_n: int = 3,
) -> None:
    """Validate that every player referenced by a lineup exists in the roster.

    Raises
    ------
    ValueError
        If any lineup references an unknown player id.
    """

    roster_set = set(roster_ids)
    missing: set[str] = set()
    for lineup in lineups:
        for inning in lineup.innings:
            missing.update(pid for pid in inning.assigned_player_ids if pid not in roster_set)
    if not missing:
        return

    hints: list[str] = []
    for pid in sorted(missing):
        candidates = difflib.get_close_matches(pid, sorted(roster_set), n=close_match_n, cutoff=close_match_cutoff)
        if candidates:
            hints.append(f"- {pid}  (did you mean: {', '.join(candidates)})")
        else:
            hints.append(f"- {pid}")

    raise ValueError("One or more lineup player ids are not on the roster.\nUnknown ids:\n" + "\n".join(hints))


# ============================================================================
# Configuration
# ============================================================================


def load_policy_from_json(path: str | Path) -> FairPlayPolicy:
    """Load a :class:`~fair_play.data.FairPlayPolicy`, overriding defaults with any keys present."""

    path = Path(path)
    raw = json.loads(path.read_text(encoding="utf-8"))
    if not isinstance(raw, dict):
        raise ValueError("policy.json must contain a JSON object")

    known = {f.name: f for f in dataclasses.fields(FairPlayPolicy)}
    unknown = sorted(set(raw) - set(known))
    if unknown:
        raise ValueError(f"Unknown policy keys: {unknown}")

    kwargs: Dict[str, Any] = {}
    for key, value in raw.items():
        default = known[key].default
        if isinstance(default, bool):
            if not isinstance(value, bool):
                raise ValueError(f"Policy key {key!r} must be true or false")
            kwargs[key] = value
        elif isinstance(default, int):
            kwargs[key] = int(value)
        else:
            kwargs[key] = float(value)
    return FairPlayPolicy(**kwargs)
