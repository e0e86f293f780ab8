"""Lineup validation rules and coach-facing fair-play issues.

Each rule returns exactly one :class:`~fair_play.data.ValidationResult`.
Rules never mutate their inputs, so validating the same lineup twice gives
identical results.
"""

from __future__ import annotations

from collections import Counter
from typing import Iterable, List, Mapping, Optional, Sequence, Tuple

from fair_play.data import (
    DEFAULT_POLICY,
    FairPlayPolicy,
    Lineup,
    Player,
    PlayerGame,
    Position,
    Severity,
    ValidationResult,
    is_infield,
)


RULE_POSITIONS_FILLED = "positions_filled"
RULE_DOUBLE_BOOKING = "double_booking"
RULE_CONSECUTIVE_BENCH = "consecutive_bench"
RULE_INFIELD_EXPERIENCE = "infield_experience"


def lineup_positions(lineup: Lineup, player_id: str) -> Tuple[Position, ...]:
    """The player's position in every inning, with unassigned innings as bench."""

    return tuple(inning.player_position(player_id) or Position.BENCH for inning in lineup.innings)


def benched_innings(lineup: Lineup, player_id: str) -> Tuple[int, ...]:
    positions = lineup_positions(lineup, player_id)
    return tuple(inning.number for inning, pos in zip(lineup.innings, positions) if pos is Position.BENCH)


def _bench_runs(innings: Sequence[int]) -> List[Tuple[int, ...]]:
    runs: List[Tuple[int, ...]] = []
    current: List[int] = []
    for n in innings:
        if current and n == current[-1] + 1:
            current.append(n)
        else:
            if current:
                runs.append(tuple(current))
            current = [n]
    if current:
        runs.append(tuple(current))
    return runs


def check_positions_filled(lineup: Lineup) -> ValidationResult:
    incomplete = tuple(inning.number for inning in lineup.innings if not inning.is_complete)
    if not incomplete:
        return ValidationResult(rule=RULE_POSITIONS_FILLED, valid=True, severity=Severity.ERROR)
    return ValidationResult(
        rule=RULE_POSITIONS_FILLED,
        valid=False,
        severity=Severity.ERROR,
        message="Some positions are not filled",
        affected_innings=incomplete,
    )


def check_double_booking(lineup: Lineup) -> ValidationResult:
    """A player may hold at most one slot per inning."""

    players: set[str] = set()
    innings: list[int] = []
    for inning in lineup.innings:
        repeated = [pid for pid, n in Counter(inning.assigned_player_ids).items() if n > 1]
        if repeated:
            players.update(repeated)
            innings.append(inning.number)

    if not players:
        return ValidationResult(rule=RULE_DOUBLE_BOOKING, valid=True, severity=Severity.ERROR)
    return ValidationResult(
        rule=RULE_DOUBLE_BOOKING,
        valid=False,
        severity=Severity.ERROR,
        message="Some players are assigned to more than one position in an inning",
        affected_players=tuple(sorted(players)),
        affected_innings=tuple(innings),
    )


def check_consecutive_bench(
    lineup: Lineup,
    active_player_ids: Iterable[str],
    *,
    policy: FairPlayPolicy = DEFAULT_POLICY,
) -> ValidationResult:
    """Flag players benched for ``policy.consecutive_bench_limit`` or more innings in a row.

    ``affected_innings`` lists only the innings that belong to such runs.
    """

    limit = policy.consecutive_bench_limit
    players: list[str] = []
    innings: set[int] = set()
    for pid in sorted(set(active_player_ids)):
        long_runs = [run for run in _bench_runs(benched_innings(lineup, pid)) if len(run) >= limit]
        if long_runs:
            players.append(pid)
            for run in long_runs:
                innings.update(run)

    if not players:
        return ValidationResult(rule=RULE_CONSECUTIVE_BENCH, valid=True, severity=Severity.WARNING)
    return ValidationResult(
        rule=RULE_CONSECUTIVE_BENCH,
        valid=False,
        severity=Severity.WARNING,
        message=f"Some players are benched for {limit}+ consecutive innings",
        affected_players=tuple(players),
        affected_innings=tuple(sorted(innings)),
    )


def _has_infield_history(player_games: Sequence[PlayerGame]) -> bool:
    return any(is_infield(pos) for game in player_games for pos in game.positions)


def check_infield_experience(
    lineup: Lineup,
    active_player_ids: Iterable[str],
    history_by_player: Optional[Mapping[str, Sequence[PlayerGame]]] = None,
    *,
    policy: FairPlayPolicy = DEFAULT_POLICY,
) -> ValidationResult:
    """Every active player should see some infield time once games are long enough.

    Counts the player's accumulated history plus this lineup. Lineups shorter
    than ``policy.rotation_check_min_innings`` always pass.
    """

    if len(lineup.innings) < policy.rotation_check_min_innings:
        return ValidationResult(rule=RULE_INFIELD_EXPERIENCE, valid=True, severity=Severity.WARNING)

    history_by_player = history_by_player or {}
    missing: list[str] = []
    for pid in sorted(set(active_player_ids)):
        if any(is_infield(pos) for pos in lineup_positions(lineup, pid)):
            continue
        if _has_infield_history(history_by_player.get(pid, ())):
            continue
        missing.append(pid)

    if not missing:
        return ValidationResult(rule=RULE_INFIELD_EXPERIENCE, valid=True, severity=Severity.WARNING)
    return ValidationResult(
        rule=RULE_INFIELD_EXPERIENCE,
        valid=False,
        severity=Severity.WARNING,
        message="Some players haven't played any infield positions",
        affected_players=tuple(missing),
    )


def validate_lineup(
    lineup: Lineup,
    active_player_ids: Iterable[str],
    history_by_player: Optional[Mapping[str, Sequence[PlayerGame]]] = None,
    *,
    policy: FairPlayPolicy = DEFAULT_POLICY,
) -> Tuple[ValidationResult, ...]:
    """Run every rule, in a fixed order, and return one result per rule."""

    active = tuple(active_player_ids)
    return (
        check_positions_filled(lineup),
        check_double_booking(lineup),
        check_consecutive_bench(lineup, active, policy=policy),
        check_infield_experience(lineup, active, history_by_player, policy=policy),
    )


def has_errors(results: Iterable[ValidationResult]) -> bool:
    return any(not r.valid and r.severity is Severity.ERROR for r in results)


def get_fair_play_issues(
    lineup: Lineup,
    players: Sequence[Player],
    history_by_player: Optional[Mapping[str, Sequence[PlayerGame]]] = None,
    *,
    policy: FairPlayPolicy = DEFAULT_POLICY,
) -> List[str]:
    """Human-readable fair-play issues for a lineup.

    Failed rules produce one line per affected player (``"<message>: <name>"``)
    or the bare message when no player is named. Lineups of at least
    ``policy.rotation_check_min_innings`` innings are also checked for players
    sitting more than half the game, players who never sit while the roster is
    large, and players stuck at a single position.
    """

    active = [p for p in players if p.active]
    by_id = {p.player_id: p for p in players}
    issues: List[str] = []

    for result in validate_lineup(lineup, [p.player_id for p in active], history_by_player, policy=policy):
        if result.valid or not result.message:
            continue
        named = [by_id[pid] for pid in result.affected_players if pid in by_id]
        if named:
            issues.extend(f"{result.message}: {p.display_name}" for p in named)
        else:
            issues.append(result.message)

    total = len(lineup.innings)
    if total < policy.rotation_check_min_innings:
        return issues

    min_expected = total // 2
    large_roster = len(active) > policy.full_time_roster_threshold
    for player in active:
        played = total - len(benched_innings(lineup, player.player_id))
        if played < min_expected:
            issues.append(f"{player.display_name} only plays {played} of {total} innings.")
        if played == total and large_roster:
            issues.append(f"{player.display_name} plays all {total} innings while other players sit out.")

    for player in active:
        positions = [pos for pos in lineup_positions(lineup, player.player_id) if pos is not Position.BENCH]
        distinct = set(positions)
        if len(distinct) == 1 and len(positions) >= policy.exclusive_position_min_innings:
            issues.append(f"{player.display_name} plays only {positions[0].value} for all {len(positions)} innings.")

    return issues
