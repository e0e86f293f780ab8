"""Per-player fair-play metrics.

Notes
-----
Streaks run over the chronological inning sequence across game boundaries: a
player benched for the last inning of one game and the first inning of the
next has a bench streak of two. The same-position streak only counts playing
positions; a bench inning ends it.
"""

from __future__ import annotations

from typing import Optional, Sequence, Tuple

from fair_play.data import DEFAULT_POLICY, FairPlayPolicy, PlayerGame, Position, PositionMetrics, PositionTimeFrame
from fair_play.history import inning_sequence
from fair_play.windows import aggregate_standard_windows, summarise_games


def playing_time_percentage(timeframe: PositionTimeFrame) -> float:
    """Share of innings spent on the field. 0 when there is no data."""

    if timeframe.total_innings == 0:
        return 0.0
    return 100.0 * timeframe.field_innings / timeframe.total_innings


def variety_score(timeframe: PositionTimeFrame, *, policy: FairPlayPolicy = DEFAULT_POLICY) -> float:
    """0..100 score for the number of distinct playing positions.

    One position (or none) scores 0; ``policy.variety_saturation`` positions or
    more score 100, with a linear ramp in between.
    """

    distinct = timeframe.distinct_field_positions
    if distinct <= 1:
        return 0.0
    return min(100.0, 100.0 * (distinct - 1) / (policy.variety_saturation - 1))


def fair_play_ratio(
    playing_time: float,
    variety: float,
    *,
    policy: FairPlayPolicy = DEFAULT_POLICY,
) -> float:
    return policy.playing_time_weight * playing_time + policy.variety_weight * variety


def bench_streaks(sequence: Sequence[Position]) -> Tuple[int, int]:
    """(current, max) run of consecutive bench innings."""

    current = 0
    longest = 0
    for pos in sequence:
        if pos is Position.BENCH:
            current += 1
            longest = max(longest, current)
        else:
            current = 0
    return current, longest


def same_position_streaks(sequence: Sequence[Position]) -> Tuple[int, int, Optional[Position]]:
    """(current, max, position of the max run) of consecutive innings at one playing position.

    The earliest run wins a tie for the maximum.
    """

    current = 0
    current_pos: Optional[Position] = None
    longest = 0
    longest_pos: Optional[Position] = None

    for pos in sequence:
        if pos is Position.BENCH:
            current = 0
            current_pos = None
            continue
        if pos is current_pos:
            current += 1
        else:
            current = 1
            current_pos = pos
        if current > longest:
            longest = current
            longest_pos = pos

    return current, longest, longest_pos


def compute_metrics(
    player_id: str,
    player_games: Sequence[PlayerGame],
    *,
    policy: FairPlayPolicy = DEFAULT_POLICY,
) -> PositionMetrics:
    """Compute :class:`~fair_play.data.PositionMetrics` from a reconstructed history.

    Parameters
    ----------
    player_games:
        The player's history, most recent game first (as returned by
        :func:`fair_play.history.reconstruct_history`).
    """

    all_games = summarise_games(player_games)
    playing_time = playing_time_percentage(all_games)
    variety = variety_score(all_games, policy=policy)

    sequence = inning_sequence(player_games)
    bench_current, bench_max = bench_streaks(sequence)
    same_current, same_max, same_pos = same_position_streaks(sequence)

    return PositionMetrics(
        player_id=player_id,
        total_games=all_games.game_count,
        total_innings=all_games.total_innings,
        playing_time_percentage=playing_time,
        variety_score=variety,
        bench_streak_current=bench_current,
        bench_streak_max=bench_max,
        same_position_streak_current=same_current,
        same_position_streak_max=same_max,
        same_position_streak_position=same_pos,
        fair_play_ratio=fair_play_ratio(playing_time, variety, policy=policy),
        all_games=all_games,
        windows=aggregate_standard_windows(player_games),
    )
