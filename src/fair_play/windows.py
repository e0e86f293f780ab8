"""Rolling-window aggregation of a player's position history."""

from __future__ import annotations

from typing import Dict, Iterable, Mapping, Sequence, Tuple

from fair_play.data import (
    PlayerGame,
    Position,
    PositionTimeFrame,
    PositionType,
    Window,
    position_type,
    zero_counts_by_position,
    zero_counts_by_type,
)


STANDARD_WINDOWS: Tuple[Window, ...] = tuple(Window)


def select_games(player_games: Sequence[PlayerGame], window: Window | int) -> Sequence[PlayerGame]:
    """The most recent games covered by ``window``.

    ``player_games`` must be ordered most recent first. A window larger than
    the history uses every available game.
    """

    if isinstance(window, Window):
        limit = window.game_limit
    else:
        limit = int(window)
        if limit < 1:
            raise ValueError("Window size must be >= 1")
    if limit is None:
        return player_games
    return player_games[:limit]


def _percentages(counts: Mapping, total: int) -> Dict:
    if total == 0:
        return {k: 0.0 for k in counts}
    return {k: 100.0 * v / total for k, v in counts.items()}


def summarise_games(player_games: Iterable[PlayerGame]) -> PositionTimeFrame:
    """Aggregate every inning of ``player_games`` into one :class:`PositionTimeFrame`."""

    position_counts = zero_counts_by_position()
    starting_counts = zero_counts_by_position()
    game_count = 0

    for game in player_games:
        game_count += 1
        starting_counts[game.starting_position] += 1
        for pos in game.positions:
            position_counts[pos] += 1

    type_counts = zero_counts_by_type()
    for pos, n in position_counts.items():
        type_counts[position_type(pos)] += n

    total = sum(position_counts.values())
    return PositionTimeFrame(
        game_count=game_count,
        total_innings=total,
        position_counts=position_counts,
        position_percentages=_percentages(position_counts, total),
        position_type_counts=type_counts,
        position_type_percentages=_percentages(type_counts, total),
        starting_position_counts=starting_counts,
        started_on_bench=starting_counts[Position.BENCH],
    )


def aggregate_window(player_games: Sequence[PlayerGame], window: Window | int) -> PositionTimeFrame:
    """Position and position-type distribution over the last N games.

    Parameters
    ----------
    player_games:
        A reconstructed history, most recent game first.
    window:
        A :class:`~fair_play.data.Window` or a positive game count.

    Returns
    -------
    PositionTimeFrame
        Counts and percentages by position and position type. Percentages are
        relative to all innings in the window (bench included) and are all zero
        when the window holds no innings.
    """

    return summarise_games(select_games(player_games, window))


def aggregate_standard_windows(player_games: Sequence[PlayerGame]) -> Dict[Window, PositionTimeFrame]:
    return {w: aggregate_window(player_games, w) for w in STANDARD_WINDOWS}


def type_share(timeframe: PositionTimeFrame, ptype: PositionType) -> float:
    """Share (0..1) of the player's innings spent at ``ptype``."""

    if timeframe.total_innings == 0:
        return 0.0
    return timeframe.position_type_counts[ptype] / timeframe.total_innings
