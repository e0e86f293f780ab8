"""Coaching insights derived from player metrics.

These helpers turn :class:`~fair_play.data.PositionMetrics` into short,
actionable observations for a coach: who needs more time, which positions to
try next, and how two players compare.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Sequence, Tuple

from fair_play.data import (
    DEFAULT_POLICY,
    FIELD_POSITIONS,
    FairPlayPolicy,
    Player,
    Position,
    PositionMetrics,
    PositionType,
    Window,
)
from fair_play.team import fair_play_score, population_variance


@dataclass(frozen=True, slots=True)
class PlayerComparison:
    playing_time_difference: float
    variety_difference: float
    common_positions: Tuple[Position, ...]
    unique_to_first: Tuple[Position, ...]
    unique_to_second: Tuple[Position, ...]


@dataclass(frozen=True, slots=True)
class PositionEquality:
    overplayed_players: Tuple[str, ...]
    underplayed_players: Tuple[str, ...]
    inequality_score: float


def player_development_insights(
    player: Player,
    metrics: PositionMetrics,
    *,
    policy: FairPlayPolicy = DEFAULT_POLICY,
) -> List[str]:
    insights: List[str] = []

    if metrics.playing_time_percentage < policy.low_playing_time_threshold:
        insights.append(f"Needs more playing time (currently {metrics.playing_time_percentage:.0f}%)")

    if metrics.variety_score < policy.low_variety_threshold:
        insights.append("Needs experience in more positions")

    battery = {Position.PITCHER, Position.CATCHER}
    if not metrics.has_infield_experience and battery & set(player.primary_positions):
        insights.append("Needs infield experience")

    if metrics.has_infield_experience and not metrics.has_outfield_experience:
        insights.append("Needs outfield experience")

    return insights


def position_recommendations(
    player: Player,
    metrics: PositionMetrics,
    *,
    policy: FairPlayPolicy = DEFAULT_POLICY,
) -> Tuple[Position, ...]:
    """Positions to try in upcoming games, most useful first.

    Under-used primary positions come first, then field positions the player
    has never played. A player with nothing to recommend falls back to their
    primary positions (plus secondaries when they have been benched a lot).
    """

    frame = metrics.all_games
    recommendations: List[Position] = [
        pos for pos in player.primary_positions if frame.position_percentages[pos] < policy.primary_overuse_threshold
    ]
    for pos in FIELD_POSITIONS:
        if frame.position_counts[pos] == 0 and pos not in recommendations:
            recommendations.append(pos)

    if recommendations:
        return tuple(recommendations)
    if frame.bench_percentage > policy.high_bench_threshold:
        return tuple(player.primary_positions) + tuple(player.secondary_positions)
    return tuple(player.primary_positions)


def compare_players(first: PositionMetrics, second: PositionMetrics) -> PlayerComparison:
    first_positions = first.all_games.played_positions
    second_positions = second.all_games.played_positions
    return PlayerComparison(
        playing_time_difference=first.playing_time_percentage - second.playing_time_percentage,
        variety_difference=first.variety_score - second.variety_score,
        common_positions=tuple(p for p in first_positions if p in second_positions),
        unique_to_first=tuple(p for p in first_positions if p not in second_positions),
        unique_to_second=tuple(p for p in second_positions if p not in first_positions),
    )


def team_position_equality(
    player_metrics: Sequence[PositionMetrics],
    *,
    window: Window = Window.SEASON,
    policy: FairPlayPolicy = DEFAULT_POLICY,
) -> PositionEquality:
    """Players whose bench time sits well below (overplayed) or above (underplayed) the team average.

    ``inequality_score`` is ``100 - fair_play_score`` for the same bench
    variance, so 0 means perfectly even bench time.
    """

    frames = {m.player_id: m.window(window) for m in player_metrics}
    bench = {pid: tf.bench_percentage for pid, tf in sorted(frames.items()) if tf.total_innings > 0}
    if not bench:
        return PositionEquality(overplayed_players=(), underplayed_players=(), inequality_score=0.0)

    average = sum(bench.values()) / len(bench)
    threshold = policy.equality_threshold
    variance = population_variance(list(bench.values()))
    return PositionEquality(
        overplayed_players=tuple(pid for pid, pct in bench.items() if pct < average - threshold),
        underplayed_players=tuple(pid for pid, pct in bench.items() if pct > average + threshold),
        inequality_score=100.0 - fair_play_score(variance, policy=policy),
    )


def experience_gaps(metrics: PositionMetrics) -> Tuple[PositionType, ...]:
    """Every playing position type the player has never been placed at."""

    counts = metrics.all_games.position_type_counts
    wanted = (PositionType.PITCHER, PositionType.CATCHER, PositionType.INFIELD, PositionType.OUTFIELD)
    return tuple(t for t in wanted if counts[t] == 0)
