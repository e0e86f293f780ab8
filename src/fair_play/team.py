"""Team-level fairness analysis over a set of player metrics."""

from __future__ import annotations

from typing import Dict, Optional, Sequence

from fair_play.data import (
    DEFAULT_POLICY,
    BenchTimeEntry,
    ExperienceNeed,
    FairPlayPolicy,
    PlayingTimeImbalance,
    PositionMetrics,
    PositionTimeFrame,
    PositionType,
    TeamFairPlayMetrics,
    VarietyEntry,
    Window,
)
from fair_play.metrics import playing_time_percentage, variety_score
from fair_play.windows import STANDARD_WINDOWS


def population_variance(values: Sequence[float]) -> float:
    if not values or all(v == values[0] for v in values):
        return 0.0
    mean = sum(values) / len(values)
    return sum((v - mean) ** 2 for v in values) / len(values)


def fair_play_score(bench_time_variance: float, *, policy: FairPlayPolicy = DEFAULT_POLICY) -> float:
    """100 when bench time is perfectly even, strictly decreasing as variance grows."""

    scale = policy.bench_variance_scale
    return 100.0 * scale / (scale + max(0.0, bench_time_variance))


def experience_need(timeframe: PositionTimeFrame) -> Optional[PositionType]:
    """Infield first; outfield only once the player has some infield time."""

    if timeframe.position_type_counts[PositionType.INFIELD] == 0:
        return PositionType.INFIELD
    if timeframe.position_type_counts[PositionType.OUTFIELD] == 0:
        return PositionType.OUTFIELD
    return None


def analyze_team(
    player_metrics: Sequence[PositionMetrics],
    active_roster_size: Optional[int] = None,
    *,
    window: Window = Window.SEASON,
    policy: FairPlayPolicy = DEFAULT_POLICY,
) -> TeamFairPlayMetrics:
    """Summarise fairness across a team for one window.

    Parameters
    ----------
    player_metrics:
        Metrics for the players to analyse (normally the active roster).
    active_roster_size:
        Caps the ranking lists. Defaults to ``len(player_metrics)``.
    window:
        Which rolling window each player's distribution is read from.

    Returns
    -------
    TeamFairPlayMetrics
        Rankings are limited to ``policy.ranking_size`` entries and break ties
        by player id. Averages, variances and rankings consider players with
        at least one inning in the window. Experience needs ignore the window:
        they are read from every player's full history.
    """

    roster_size = len(player_metrics) if active_roster_size is None else active_roster_size
    top_n = max(0, min(policy.ranking_size, roster_size))

    frames: Dict[str, PositionTimeFrame] = {m.player_id: m.window(window) for m in player_metrics}
    careers: Dict[str, PositionTimeFrame] = {m.player_id: m.all_games for m in player_metrics}
    considered = sorted(pid for pid, tf in frames.items() if tf.total_innings > 0)

    bench = {pid: frames[pid].bench_percentage for pid in considered}
    variety = {pid: variety_score(frames[pid], policy=policy) for pid in considered}
    playing = {pid: playing_time_percentage(frames[pid]) for pid in considered}

    most_bench = tuple(
        BenchTimeEntry(player_id=pid, bench_percentage=bench[pid])
        for pid in sorted(considered, key=lambda p: (-bench[p], p))[:top_n]
    )
    least_variety = tuple(
        VarietyEntry(player_id=pid, variety_score=variety[pid])
        for pid in sorted(considered, key=lambda p: (variety[p], p))[:top_n]
    )

    needs: list[ExperienceNeed] = []
    for pid in sorted(frames):
        need = experience_need(careers[pid])
        if need is not None:
            needs.append(ExperienceNeed(player_id=pid, position_type=need))

    average = sum(playing.values()) / len(playing) if playing else 0.0
    imbalance = tuple(
        PlayingTimeImbalance(
            player_id=pid,
            playing_time_percentage=playing[pid],
            difference_from_average=playing[pid] - average,
        )
        for pid in sorted(considered, key=lambda p: (-abs(playing[p] - average), p))[:top_n]
    )

    bench_variance = population_variance(list(bench.values()))
    return TeamFairPlayMetrics(
        window=window,
        player_count=len(considered),
        fair_play_score=fair_play_score(bench_variance, policy=policy),
        bench_time_variance=bench_variance,
        variety_variance=population_variance(list(variety.values())),
        team_average_playing_time=average,
        most_bench_time=most_bench,
        least_variety=least_variety,
        needs_experience=tuple(needs),
        playing_time_imbalance=imbalance,
    )


def analyze_team_windows(
    player_metrics: Sequence[PositionMetrics],
    active_roster_size: Optional[int] = None,
    *,
    policy: FairPlayPolicy = DEFAULT_POLICY,
) -> Dict[Window, TeamFairPlayMetrics]:
    return {
        w: analyze_team(player_metrics, active_roster_size, window=w, policy=policy) for w in STANDARD_WINDOWS
    }

