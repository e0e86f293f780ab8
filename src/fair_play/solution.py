from __future__ import annotations

import json
from dataclasses import asdict, dataclass
from typing import Any, Dict, List, Mapping, Optional, Sequence

import pulp

from fair_play.data import (
    Inning,
    InningAssignment,
    Lineup,
    LineupStatus,
    Player,
    Position,
    PositionMetrics,
    TeamFairPlayMetrics,
    ValidationResult,
)
from fair_play.formulation import DecisionVariables, LineupModelInput


# ============================================================================
# Solved lineup
# ============================================================================


def _var_value(v: pulp.LpVariable) -> float:
    val = pulp.value(v)
    return float(val) if val is not None else 0.0


def _is_selected(v: pulp.LpVariable, *, tol: float = 1e-6) -> bool:
    return _var_value(v) >= 1.0 - tol


def extract_lineup(
    *,
    model_input: LineupModelInput,
    decision_variables: DecisionVariables,
    lineup_id: str,
    team_id: str,
    game_id: Optional[str] = None,
) -> Lineup:
    """Turn solved decision variables into a draft :class:`~fair_play.data.Lineup`.

    Slots with no selected player are left empty; benched players are listed
    after the positions, ordered by id.
    """

    innings: List[Inning] = []
    for i in model_input.inning_numbers:
        assignments: List[InningAssignment] = []
        for k in model_input.positions:
            chosen = next(
                (p for p in model_input.player_ids if _is_selected(decision_variables.assign[(p, k, i)])),
                None,
            )
            assignments.append(InningAssignment(inning=i, position=k, player_id=chosen))
        for p in model_input.player_ids:
            if _is_selected(decision_variables.bench[(p, i)]):
                assignments.append(InningAssignment(inning=i, position=Position.BENCH, player_id=p))
        innings.append(Inning(number=i, assignments=tuple(assignments)))

    return Lineup(
        lineup_id=lineup_id,
        team_id=team_id,
        innings=tuple(innings),
        game_id=game_id,
        status=LineupStatus.DRAFT,
        name="Optimised lineup",
    )


# ============================================================================
# Team report
# ============================================================================


@dataclass(frozen=True, slots=True)
class PlayerReportEntry:
    player_id: str
    player_name: str
    games: int
    innings: int
    playing_time_percentage: float
    variety_score: float
    fair_play_ratio: float
    bench_streak_max: int
    same_position_streak_max: int
    same_position_streak_position: Optional[str]
    position_counts: Dict[str, int]


@dataclass(frozen=True, slots=True)
class RankedEntry:
    player_id: str
    player_name: str
    value: float


@dataclass(frozen=True, slots=True)
class TeamWindowSummary:
    window: str
    fair_play_score: float
    bench_time_variance: float
    variety_variance: float
    team_average_playing_time: float
    most_bench_time: List[RankedEntry]
    least_variety: List[RankedEntry]
    needs_experience: Dict[str, str]
    playing_time_imbalance: List[RankedEntry]


@dataclass(frozen=True, slots=True)
class TeamReport:
    team_id: str
    players: List[PlayerReportEntry]
    windows: Dict[str, TeamWindowSummary]


def _name(players: Mapping[str, Player], player_id: str) -> str:
    player = players.get(player_id)
    return player.display_name if player is not None else player_id


def build_team_report(
    *,
    team_id: str,
    players: Mapping[str, Player],
    player_metrics: Sequence[PositionMetrics],
    team_metrics: Sequence[TeamFairPlayMetrics],
) -> TeamReport:
    """Build a JSON-serialisable summary of player and team fairness."""

    entries = [
        PlayerReportEntry(
            player_id=m.player_id,
            player_name=_name(players, m.player_id),
            games=m.total_games,
            innings=m.total_innings,
            playing_time_percentage=round(m.playing_time_percentage, 2),
            variety_score=round(m.variety_score, 2),
            fair_play_ratio=round(m.fair_play_ratio, 2),
            bench_streak_max=m.bench_streak_max,
            same_position_streak_max=m.same_position_streak_max,
            same_position_streak_position=(
                m.same_position_streak_position.value if m.same_position_streak_position else None
            ),
            position_counts={pos.value: n for pos, n in m.all_games.position_counts.items() if n},
        )
        for m in player_metrics
    ]
    entries.sort(key=lambda e: (-e.fair_play_ratio, e.player_id))

    windows: Dict[str, TeamWindowSummary] = {}
    for t in team_metrics:
        windows[t.window.value] = TeamWindowSummary(
            window=t.window.value,
            fair_play_score=round(t.fair_play_score, 2),
            bench_time_variance=round(t.bench_time_variance, 2),
            variety_variance=round(t.variety_variance, 2),
            team_average_playing_time=round(t.team_average_playing_time, 2),
            most_bench_time=[
                RankedEntry(e.player_id, _name(players, e.player_id), round(e.bench_percentage, 2))
                for e in t.most_bench_time
            ],
            least_variety=[
                RankedEntry(e.player_id, _name(players, e.player_id), round(e.variety_score, 2))
                for e in t.least_variety
            ],
            needs_experience={e.player_id: e.position_type.value for e in t.needs_experience},
            playing_time_imbalance=[
                RankedEntry(e.player_id, _name(players, e.player_id), round(e.difference_from_average, 2))
                for e in t.playing_time_imbalance
            ],
        )

    return TeamReport(team_id=team_id, players=entries, windows=windows)


def team_report_to_json_dict(report: TeamReport) -> Dict[str, Any]:
    return asdict(report)


def dumps_team_report_pretty(report: TeamReport) -> str:
    return json.dumps(team_report_to_json_dict(report), indent=2, sort_keys=False)


def validation_results_to_json(results: Sequence[ValidationResult]) -> List[Dict[str, Any]]:
    return [
        {
            "rule": r.rule,
            "valid": r.valid,
            "severity": r.severity.value,
            "message": r.message,
            "affectedPlayers": list(r.affected_players),
            "affectedInnings": list(r.affected_innings),
        }
        for r in results
    ]
