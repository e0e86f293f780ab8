from __future__ import annotations

import hashlib
import json
import logging
import os
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Dict, Mapping, Optional, Sequence, Tuple

import pulp

from fair_play.data import (
    DEFAULT_POLICY,
    FIELD_POSITIONS,
    FairPlayPolicy,
    Game,
    Lineup,
    Player,
    PlayerGame,
    Position,
    PositionMetrics,
    Window,
)
from fair_play.formulation import DecisionVariables, LineupModelInput, formulate_lineup_problem
from fair_play.history import reconstruct_team_history
from fair_play.io import (
    index_lineups_by_game_id,
    load_games_from_json,
    load_lineups_from_json,
    load_policy_from_json,
    load_roster_from_json,
    validate_lineup_player_ids,
)
from fair_play.metrics import compute_metrics
from fair_play.solution import TeamReport, build_team_report, extract_lineup
from fair_play.team import analyze_team_windows


def configure_logging(*, level: int = logging.INFO) -> None:
    """Configure a simple root logger that writes to stderr.

    This is safe to call multiple times.
    """

    root = logging.getLogger()
    if not root.handlers:
        logging.basicConfig(
            level=level,
            format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
        )
    else:
        root.setLevel(level)


logger = logging.getLogger(__name__)


# ============================================================================
# Loading
# ============================================================================


@dataclass(frozen=True, slots=True)
class TeamSnapshot:
    """Everything the engine reads about one team at one point in time."""

    team_id: str
    roster: Dict[str, Player]
    games: Tuple[Game, ...]
    lineups_by_game_id: Dict[str, Lineup]
    policy: FairPlayPolicy = DEFAULT_POLICY

    @property
    def active_players(self) -> Tuple[Player, ...]:
        return tuple(p for _, p in sorted(self.roster.items()) if p.active)


def load_team_snapshot(data_dir: str | Path, *, team_id: str | None = None) -> TeamSnapshot:
    """Load ``roster.json``, ``games.json``, ``lineups.json`` and (optionally) ``policy.json``."""

    data_dir = Path(data_dir)

    logger.info("Loading team data from %s", data_dir)
    roster = load_roster_from_json(data_dir / "roster.json", team_id=team_id)
    games = load_games_from_json(data_dir / "games.json", team_id=team_id)
    lineups = load_lineups_from_json(data_dir / "lineups.json", team_id=team_id)
    validate_lineup_player_ids(lineups=lineups, roster_ids=roster)

    policy_path = data_dir / "policy.json"
    policy = load_policy_from_json(policy_path) if policy_path.exists() else DEFAULT_POLICY

    lineups_by_game_id = index_lineups_by_game_id(lineups)
    logger.info(
        "Loaded %d players (%d active), %d games, %d game lineups",
        len(roster),
        sum(1 for p in roster.values() if p.active),
        len(games),
        len(lineups_by_game_id),
    )

    resolved_team_id = team_id or (games[0].team_id if games else "")
    return TeamSnapshot(
        team_id=resolved_team_id,
        roster=roster,
        games=games,
        lineups_by_game_id=lineups_by_game_id,
        policy=policy,
    )


def snapshot_fingerprint(snapshot: TeamSnapshot) -> str:
    """Content hash of a snapshot, for callers that cache derived results."""

    payload = {
        "team_id": snapshot.team_id,
        "roster": [asdict(p) for _, p in sorted(snapshot.roster.items())],
        "games": sorted((asdict(g) for g in snapshot.games), key=lambda g: g["game_id"]),
        "lineups": [asdict(lineup) for _, lineup in sorted(snapshot.lineups_by_game_id.items())],
        "policy": asdict(snapshot.policy),
    }
    encoded = json.dumps(payload, sort_keys=True, default=str).encode("utf-8")
    return hashlib.sha256(encoded).hexdigest()


# ============================================================================
# Reporting
# ============================================================================


def build_histories(snapshot: TeamSnapshot) -> Dict[str, Tuple[PlayerGame, ...]]:
    return reconstruct_team_history(sorted(snapshot.roster), snapshot.games, snapshot.lineups_by_game_id)


def build_player_metrics(
    snapshot: TeamSnapshot,
    histories: Mapping[str, Sequence[PlayerGame]] | None = None,
) -> Dict[str, PositionMetrics]:
    """Metrics for every active player, keyed by player id."""

    histories = histories if histories is not None else build_histories(snapshot)
    return {
        p.player_id: compute_metrics(p.player_id, histories.get(p.player_id, ()), policy=snapshot.policy)
        for p in snapshot.active_players
    }


def build_fair_play_report(snapshot: TeamSnapshot) -> TeamReport:
    """Player metrics plus team analysis for every standard window."""

    metrics = build_player_metrics(snapshot)
    team_metrics = analyze_team_windows(list(metrics.values()), len(metrics), policy=snapshot.policy)
    logger.info(
        "Season fair play score: %.1f across %d players",
        team_metrics[Window.SEASON].fair_play_score,
        len(metrics),
    )
    return build_team_report(
        team_id=snapshot.team_id,
        players=snapshot.roster,
        player_metrics=list(metrics.values()),
        team_metrics=list(team_metrics.values()),
    )


# ============================================================================
# Exact optimiser
# ============================================================================


@dataclass(frozen=True, slots=True)
class SolveResult:
    status: str
    objective_value: float
    problem: pulp.LpProblem
    model_input: LineupModelInput
    decision_variables: DecisionVariables
    lineup: Optional[Lineup]


def summarise_problem(problem: pulp.LpProblem) -> None:
    """Log the size of a formulated lineup problem.

    Every variable is binary and every constraint is an upper bound or an
    equality, so those are the only counts reported.
    """

    variables = problem.variables()
    constraints = problem.constraints.values()
    logger.info(
        "Lineup problem %s: variables=%d (binary=%d) constraints=%d (<=: %d, =: %d)",
        problem.name,
        len(variables),
        sum(1 for v in variables if v.isBinary()),
        len(problem.constraints),
        sum(1 for c in constraints if c.sense == pulp.LpConstraintLE),
        sum(1 for c in constraints if c.sense == pulp.LpConstraintEQ),
    )


def _build_cbc_solver(*, time_limit_seconds: int | None, enable_solver_output: bool) -> pulp.LpSolver:
    """Create a CBC (COIN-OR) solver instance for PuLP."""

    if time_limit_seconds is not None:
        return pulp.PULP_CBC_CMD(msg=enable_solver_output, timeLimit=time_limit_seconds)

    return pulp.PULP_CBC_CMD(msg=enable_solver_output)


def _solver_settings_from_env(
    time_limit_seconds: int | None,
    enable_solver_output: bool,
) -> tuple[int | None, bool]:
    """Apply ``FAIR_PLAY_SOLVER_TIME_LIMIT`` / ``FAIR_PLAY_SOLVER_OUTPUT`` when the caller left defaults."""

    if time_limit_seconds is None:
        raw_limit = os.environ.get("FAIR_PLAY_SOLVER_TIME_LIMIT")
        if raw_limit:
            try:
                time_limit_seconds = int(raw_limit)
            except ValueError as e:
                raise ValueError(f"FAIR_PLAY_SOLVER_TIME_LIMIT must be an integer, got {raw_limit!r}") from e

    raw_output = os.environ.get("FAIR_PLAY_SOLVER_OUTPUT")
    if raw_output is not None:
        enable_solver_output = raw_output.strip().lower() in {"1", "true", "yes", "on"}

    return time_limit_seconds, enable_solver_output


def solve_lineup(
    *,
    roster: Sequence[Player],
    inning_count: int,
    history_by_player: Mapping[str, Sequence[PlayerGame]] | None = None,
    team_id: str = "",
    game_id: str | None = None,
    positions: Sequence[Position] = FIELD_POSITIONS,
    policy: FairPlayPolicy = DEFAULT_POLICY,
    time_limit_seconds: int | None = None,
    solve: bool = True,
    enable_solver_output: bool = False,
    log_level: int | None = logging.INFO,
) -> SolveResult:
    """Top-level entrypoint for the exact optimiser: formulate, solve and extract a lineup.

    Notes
    -----
    Infeasible or unsolved problems return ``lineup=None`` with the PuLP
    status string; the caller decides whether to fall back to
    :func:`fair_play.generator.generate_lineup`.
    """

    if log_level is not None:
        configure_logging(level=log_level)

    model_input = LineupModelInput(
        players={p.player_id: p for p in roster},
        inning_count=inning_count,
        positions=tuple(positions),
        history_by_player=dict(history_by_player or {}),
        policy=policy,
    )
    logger.info(
        "Formulating lineup problem: players=%d innings=%d positions=%d bench_cap=%d",
        len(model_input.player_ids),
        inning_count,
        len(model_input.positions),
        model_input.bench_cap,
    )
    problem, decision_variables = formulate_lineup_problem(model_input)
    summarise_problem(problem)

    if not solve:
        logger.info("Skipping solve (solve=False)")
        return SolveResult(
            status="NotSolved",
            objective_value=0.0,
            problem=problem,
            model_input=model_input,
            decision_variables=decision_variables,
            lineup=None,
        )

    time_limit_seconds, enable_solver_output = _solver_settings_from_env(time_limit_seconds, enable_solver_output)
    logger.info(
        "Solving with CBC (time_limit_seconds=%s, solver_output=%s)",
        time_limit_seconds,
        enable_solver_output,
    )
    solver = _build_cbc_solver(time_limit_seconds=time_limit_seconds, enable_solver_output=enable_solver_output)

    status_code = problem.solve(solver)
    status = pulp.LpStatus[status_code]
    obj = float(pulp.value(problem.objective) or 0.0)
    logger.info("Solve complete: status=%s objective=%s", status, obj)

    lineup = None
    if status == "Optimal":
        lineup = extract_lineup(
            model_input=model_input,
            decision_variables=decision_variables,
            lineup_id=f"optimised-{game_id or team_id or 'lineup'}",
            team_id=team_id,
            game_id=game_id,
        )

    return SolveResult(
        status=status,
        objective_value=obj,
        problem=problem,
        model_input=model_input,
        decision_variables=decision_variables,
        lineup=lineup,
    )
