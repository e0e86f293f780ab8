"""MILP formulation of single-game lineup assignment.

This is the exact counterpart of :mod:`fair_play.generator`. Where the greedy
generator decides inning by inning, this model sees the whole game at once and
trades off position preferences against bench balance globally.

Sets
----
P   active players, I   innings 1..n, K   positions to fill each inning.

Variables
---------
assign[p, k, i] ∈ {0,1}   player p plays position k in inning i
bench[p, i]     ∈ {0,1}   player p sits inning i

Objective
---------
maximise  Σ (F + w[p,k] + u[p,k] + ε[p,k,i]) · assign[p,k,i]

where F rewards filling a slot, w is the preference weight (primary >
secondary > new), u rewards position types the player has seen little of, and
ε is a tiny strictly ordered tie-breaker.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from functools import cached_property
from typing import Dict, Mapping, Sequence, Tuple

import pulp

from fair_play.data import (
    DEFAULT_POLICY,
    FIELD_POSITIONS,
    FairPlayPolicy,
    Player,
    PlayerGame,
    Position,
    PositionTimeFrame,
    position_type,
)
from fair_play.windows import summarise_games


FILL_WEIGHT = 100.0
TIE_BREAK_WEIGHT = 1e-3


# ============================================================================
# Data structures
# ============================================================================


@dataclass
class LineupModelInput:
    """Everything the formulation needs, with memoised index sets."""

    players: Dict[str, Player]
    inning_count: int
    positions: Tuple[Position, ...] = FIELD_POSITIONS
    history_by_player: Mapping[str, Sequence[PlayerGame]] = field(default_factory=dict)
    policy: FairPlayPolicy = DEFAULT_POLICY

    def __post_init__(self) -> None:
        self.players = {pid: p for pid, p in self.players.items() if p.active}
        if not self.players:
            raise ValueError("LineupModelInput.players must contain at least one active player")
        if not 1 <= self.inning_count <= 9:
            raise ValueError("LineupModelInput.inning_count must be between 1 and 9")
        if not self.positions or Position.BENCH in self.positions:
            raise ValueError("LineupModelInput.positions must be non-empty and exclude the bench")

    # --- Core index sets (memoised) ---

    @cached_property
    def player_ids(self) -> Sequence[str]:
        """Sorted player IDs (P)."""

        return tuple(sorted(self.players))

    @cached_property
    def player_index(self) -> Mapping[str, int]:
        """Position of each player in :attr:`player_ids`; used in variable names."""

        return {pid: n for n, pid in enumerate(self.player_ids)}

    @cached_property
    def inning_numbers(self) -> Sequence[int]:
        return tuple(range(1, self.inning_count + 1))

    @cached_property
    def idx_player_position_inning(self) -> Sequence[tuple[str, Position, int]]:
        return tuple((p, k, i) for p in self.player_ids for k in self.positions for i in self.inning_numbers)

    @cached_property
    def idx_player_inning(self) -> Sequence[tuple[str, int]]:
        return tuple((p, i) for p in self.player_ids for i in self.inning_numbers)

    @cached_property
    def history_summary(self) -> Mapping[str, PositionTimeFrame]:
        return {p: summarise_games(self.history_by_player.get(p, ())) for p in self.player_ids}

    # --- Derived sizes ---

    @property
    def bench_per_inning(self) -> int:
        return max(0, len(self.player_ids) - len(self.positions))

    @property
    def roster_fills_every_slot(self) -> bool:
        return len(self.player_ids) >= len(self.positions)

    @property
    def bench_cap(self) -> int:
        """Most innings any one player may sit: the even share, rounded up."""

        return math.ceil(self.inning_count * self.bench_per_inning / len(self.player_ids))

    @property
    def forbids_consecutive_bench(self) -> bool:
        """Back-to-back bench innings can be avoided only when at most half the roster sits."""

        return 2 * self.bench_per_inning <= len(self.player_ids)

    # --- Objective coefficients ---

    def preference_weight(self, player_id: str, position: Position) -> float:
        rank = self.players[player_id].preference_rank(position)
        return self.policy.preference_weight(rank)

    def under_represented_bonus(self, player_id: str, position: Position) -> float:
        summary = self.history_summary[player_id]
        if summary.field_innings == 0:
            return self.policy.under_represented_weight
        share = summary.position_type_counts[position_type(position)] / summary.field_innings
        return self.policy.under_represented_weight * (1.0 - share)

    def tie_break(self, player_id: str, position: Position, inning: int) -> float:
        n = (
            self.player_index[player_id] * len(self.positions) * self.inning_count
            + self.positions.index(position) * self.inning_count
            + (inning - 1)
        )
        return TIE_BREAK_WEIGHT * n / len(self.idx_player_position_inning)


@dataclass(slots=True)
class DecisionVariables:
    """Container for all PuLP decision variables."""

    # assign[p, k, i] ∈ {0,1}
    assign: Dict[Tuple[str, Position, int], pulp.LpVariable] = field(default_factory=dict)

    # bench[p, i] ∈ {0,1}
    bench: Dict[Tuple[str, int], pulp.LpVariable] = field(default_factory=dict)


# ============================================================================
# Top-level orchestrator
# ============================================================================


def formulate_lineup_problem(model_input: LineupModelInput) -> tuple[pulp.LpProblem, DecisionVariables]:
    """Create the PuLP optimisation problem.

    Parameters
    ----------
    model_input:
        Active players, innings, positions and history.

    Returns
    -------
    tuple[pulp.LpProblem, DecisionVariables]
        The problem (ready to solve) and its decision variables.
    """

    problem = pulp.LpProblem(name="fair_play_lineup", sense=pulp.LpMaximize)

    decision_variables = create_decision_variables(problem, model_input)
    add_objective(problem, model_input, decision_variables)
    add_constraints(problem, model_input, decision_variables)

    return problem, decision_variables


# ============================================================================
# Second-level orchestrator: Decision variables
# ============================================================================


def create_decision_variables(problem: pulp.LpProblem, model_input: LineupModelInput) -> DecisionVariables:
    """Create and register all decision variables."""

    _ = problem

    return DecisionVariables(
        assign=_create_assignment_decision_variables(model_input),
        bench=_create_bench_decision_variables(model_input),
    )


def _create_assignment_decision_variables(
    model_input: LineupModelInput,
) -> Dict[Tuple[str, Position, int], pulp.LpVariable]:
    """Create assign[p, k, i] decision variables."""

    idx = model_input.player_index
    return {
        (p, k, i): pulp.LpVariable(f"assign_{idx[p]}_{k.value}_{i}", lowBound=0, upBound=1, cat=pulp.LpBinary)
        for (p, k, i) in model_input.idx_player_position_inning
    }


def _create_bench_decision_variables(model_input: LineupModelInput) -> Dict[Tuple[str, int], pulp.LpVariable]:
    """Create bench[p, i] decision variables."""

    idx = model_input.player_index
    return {
        (p, i): pulp.LpVariable(f"bench_{idx[p]}_{i}", lowBound=0, upBound=1, cat=pulp.LpBinary)
        for (p, i) in model_input.idx_player_inning
    }


# ============================================================================
# Second-level orchestrator: Objective
# ============================================================================


def add_objective(
    problem: pulp.LpProblem,
    model_input: LineupModelInput,
    decision_variables: DecisionVariables,
) -> None:
    """Add the objective function to the problem."""

    problem += pulp.lpSum(
        (
            FILL_WEIGHT
            + model_input.preference_weight(p, k)
            + model_input.under_represented_bonus(p, k)
            + model_input.tie_break(p, k, i)
        )
        * var
        for (p, k, i), var in decision_variables.assign.items()
    )


# ============================================================================
# Second-level orchestrator: Constraints
# ============================================================================


def add_constraints(
    problem: pulp.LpProblem,
    model_input: LineupModelInput,
    decision_variables: DecisionVariables,
) -> None:
    """Add all constraints to the problem.

    This is an orchestrator that delegates to one function per constraint
    family.
    """

    _add_slot_fill_constraints(problem, model_input, decision_variables)
    _add_one_slot_per_player_constraints(problem, model_input, decision_variables)
    _add_bench_cap_constraints(problem, model_input, decision_variables)
    _add_no_consecutive_bench_constraints(problem, model_input, decision_variables)


def _add_slot_fill_constraints(
    problem: pulp.LpProblem,
    model_input: LineupModelInput,
    decision_variables: DecisionVariables,
) -> None:
    """Every (position, inning) slot holds exactly one player, or at most one when the roster is short."""

    x = decision_variables.assign
    for k in model_input.positions:
        for i in model_input.inning_numbers:
            expr = pulp.lpSum(x[(p, k, i)] for p in model_input.player_ids)
            if model_input.roster_fills_every_slot:
                problem += expr == 1, f"fill_{k.value}_{i}"
            else:
                problem += expr <= 1, f"fill_{k.value}_{i}"


def _add_one_slot_per_player_constraints(
    problem: pulp.LpProblem,
    model_input: LineupModelInput,
    decision_variables: DecisionVariables,
) -> None:
    """Each player is either at exactly one position or on the bench, every inning."""

    x = decision_variables.assign
    b = decision_variables.bench
    idx = model_input.player_index
    for p, i in model_input.idx_player_inning:
        problem += (
            pulp.lpSum(x[(p, k, i)] for k in model_input.positions) + b[(p, i)] == 1,
            f"one_slot_{idx[p]}_{i}",
        )


def _add_bench_cap_constraints(
    problem: pulp.LpProblem,
    model_input: LineupModelInput,
    decision_variables: DecisionVariables,
) -> None:
    """No player sits more than the even share of bench innings (rounded up)."""

    b = decision_variables.bench
    idx = model_input.player_index
    cap = model_input.bench_cap
    for p in model_input.player_ids:
        problem += pulp.lpSum(b[(p, i)] for i in model_input.inning_numbers) <= cap, f"bench_cap_{idx[p]}"


def _add_no_consecutive_bench_constraints(
    problem: pulp.LpProblem,
    model_input: LineupModelInput,
    decision_variables: DecisionVariables,
) -> None:
    """bench[p,i] + bench[p,i+1] <= 1, when at most half the roster sits each inning."""

    if not model_input.forbids_consecutive_bench:
        return

    b = decision_variables.bench
    idx = model_input.player_index
    for p in model_input.player_ids:
        for i in model_input.inning_numbers[:-1]:
            problem += b[(p, i)] + b[(p, i + 1)] <= 1, f"no_consecutive_bench_{idx[p]}_{i}"
