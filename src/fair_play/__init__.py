"""Fair-play position tracking and lineup generation for youth baseball teams.

The engine is a set of pure functions over immutable records:

history reconstruction -> rolling windows -> player metrics -> team analysis,
lineup validation and lineup generation.

File formats live in :mod:`fair_play.io`; the exact (MILP) optimiser lives in
:mod:`fair_play.formulation` and is driven from :mod:`fair_play.main`.
"""

from .data import (
    DomainError,
    FairPlayPolicy,
    Game,
    Lineup,
    NonContiguousInningsError,
    Player,
    Position,
    PositionType,
    UnknownPositionError,
    Window,
)
from .generator import generate_lineup, generate_rotation
from .history import reconstruct_history
from .metrics import compute_metrics
from .team import analyze_team
from .validation import get_fair_play_issues, validate_lineup
from .windows import aggregate_window

__all__ = [
    "DomainError",
    "FairPlayPolicy",
    "Game",
    "Lineup",
    "NonContiguousInningsError",
    "Player",
    "Position",
    "PositionType",
    "UnknownPositionError",
    "Window",
    "reconstruct_history",
    "aggregate_window",
    "compute_metrics",
    "analyze_team",
    "validate_lineup",
    "get_fair_play_issues",
    "generate_lineup",
    "generate_rotation",
]
