"""Domain data model for the fair-play lineup engine.

This module is intentionally *pure*: it defines the core enums and dataclasses
used throughout the project, with no dependency on input file formats.

I/O, parsing, and document construction live in :mod:`fair_play.io`.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Dict, Mapping, Optional, Tuple


# ============================================================================
# Errors
# ============================================================================


class DomainError(ValueError):
    """Input data violates the engine's data contract."""


class UnknownPositionError(DomainError):
    """A position symbol outside the canonical set was supplied."""


class NonContiguousInningsError(DomainError):
    """Lineup inning numbers are not 1..N without gaps."""


# ============================================================================
# Positions
# ============================================================================


class Position(str, Enum):
    """Canonical position symbols.

    ``BN`` (bench) is a valid assignment for accounting purposes but is never a
    playing position.
    """

    PITCHER = "P"
    CATCHER = "C"
    FIRST_BASE = "1B"
    SECOND_BASE = "2B"
    THIRD_BASE = "3B"
    SHORTSTOP = "SS"
    LEFT_FIELD = "LF"
    CENTER_FIELD = "CF"
    RIGHT_FIELD = "RF"
    DESIGNATED_HITTER = "DH"
    BENCH = "BN"


class PositionType(str, Enum):
    """Coarse grouping of positions."""

    PITCHER = "pitcher"
    CATCHER = "catcher"
    INFIELD = "infield"
    OUTFIELD = "outfield"
    DH = "dh"
    BENCH = "bench"


_POSITION_TYPES: Mapping[Position, PositionType] = {
    Position.PITCHER: PositionType.PITCHER,
    Position.CATCHER: PositionType.CATCHER,
    Position.FIRST_BASE: PositionType.INFIELD,
    Position.SECOND_BASE: PositionType.INFIELD,
    Position.THIRD_BASE: PositionType.INFIELD,
    Position.SHORTSTOP: PositionType.INFIELD,
    Position.LEFT_FIELD: PositionType.OUTFIELD,
    Position.CENTER_FIELD: PositionType.OUTFIELD,
    Position.RIGHT_FIELD: PositionType.OUTFIELD,
    Position.DESIGNATED_HITTER: PositionType.DH,
    Position.BENCH: PositionType.BENCH,
}

# Defensive positions in the order lineups are filled and displayed.
FIELD_POSITIONS: Tuple[Position, ...] = (
    Position.PITCHER,
    Position.CATCHER,
    Position.FIRST_BASE,
    Position.SECOND_BASE,
    Position.THIRD_BASE,
    Position.SHORTSTOP,
    Position.LEFT_FIELD,
    Position.CENTER_FIELD,
    Position.RIGHT_FIELD,
)

LINEUP_POSITIONS: Tuple[Position, ...] = FIELD_POSITIONS + (Position.DESIGNATED_HITTER,)

# Every position a player can actually play (everything except the bench).
PLAYING_POSITIONS: Tuple[Position, ...] = LINEUP_POSITIONS


def position_type(position: Position) -> PositionType:
    return _POSITION_TYPES[position]


def is_infield(position: Position) -> bool:
    """True for 1B, 2B, 3B and SS. Pitcher and catcher have their own types."""

    return _POSITION_TYPES[position] is PositionType.INFIELD


def is_outfield(position: Position) -> bool:
    return _POSITION_TYPES[position] is PositionType.OUTFIELD


def is_bench(position: Position) -> bool:
    return position is Position.BENCH


# ============================================================================
# Roster, games and lineups
# ============================================================================


@dataclass(frozen=True, slots=True)
class Player:
    """A roster member. Read-only input to the engine."""

    player_id: str
    first_name: str
    last_name: str
    jersey_number: Optional[str] = None
    primary_positions: Tuple[Position, ...] = ()
    secondary_positions: Tuple[Position, ...] = ()
    active: bool = True

    def __post_init__(self) -> None:
        if not self.player_id:
            raise ValueError("Player.player_id must be non-empty")
        overlap = set(self.primary_positions) & set(self.secondary_positions)
        if overlap:
            raise ValueError(
                f"Player {self.player_id} lists {sorted(p.value for p in overlap)} as both primary and secondary"
            )
        if Position.BENCH in self.primary_positions or Position.BENCH in self.secondary_positions:
            raise ValueError(f"Player {self.player_id} cannot prefer the bench")

    @property
    def name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()

    @property
    def display_name(self) -> str:
        if self.jersey_number:
            return f"{self.name} (#{self.jersey_number})"
        return self.name

    def preference_rank(self, position: Position) -> int:
        """0 for a primary position, 1 for a secondary one, 2 for anything new."""

        if position in self.primary_positions:
            return 0
        if position in self.secondary_positions:
            return 1
        return 2


@dataclass(frozen=True, slots=True)
class InningAssignment:
    """One slot of one inning. ``player_id`` is ``None`` for an unfilled slot."""

    inning: int
    position: Position
    player_id: Optional[str] = None

    def __post_init__(self) -> None:
        if self.inning < 1:
            raise ValueError("InningAssignment.inning must be >= 1")


@dataclass(frozen=True, slots=True)
class Inning:
    number: int
    assignments: Tuple[InningAssignment, ...] = ()

    def __post_init__(self) -> None:
        if self.number < 1:
            raise ValueError("Inning.number must be >= 1")
        for a in self.assignments:
            if a.inning != self.number:
                raise ValueError(f"Assignment for inning {a.inning} placed in inning {self.number}")

    def player_position(self, player_id: str) -> Optional[Position]:
        """Position of ``player_id`` in this inning (first match), or ``None`` if unassigned."""

        for a in self.assignments:
            if a.player_id == player_id:
                return a.position
        return None

    @property
    def assigned_player_ids(self) -> Tuple[str, ...]:
        return tuple(a.player_id for a in self.assignments if a.player_id is not None)

    @property
    def field_player_ids(self) -> Tuple[str, ...]:
        return tuple(
            a.player_id for a in self.assignments if a.player_id is not None and a.position is not Position.BENCH
        )

    @property
    def empty_positions(self) -> Tuple[Position, ...]:
        return tuple(a.position for a in self.assignments if a.player_id is None)

    @property
    def is_complete(self) -> bool:
        return not self.empty_positions


class LineupStatus(str, Enum):
    DRAFT = "draft"
    FINAL = "final"


@dataclass(frozen=True, slots=True)
class Lineup:
    """Ordered per-inning assignments for a game (or a reusable template)."""

    lineup_id: str
    team_id: str
    innings: Tuple[Inning, ...]
    game_id: Optional[str] = None
    status: LineupStatus = LineupStatus.DRAFT
    is_default: bool = False
    name: Optional[str] = None

    def __post_init__(self) -> None:
        numbers = [inning.number for inning in self.innings]
        if numbers != list(range(1, len(numbers) + 1)):
            raise NonContiguousInningsError(
                f"Lineup {self.lineup_id} innings must be numbered 1..{len(numbers)}, got {numbers}"
            )

    @property
    def is_final(self) -> bool:
        return self.status is LineupStatus.FINAL

    @property
    def unfilled_slots(self) -> Tuple[Tuple[int, Position], ...]:
        """(inning, position) pairs that have no player assigned."""

        return tuple((inning.number, pos) for inning in self.innings for pos in inning.empty_positions)

    def inning(self, number: int) -> Inning:
        try:
            return self.innings[number - 1]
        except IndexError as e:
            raise KeyError(f"Lineup {self.lineup_id} has no inning {number}") from e


@dataclass(frozen=True, slots=True)
class Game:
    game_id: str
    team_id: str
    opponent: str
    date: datetime
    innings: int = 6
    lineup_id: Optional[str] = None

    def __post_init__(self) -> None:
        if not 1 <= self.innings <= 9:
            raise ValueError("Game.innings must be between 1 and 9")


# ============================================================================
# Derived records
# ============================================================================


@dataclass(frozen=True, slots=True)
class InningPosition:
    inning: int
    position: Position


@dataclass(frozen=True, slots=True)
class PlayerGame:
    """One player's positions across one finalized game."""

    player_id: str
    game_id: str
    game_date: datetime
    opponent: str
    starting_position: Position
    inning_positions: Tuple[InningPosition, ...]

    @property
    def positions(self) -> Tuple[Position, ...]:
        return tuple(ip.position for ip in self.inning_positions)

    @property
    def started_on_bench(self) -> bool:
        return self.starting_position is Position.BENCH


@dataclass(frozen=True, slots=True)
class PositionTimeFrame:
    """Position distribution over a window of a player's games."""

    game_count: int
    total_innings: int
    position_counts: Mapping[Position, int]
    position_percentages: Mapping[Position, float]
    position_type_counts: Mapping[PositionType, int]
    position_type_percentages: Mapping[PositionType, float]
    starting_position_counts: Mapping[Position, int]
    started_on_bench: int

    @property
    def bench_innings(self) -> int:
        return self.position_counts[Position.BENCH]

    @property
    def bench_percentage(self) -> float:
        return self.position_percentages[Position.BENCH]

    @property
    def field_innings(self) -> int:
        return self.total_innings - self.bench_innings

    @property
    def played_positions(self) -> Tuple[Position, ...]:
        """Playing positions with at least one inning, in canonical order."""

        return tuple(p for p in PLAYING_POSITIONS if self.position_counts[p] > 0)

    @property
    def distinct_field_positions(self) -> int:
        return len(self.played_positions)


class Window(str, Enum):
    """Standard rolling windows over a player's most recent games."""

    LAST_GAME = "last_game"
    LAST_3_GAMES = "last_3_games"
    LAST_5_GAMES = "last_5_games"
    LAST_10_GAMES = "last_10_games"
    SEASON = "season"

    @property
    def game_limit(self) -> Optional[int]:
        return _WINDOW_LIMITS[self]


_WINDOW_LIMITS: Mapping[Window, Optional[int]] = {
    Window.LAST_GAME: 1,
    Window.LAST_3_GAMES: 3,
    Window.LAST_5_GAMES: 5,
    Window.LAST_10_GAMES: 10,
    Window.SEASON: None,
}


@dataclass(frozen=True, slots=True)
class PositionMetrics:
    """Fairness metrics for one player."""

    player_id: str
    total_games: int
    total_innings: int
    playing_time_percentage: float
    variety_score: float
    bench_streak_current: int
    bench_streak_max: int
    same_position_streak_current: int
    same_position_streak_max: int
    same_position_streak_position: Optional[Position]
    fair_play_ratio: float
    all_games: PositionTimeFrame
    windows: Mapping[Window, PositionTimeFrame] = field(default_factory=dict)

    def window(self, window: Window) -> PositionTimeFrame:
        return self.windows.get(window, self.all_games)

    @property
    def has_infield_experience(self) -> bool:
        return self.all_games.position_type_counts[PositionType.INFIELD] > 0

    @property
    def has_outfield_experience(self) -> bool:
        return self.all_games.position_type_counts[PositionType.OUTFIELD] > 0


# --- Team-level entries ---


@dataclass(frozen=True, slots=True)
class BenchTimeEntry:
    player_id: str
    bench_percentage: float


@dataclass(frozen=True, slots=True)
class VarietyEntry:
    player_id: str
    variety_score: float


@dataclass(frozen=True, slots=True)
class ExperienceNeed:
    player_id: str
    position_type: PositionType


@dataclass(frozen=True, slots=True)
class PlayingTimeImbalance:
    player_id: str
    playing_time_percentage: float
    difference_from_average: float


@dataclass(frozen=True, slots=True)
class TeamFairPlayMetrics:
    window: Window
    player_count: int
    fair_play_score: float
    bench_time_variance: float
    variety_variance: float
    team_average_playing_time: float
    most_bench_time: Tuple[BenchTimeEntry, ...]
    least_variety: Tuple[VarietyEntry, ...]
    needs_experience: Tuple[ExperienceNeed, ...]
    playing_time_imbalance: Tuple[PlayingTimeImbalance, ...]


# --- Validation ---


class Severity(str, Enum):
    ERROR = "error"
    WARNING = "warning"


@dataclass(frozen=True, slots=True)
class ValidationResult:
    rule: str
    valid: bool
    severity: Severity
    message: Optional[str] = None
    affected_players: Tuple[str, ...] = ()
    affected_innings: Tuple[int, ...] = ()


# ============================================================================
# Configuration
# ============================================================================


@dataclass(frozen=True, slots=True)
class FairPlayPolicy:
    """Tunable constants for scoring, validation and generation.

    Notes
    -----
    ``variety_saturation`` is the number of distinct playing positions at
    which the variety score reaches 100. ``bench_variance_scale`` sets how
    quickly the team score decays with bench-time variance: the score is
    ``100 * scale / (scale + variance)``.
    """

    variety_saturation: int = 5
    playing_time_weight: float = 0.6
    variety_weight: float = 0.4
    ranking_size: int = 5
    bench_variance_scale: float = 50.0
    consecutive_bench_limit: int = 2
    rotation_check_min_innings: int = 3
    full_time_roster_threshold: int = 10
    exclusive_position_min_innings: int = 2

    # Generator preference weights (exact optimiser objective).
    primary_weight: float = 3.0
    secondary_weight: float = 2.0
    new_position_weight: float = 1.0
    under_represented_weight: float = 0.5

    # Greedy generator rules.
    guarantee_infield: bool = True
    no_consecutive_game_bench: bool = True

    # Equality analysis and coaching insights.
    equality_threshold: float = 15.0
    low_playing_time_threshold: float = 50.0
    low_variety_threshold: float = 40.0
    primary_overuse_threshold: float = 30.0
    high_bench_threshold: float = 40.0

    def __post_init__(self) -> None:
        if self.variety_saturation < 2:
            raise ValueError("FairPlayPolicy.variety_saturation must be >= 2")
        if self.playing_time_weight < 0 or self.variety_weight < 0:
            raise ValueError("FairPlayPolicy weights must be >= 0")
        if abs(self.playing_time_weight + self.variety_weight - 1.0) > 1e-9:
            raise ValueError("FairPlayPolicy.playing_time_weight + variety_weight must equal 1")
        if self.ranking_size < 0:
            raise ValueError("FairPlayPolicy.ranking_size must be >= 0")
        if self.bench_variance_scale <= 0:
            raise ValueError("FairPlayPolicy.bench_variance_scale must be > 0")
        if self.consecutive_bench_limit < 2:
            raise ValueError("FairPlayPolicy.consecutive_bench_limit must be >= 2")
        if not self.primary_weight >= self.secondary_weight >= self.new_position_weight >= 0:
            raise ValueError("FairPlayPolicy preference weights must satisfy primary >= secondary >= new >= 0")

    def preference_weight(self, rank: int) -> float:
        return (self.primary_weight, self.secondary_weight, self.new_position_weight)[rank]


DEFAULT_POLICY = FairPlayPolicy()


def zero_counts_by_position() -> Dict[Position, int]:
    return {pos: 0 for pos in Position}


def zero_counts_by_type() -> Dict[PositionType, int]:
    return {t: 0 for t in PositionType}

