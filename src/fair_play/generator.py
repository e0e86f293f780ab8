"""Greedy lineup and multi-game rotation generator.

The generator works inning by inning:

1. Pick the field pool: the ``len(positions)`` active players who have played
   the fewest innings so far in the lineup being built (then the longest
   current bench run, then the lowest accumulated playing time, then player
   id). Everyone else is benched for the inning.
2. Fill positions in a fixed order (pitcher, catcher, infield, outfield, DH),
   each time taking the pool player with the best key: primary position before
   secondary before new, then the lowest share of the position's type in the
   player's record, then fewest innings so far, then player id.

Two policy switches adjust this. With ``no_consecutive_game_bench`` players who
started their previous game on the bench go into the first inning's pool
ahead of everyone else. With ``guarantee_infield``, in lineups long enough for
the rotation checks, players with no infield innings yet take infield
positions ahead of the rest of the pool; any still missing out once the lineup
is built swap positions, within an inning they already play, with a teammate
who holds infield in more than one inning.

Hard constraints (no double booking, only active players, explicit bench
assignments) hold by construction. When the roster cannot fill every
position the leftover slots stay empty and show up in
:attr:`fair_play.data.Lineup.unfilled_slots`.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Mapping, Optional, Sequence, Tuple

from fair_play.data import (
    DEFAULT_POLICY,
    FIELD_POSITIONS,
    FairPlayPolicy,
    Inning,
    InningAssignment,
    Lineup,
    LineupStatus,
    Player,
    PlayerGame,
    Position,
    PositionType,
    is_bench,
    is_infield,
    position_type,
    zero_counts_by_type,
)
from fair_play.history import inning_sequence, last_bench_start
from fair_play.metrics import bench_streaks
from fair_play.windows import summarise_games


logger = logging.getLogger(__name__)


@dataclass(slots=True)
class _PlayerTally:
    """Running totals for one player while lineups are being built."""

    player: Player
    innings_total: int = 0
    field_total: int = 0
    type_counts: Dict[PositionType, int] = field(default_factory=zero_counts_by_type)
    innings_this_lineup: int = 0
    bench_run: int = 0
    needs_infield: bool = True
    sat_last_start: bool = False

    @property
    def playing_time(self) -> float:
        if self.innings_total == 0:
            return 0.0
        return self.field_total / self.innings_total

    def type_share(self, ptype: PositionType) -> float:
        if self.field_total == 0:
            return 0.0
        return self.type_counts[ptype] / self.field_total

    def record_field(self, position: Position) -> None:
        self.innings_total += 1
        self.field_total += 1
        self.innings_this_lineup += 1
        self.type_counts[position_type(position)] += 1
        self.bench_run = 0
        if is_infield(position):
            self.needs_infield = False

    def record_bench(self) -> None:
        self.innings_total += 1
        self.type_counts[PositionType.BENCH] += 1
        self.bench_run += 1

    def move_field(self, old: Position, new: Position) -> None:
        """Re-record one fielded inning at ``new`` instead of ``old``."""

        self.type_counts[position_type(old)] -= 1
        self.type_counts[position_type(new)] += 1
        if is_infield(new):
            self.needs_infield = False


def _seed_tallies(
    roster: Sequence[Player],
    history_by_player: Mapping[str, Sequence[PlayerGame]],
) -> List[_PlayerTally]:
    seen: set[str] = set()
    tallies: List[_PlayerTally] = []
    for player in roster:
        if player.player_id in seen:
            raise ValueError(f"Duplicate player id {player.player_id!r} in roster")
        seen.add(player.player_id)
        if not player.active:
            continue

        history = history_by_player.get(player.player_id, ())
        summary = summarise_games(history)
        bench_start = last_bench_start(history)
        tally = _PlayerTally(
            player=player,
            innings_total=summary.total_innings,
            field_total=summary.field_innings,
            type_counts=dict(summary.position_type_counts),
            bench_run=bench_streaks(inning_sequence(history))[0],
            needs_infield=summary.position_type_counts[PositionType.INFIELD] == 0,
            # histories are most recent first
            sat_last_start=bench_start is not None and bench_start.game_id == history[0].game_id,
        )
        tallies.append(tally)

    return sorted(tallies, key=lambda t: t.player.player_id)


def _pool_key(tally: _PlayerTally, *, opening: bool) -> Tuple[int, bool, int, float, str]:
    return (
        tally.innings_this_lineup,
        not (opening and tally.sat_last_start),
        -tally.bench_run,
        tally.playing_time,
        tally.player.player_id,
    )


def _placement_key(
    tally: _PlayerTally,
    position: Position,
    *,
    infield_first: bool,
) -> Tuple[bool, int, float, int, str]:
    return (
        not (infield_first and tally.needs_infield and is_infield(position)),
        tally.player.preference_rank(position),
        tally.type_share(position_type(position)),
        tally.innings_this_lineup,
        tally.player.player_id,
    )


def _build_inning(
    number: int,
    tallies: Sequence[_PlayerTally],
    positions: Sequence[Position],
    *,
    opening: bool,
    infield_first: bool,
) -> Inning:
    pool = sorted(tallies, key=lambda t: _pool_key(t, opening=opening))[: len(positions)]
    pool_ids = {t.player.player_id for t in pool}
    benched = [t for t in tallies if t.player.player_id not in pool_ids]

    assignments: List[InningAssignment] = []
    for position in positions:
        if not pool:
            assignments.append(InningAssignment(inning=number, position=position, player_id=None))
            continue
        chosen = min(pool, key=lambda t: _placement_key(t, position, infield_first=infield_first))
        pool.remove(chosen)
        assignments.append(InningAssignment(inning=number, position=position, player_id=chosen.player.player_id))
        chosen.record_field(position)

    for tally in sorted(benched, key=lambda t: t.player.player_id):
        tally.record_bench()
        assignments.append(InningAssignment(inning=number, position=Position.BENCH, player_id=tally.player.player_id))

    return Inning(number=number, assignments=tuple(assignments))


def _infield_innings(innings: Sequence[Inning], player_id: str) -> int:
    count = 0
    for inning in innings:
        position = inning.player_position(player_id)
        if position is not None and is_infield(position):
            count += 1
    return count


def _swap_players(inning: Inning, first: str, second: str) -> Inning:
    swapped = {first: second, second: first}
    return Inning(
        number=inning.number,
        assignments=tuple(
            InningAssignment(inning=a.inning, position=a.position, player_id=swapped.get(a.player_id, a.player_id))
            for a in inning.assignments
        ),
    )


def _guarantee_infield(innings: List[Inning], tallies: Sequence[_PlayerTally], lineup_id: str) -> None:
    """Swap players still without infield time into an infield slot, in place.

    A swap only happens inside an inning the player already fields, with a
    teammate holding infield in more than one inning of the lineup. Bench time
    does not change and the teammate keeps at least one infield inning.
    """

    by_id = {t.player.player_id: t for t in tallies}
    for tally in tallies:
        if not tally.needs_infield:
            continue
        player_id = tally.player.player_id
        for index, inning in enumerate(innings):
            current = inning.player_position(player_id)
            if current is None or is_bench(current):
                continue
            holder = next(
                (
                    a
                    for a in inning.assignments
                    if a.player_id is not None and is_infield(a.position) and _infield_innings(innings, a.player_id) > 1
                ),
                None,
            )
            if holder is None or holder.player_id is None:
                continue
            innings[index] = _swap_players(inning, player_id, holder.player_id)
            tally.move_field(current, holder.position)
            by_id[holder.player_id].move_field(holder.position, current)
            logger.debug(
                "Swapped %s (%s) with %s (%s) in inning %d of %s for infield experience",
                player_id,
                current.value,
                holder.player_id,
                holder.position.value,
                inning.number,
                lineup_id,
            )
            break
        else:
            logger.warning("Could not give %s an infield inning in lineup %s", player_id, lineup_id)


def _build_lineup(
    tallies: Sequence[_PlayerTally],
    inning_count: int,
    *,
    lineup_id: str,
    team_id: str,
    game_id: Optional[str],
    positions: Sequence[Position],
    policy: FairPlayPolicy,
) -> Lineup:
    for tally in tallies:
        tally.innings_this_lineup = 0

    infield_first = policy.guarantee_infield and inning_count >= policy.rotation_check_min_innings
    innings = [
        _build_inning(
            n,
            tallies,
            positions,
            opening=n == 1 and policy.no_consecutive_game_bench,
            infield_first=infield_first,
        )
        for n in range(1, inning_count + 1)
    ]
    if infield_first:
        _guarantee_infield(innings, tallies, lineup_id)

    for tally in tallies:
        start = innings[0].player_position(tally.player.player_id)
        tally.sat_last_start = start is not None and is_bench(start)

    lineup = Lineup(
        lineup_id=lineup_id,
        team_id=team_id,
        innings=tuple(innings),
        game_id=game_id,
        status=LineupStatus.DRAFT,
        name="Generated lineup",
    )

    unfilled = lineup.unfilled_slots
    if unfilled:
        logger.warning(
            "Only %d active players for %d positions: %d slots left empty in lineup %s",
            len(tallies),
            len(positions),
            len(unfilled),
            lineup_id,
        )
    logger.debug(
        "Generated lineup %s: innings=%d positions=%d players=%d",
        lineup_id,
        inning_count,
        len(positions),
        len(tallies),
    )
    return lineup


def _check_request(inning_count: int, positions: Sequence[Position]) -> None:
    if not 1 <= inning_count <= 9:
        raise ValueError("inning_count must be between 1 and 9")
    if not positions:
        raise ValueError("positions must be non-empty")
    if Position.BENCH in positions:
        raise ValueError("positions cannot include the bench")
    if len(set(positions)) != len(positions):
        raise ValueError("positions must not repeat")


def generate_lineup(
    roster: Sequence[Player],
    inning_count: int,
    history_by_player: Optional[Mapping[str, Sequence[PlayerGame]]] = None,
    *,
    team_id: str = "",
    game_id: Optional[str] = None,
    positions: Sequence[Position] = FIELD_POSITIONS,
    policy: FairPlayPolicy = DEFAULT_POLICY,
) -> Lineup:
    """Generate a draft lineup for one game.

    Parameters
    ----------
    roster:
        Every player on the team; inactive players are never assigned.
    inning_count:
        Number of innings to schedule (1-9).
    history_by_player:
        Reconstructed histories used to balance playing time and position
        types against past games.
    positions:
        Positions to fill each inning, in fill order. Pass
        :data:`fair_play.data.LINEUP_POSITIONS` to include a DH.
    policy:
        ``guarantee_infield`` and ``no_consecutive_game_bench`` switch the
        infield and opening-inning rules on or off.

    Returns
    -------
    Lineup
        A draft lineup. Identical inputs give an identical lineup, including
        its id.
    """

    _check_request(inning_count, positions)
    tallies = _seed_tallies(roster, history_by_player or {})
    return _build_lineup(
        tallies,
        inning_count,
        lineup_id=f"generated-{game_id or team_id or 'lineup'}",
        team_id=team_id,
        game_id=game_id,
        positions=positions,
        policy=policy,
    )


def generate_rotation(
    roster: Sequence[Player],
    game_count: int,
    inning_count: int,
    history_by_player: Optional[Mapping[str, Sequence[PlayerGame]]] = None,
    *,
    team_id: str = "",
    game_ids: Optional[Sequence[str]] = None,
    positions: Sequence[Position] = FIELD_POSITIONS,
    policy: FairPlayPolicy = DEFAULT_POLICY,
) -> Tuple[Lineup, ...]:
    """Plan lineups for several upcoming games.

    Each planned game feeds the running totals used for the next one, so bench
    time and position types even out across the whole plan rather than within
    each game alone. Who sat out the opening inning of one planned game is
    carried into the next.
    """

    if game_count < 1:
        raise ValueError("game_count must be >= 1")
    if game_ids is not None and len(game_ids) != game_count:
        raise ValueError("game_ids must have one id per planned game")
    _check_request(inning_count, positions)

    tallies = _seed_tallies(roster, history_by_player or {})
    lineups: List[Lineup] = []
    for n in range(game_count):
        game_id = game_ids[n] if game_ids is not None else None
        lineups.append(
            _build_lineup(
                tallies,
                inning_count,
                lineup_id=f"generated-{game_id}" if game_id else f"generated-{team_id or 'rotation'}-{n + 1}",
                team_id=team_id,
                game_id=game_id,
                positions=positions,
                policy=policy,
            )
        )

    logger.info("Planned rotation: games=%d innings=%d players=%d", game_count, inning_count, len(tallies))
    return tuple(lineups)
