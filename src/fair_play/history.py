"""Per-player position history reconstruction.

A player's history is the list of finalized games they appear in, each with
the position they held in every inning of that game's lineup. Games with no
lineup, or whose lineup is still a draft, contribute nothing.
"""

from __future__ import annotations

from datetime import datetime
from typing import Dict, Iterable, Mapping, Optional, Sequence, Tuple

from fair_play.data import Game, InningPosition, Lineup, PlayerGame, Position


def order_games(games: Iterable[Game]) -> Tuple[Game, ...]:
    """Most recent first; equal dates break by ``game_id`` ascending."""

    by_id = sorted(games, key=lambda g: g.game_id)
    # sort is stable under reverse=True, so equal dates keep ascending ids.
    return tuple(sorted(by_id, key=lambda g: g.date, reverse=True))


def player_game_from_lineup(
    player_id: str,
    lineup: Lineup,
    *,
    game_id: str,
    game_date: datetime,
    opponent: str,
) -> PlayerGame:
    """Positions for one player across every inning of ``lineup``.

    An inning in which the player has no assignment counts as bench.
    """

    inning_positions = []
    for inning in lineup.innings:
        pos = inning.player_position(player_id)
        inning_positions.append(InningPosition(inning=inning.number, position=pos or Position.BENCH))

    starting = inning_positions[0].position if inning_positions else Position.BENCH
    return PlayerGame(
        player_id=player_id,
        game_id=game_id,
        game_date=game_date,
        opponent=opponent,
        starting_position=starting,
        inning_positions=tuple(inning_positions),
    )


def _final_lineup(game: Game, lineups_by_game_id: Mapping[str, Lineup]) -> Optional[Lineup]:
    lineup = lineups_by_game_id.get(game.game_id)
    if lineup is None or not lineup.is_final:
        return None
    return lineup


def reconstruct_history(
    player_id: str,
    games: Iterable[Game],
    lineups_by_game_id: Mapping[str, Lineup],
) -> Tuple[PlayerGame, ...]:
    """Reconstruct one player's game-by-game positions, most recent game first.

    Parameters
    ----------
    player_id:
        The player to reconstruct.
    games:
        All games for the team, in any order.
    lineups_by_game_id:
        Lineups keyed by game id. Only ``final`` lineups are used.

    Returns
    -------
    tuple[PlayerGame, ...]
        One entry per finalized game, ordered newest first with ties broken by
        game id.

    Notes
    -----
    Only the innings present in the lineup are considered. If a game was
    configured for more innings than its lineup has, the extra innings are
    treated as not assigned and do not appear in the record.
    """

    history: list[PlayerGame] = []
    for game in order_games(games):
        lineup = _final_lineup(game, lineups_by_game_id)
        if lineup is None:
            continue
        history.append(
            player_game_from_lineup(
                player_id,
                lineup,
                game_id=game.game_id,
                game_date=game.date,
                opponent=game.opponent,
            )
        )
    return tuple(history)


def reconstruct_team_history(
    player_ids: Iterable[str],
    games: Iterable[Game],
    lineups_by_game_id: Mapping[str, Lineup],
) -> Dict[str, Tuple[PlayerGame, ...]]:
    """``reconstruct_history`` for every player, sharing one ordering pass."""

    ordered = order_games(games)
    return {pid: reconstruct_history(pid, ordered, lineups_by_game_id) for pid in player_ids}


def chronological(player_games: Sequence[PlayerGame]) -> Tuple[PlayerGame, ...]:
    """Oldest game first (the reverse of the reconstruction order)."""

    return tuple(reversed(player_games))


def inning_sequence(player_games: Sequence[PlayerGame]) -> Tuple[Position, ...]:
    """Every inning position in chronological order across game boundaries."""

    return tuple(pos for game in chronological(player_games) for pos in game.positions)


def last_bench_start(player_games: Sequence[PlayerGame]) -> Optional[PlayerGame]:
    """The most recent game the player started on the bench, if any."""

    for game in player_games:
        if game.started_on_bench:
            return game
    return None
