from __future__ import annotations

from datetime import datetime, timezone

import pytest

from fair_play.data import Inning, InningAssignment, Lineup, LineupStatus, Position, UnknownPositionError
from fair_play.io import (
    game_from_document,
    index_lineups_by_game_id,
    lineup_from_document,
    lineup_to_document,
    parse_position_str,
    parse_positions,
    parse_timestamp,
    player_from_document,
    validate_lineup_player_ids,
)


def test_parse_position_str_variants() -> None:
    assert parse_position_str("ss") == Position.SHORTSTOP
    assert parse_position_str(" 1b ") == Position.FIRST_BASE
    assert parse_position_str("BN") == Position.BENCH
    assert parse_position_str("bench") == Position.BENCH
    assert parse_position_str("DH") == Position.DESIGNATED_HITTER


def test_parse_position_str_rejects_unknown_symbols() -> None:
    with pytest.raises(UnknownPositionError, match="Unknown position string"):
        parse_position_str("LC")
    with pytest.raises(ValueError):
        parse_position_str("4B")


def test_parse_positions_drops_duplicates_keeping_order() -> None:
    assert parse_positions(["SS", "2b", "SS"]) == (Position.SHORTSTOP, Position.SECOND_BASE)


def test_parse_timestamp_accepts_epoch_millis_and_iso_strings() -> None:
    assert parse_timestamp(0) == datetime(1970, 1, 1, tzinfo=timezone.utc)
    assert parse_timestamp("2024-05-01T10:00:00Z") == datetime(2024, 5, 1, 10, tzinfo=timezone.utc)
    assert parse_timestamp("2024-05-01") == datetime(2024, 5, 1, tzinfo=timezone.utc)

    with pytest.raises(ValueError):
        parse_timestamp("next tuesday")
    with pytest.raises(ValueError):
        parse_timestamp(None)


def test_player_from_document_reads_camel_case_keys() -> None:
    player = player_from_document(
        {
            "id": "p1",
            "teamId": "t1",
            "firstName": "Ava",
            "lastName": "Diaz",
            "jerseyNumber": 7,
            "primaryPositions": ["P"],
            "secondaryPositions": ["1B", "CF"],
            "active": False,
        }
    )
    assert player.player_id == "p1"
    assert player.display_name == "Ava Diaz (#7)"
    assert player.primary_positions == (Position.PITCHER,)
    assert player.secondary_positions == (Position.FIRST_BASE, Position.CENTER_FIELD)
    assert player.active is False


def test_game_from_document_defaults_innings_and_lineup() -> None:
    game = game_from_document({"id": "g1", "teamId": "t1", "opponent": "Owls", "date": 1714557600000})
    assert game.innings == 6
    assert game.lineup_id is None
    assert game.date.tzinfo is not None


def test_lineup_from_document_sorts_innings_and_reads_empty_slots() -> None:
    lineup = lineup_from_document(
        {
            "id": "l1",
            "teamId": "t1",
            "gameId": "g1",
            "status": "final",
            "innings": [
                {"inning": 2, "positions": [{"position": "P", "playerId": "p2"}]},
                {"inning": 1, "positions": [{"position": "P", "playerId": "p1"}, {"position": "C", "playerId": ""}]},
            ],
        }
    )
    assert [i.number for i in lineup.innings] == [1, 2]
    assert lineup.status is LineupStatus.FINAL
    assert lineup.unfilled_slots == ((1, Position.CATCHER),)


def test_lineup_from_document_loads_templates_as_one_inning() -> None:
    lineup = lineup_from_document(
        {
            "id": "tmpl",
            "teamId": "t1",
            "name": "Default",
            "isDefault": True,
            "positions": [{"position": "SS", "playerId": "p1"}],
        }
    )
    assert lineup.game_id is None
    assert lineup.is_default
    assert lineup.name == "Default"
    assert len(lineup.innings) == 1
    assert lineup.innings[0].player_position("p1") is Position.SHORTSTOP


def test_lineup_to_document_round_trips_the_stored_shape() -> None:
    doc = {
        "id": "l1",
        "teamId": "t1",
        "gameId": "g1",
        "status": "draft",
        "isDefault": False,
        "innings": [
            {"inning": 1, "positions": [{"position": "P", "playerId": "p1"}, {"position": "BN", "playerId": "p2"}]}
        ],
    }
    assert lineup_to_document(lineup_from_document(doc)) == doc


def test_index_lineups_by_game_id_prefers_final_and_skips_templates() -> None:
    def _lineup(lineup_id: str, game_id: str | None, status: LineupStatus) -> Lineup:
        inning = Inning(number=1, assignments=(InningAssignment(inning=1, position=Position.PITCHER, player_id="p1"),))
        return Lineup(lineup_id=lineup_id, team_id="t1", innings=(inning,), game_id=game_id, status=status)

    final = _lineup("a", "g1", LineupStatus.FINAL)
    draft = _lineup("b", "g1", LineupStatus.DRAFT)
    template = _lineup("c", None, LineupStatus.DRAFT)

    indexed = index_lineups_by_game_id([final, draft, template])
    assert indexed == {"g1": final}


def test_validate_lineup_player_ids_ok() -> None:
    lineup = lineup_from_document(
        {"id": "l1", "innings": [{"inning": 1, "positions": [{"position": "P", "playerId": "p1"}]}]}
    )
    validate_lineup_player_ids(lineups=[lineup], roster_ids={"p1", "p2"})


def test_validate_lineup_player_ids_missing_includes_hint() -> None:
    lineup = lineup_from_document(
        {"id": "l1", "innings": [{"inning": 1, "positions": [{"position": "P", "playerId": "p11"}]}]}
    )
    with pytest.raises(ValueError) as ei:
        validate_lineup_player_ids(lineups=[lineup], roster_ids={"p1"}, close_match_cutoff=0.0, close_match_n=1)

    msg = str(ei.value)
    assert "p11" in msg
    assert "did you mean: p1" in msg
