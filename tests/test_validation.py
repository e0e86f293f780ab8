from __future__ import annotations

import copy
from typing import Dict, Optional, Sequence

from fair_play.data import FIELD_POSITIONS, Lineup, Position, Severity
from fair_play.history import reconstruct_history
from fair_play.validation import (
    RULE_CONSECUTIVE_BENCH,
    RULE_DOUBLE_BOOKING,
    RULE_INFIELD_EXPERIENCE,
    RULE_POSITIONS_FILLED,
    benched_innings,
    check_consecutive_bench,
    check_double_booking,
    check_infield_experience,
    check_positions_filled,
    get_fair_play_issues,
    has_errors,
    validate_lineup,
)
from lineup_builders import make_game, make_inning, make_lineup, make_player, single_player_lineup


def _lineup_from_bench(player_ids: Sequence[str], bench_by_inning: Sequence[Sequence[str]]) -> Lineup:
    """Fill the field positions with everyone not benched, rotating the order each inning."""

    innings = []
    for n, bench in enumerate(bench_by_inning, start=1):
        fielders = [pid for pid in player_ids if pid not in bench]
        shift = n % len(fielders)
        fielders = fielders[shift:] + fielders[:shift]
        slots: Dict[Position, Optional[str]] = dict(zip(FIELD_POSITIONS, fielders))
        innings.append(make_inning(n, slots, bench=bench))
    return make_lineup(innings)


TWELVE = [f"p{i:02d}" for i in range(1, 13)]


def test_consecutive_bench_reports_only_innings_in_runs() -> None:
    lineup = _lineup_from_bench(
        TWELVE,
        [
            ["p02", "p03", "p04"],
            ["p05", "p06", "p07"],
            ["p01", "p08", "p09"],
            ["p01", "p10", "p11"],
            ["p12", "p02", "p03"],
            ["p04", "p05", "p06"],
        ],
    )

    result = check_consecutive_bench(lineup, TWELVE)
    assert not result.valid
    assert result.severity is Severity.WARNING
    assert result.affected_players == ("p01",)
    assert result.affected_innings == (3, 4)
    assert result.message == "Some players are benched for 2+ consecutive innings"


def test_consecutive_bench_counts_unassigned_players_as_benched() -> None:
    lineup = make_lineup(
        [
            make_inning(1, {Position.PITCHER: "p1"}),
            make_inning(2, {Position.PITCHER: "p1"}),
        ]
    )

    result = check_consecutive_bench(lineup, ["p1", "p2"])
    assert result.affected_players == ("p2",)
    assert benched_innings(lineup, "p2") == (1, 2)


def test_consecutive_bench_ignores_players_outside_the_active_list() -> None:
    lineup = make_lineup([make_inning(1, {}, bench=["p1"]), make_inning(2, {}, bench=["p1"])])
    assert check_consecutive_bench(lineup, ["p2"]).affected_players == ("p2",)
    assert check_consecutive_bench(lineup, []).valid


def test_positions_filled_flags_incomplete_innings() -> None:
    lineup = make_lineup(
        [
            make_inning(1, {Position.PITCHER: "p1", Position.CATCHER: "p2"}),
            make_inning(2, {Position.PITCHER: "p1", Position.CATCHER: None}),
        ]
    )

    result = check_positions_filled(lineup)
    assert not result.valid
    assert result.severity is Severity.ERROR
    assert result.affected_innings == (2,)
    assert result.message == "Some positions are not filled"


def test_nine_players_nine_positions_fill_everything() -> None:
    nine = TWELVE[:9]
    lineup = _lineup_from_bench(nine, [[]] * 6)

    assert check_positions_filled(lineup).valid
    assert check_consecutive_bench(lineup, nine).valid
    assert all(not inning.empty_positions for inning in lineup.innings)


def test_double_booking_is_an_error() -> None:
    lineup = make_lineup([make_inning(1, {Position.PITCHER: "p1", Position.CATCHER: "p1"})])

    result = check_double_booking(lineup)
    assert not result.valid
    assert result.severity is Severity.ERROR
    assert result.affected_players == ("p1",)
    assert result.affected_innings == (1,)


def test_infield_experience_skipped_for_short_lineups() -> None:
    lineup = make_lineup(
        [make_inning(1, {Position.LEFT_FIELD: "p1"}), make_inning(2, {Position.LEFT_FIELD: "p1"})]
    )
    assert check_infield_experience(lineup, ["p1"]).valid


def test_infield_experience_flags_players_without_infield_time() -> None:
    lineup = make_lineup(
        [make_inning(n, {Position.LEFT_FIELD: "p1", Position.SHORTSTOP: "p2"}) for n in range(1, 4)]
    )

    result = check_infield_experience(lineup, ["p1", "p2"])
    assert not result.valid
    assert result.severity is Severity.WARNING
    assert result.affected_players == ("p1",)
    assert result.message == "Some players haven't played any infield positions"


def test_infield_experience_counts_history() -> None:
    lineup = make_lineup([make_inning(n, {Position.LEFT_FIELD: "p1"}) for n in range(1, 4)])
    game = make_game("g0", day=-7)
    lineups = {"g0": single_player_lineup("p1", [Position.THIRD_BASE], game_id="g0")}
    history = {"p1": reconstruct_history("p1", [game], lineups)}

    assert check_infield_experience(lineup, ["p1"], history).valid


def test_pitcher_and_catcher_are_not_infield_experience() -> None:
    lineup = make_lineup(
        [make_inning(n, {Position.PITCHER: "p1", Position.CATCHER: "p2"}) for n in range(1, 4)]
    )
    assert check_infield_experience(lineup, ["p1", "p2"]).affected_players == ("p1", "p2")


def test_validate_lineup_returns_one_result_per_rule_in_order() -> None:
    lineup = make_lineup([make_inning(1, {Position.PITCHER: "p1"})])

    results = validate_lineup(lineup, ["p1"])
    assert [r.rule for r in results] == [
        RULE_POSITIONS_FILLED,
        RULE_DOUBLE_BOOKING,
        RULE_CONSECUTIVE_BENCH,
        RULE_INFIELD_EXPERIENCE,
    ]
    assert all(r.valid for r in results)
    assert not has_errors(results)
    assert validate_lineup(lineup, ["p1"]) == results


def test_validate_lineup_is_idempotent() -> None:
    lineup = _lineup_from_bench(TWELVE, [["p01", "p02", "p03"], ["p01", "p04", "p05"], ["p06", "p07", "p08"]])
    game = make_game("g0", day=-7)
    earlier = {"g0": single_player_lineup("p09", [Position.SHORTSTOP], game_id="g0")}
    history = {"p09": reconstruct_history("p09", [game], earlier)}
    before = copy.deepcopy(lineup)

    first = validate_lineup(lineup, TWELVE, history)
    second = validate_lineup(lineup, TWELVE, history)
    assert first == second
    assert not first[2].valid
    assert lineup == before


def test_has_errors_ignores_warnings() -> None:
    lineup = make_lineup([make_inning(1, {}, bench=["p1"]), make_inning(2, {}, bench=["p1"])])
    results = validate_lineup(lineup, ["p1"])
    assert not results[2].valid
    assert not has_errors(results)

    broken = make_lineup([make_inning(1, {Position.PITCHER: None})])
    assert has_errors(validate_lineup(broken, []))


def test_get_fair_play_issues_messages() -> None:
    players = [make_player("p1"), make_player("p2"), make_player("p3", active=False)]
    lineup = make_lineup(
        [
            make_inning(1, {Position.SHORTSTOP: "p1", Position.LEFT_FIELD: "p2"}),
            make_inning(2, {Position.SHORTSTOP: "p1"}, bench=["p2"]),
            make_inning(3, {Position.SHORTSTOP: "p1"}, bench=["p2"]),
            make_inning(4, {Position.SHORTSTOP: "p1"}, bench=["p2"]),
        ]
    )

    assert get_fair_play_issues(lineup, players) == [
        "Some players are benched for 2+ consecutive innings: Player P2",
        "Some players haven't played any infield positions: Player P2",
        "Player P2 only plays 1 of 4 innings.",
        "Player P1 plays only SS for all 4 innings.",
    ]


def test_get_fair_play_issues_flags_full_time_players_on_large_rosters() -> None:
    players = [make_player(pid) for pid in TWELVE[:11]]
    lineup = _lineup_from_bench(TWELVE[:11], [["p10", "p11"], ["p08", "p09"], ["p10", "p11"]])

    issues = get_fair_play_issues(lineup, players)
    assert "Player P01 plays all 3 innings while other players sit out." in issues


def test_get_fair_play_issues_skips_rotation_checks_for_short_lineups() -> None:
    players = [make_player("p1")]
    lineup = make_lineup([make_inning(1, {Position.SHORTSTOP: "p1"}), make_inning(2, {Position.SHORTSTOP: "p1"})])

    assert get_fair_play_issues(lineup, players) == []


def test_get_fair_play_issues_uses_bare_message_without_players() -> None:
    players = [make_player("p1")]
    lineup = make_lineup([make_inning(1, {Position.PITCHER: "p1", Position.CATCHER: None})])

    assert get_fair_play_issues(lineup, players) == ["Some positions are not filled"]
