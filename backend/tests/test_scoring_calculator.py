"""Fantasy points: rule table, multipliers, rounding and roster totals."""

from __future__ import annotations

import pytest

from ingestion.schema import PlayerMatchStats
from scoring.calculator import (
    Designation,
    apply_multiplier,
    compute_player_points,
    compute_roster_points,
    describe_breakdown,
    points_breakdown,
    raw_points,
    round_half_up,
)
from scoring.rules import DEFAULT_SCORING, ScoringRules


def _stats(**kwargs) -> PlayerMatchStats:
    return PlayerMatchStats(player_id=kwargs.pop("player_id", "p1"), match_id="m1", **kwargs)


def test_half_century_captain_example():
    """52 runs with 4 fours and 2 sixes is 70 raw, 140 as captain."""
    stats = _stats(runs=52, balls_faced=38, fours=4, sixes=2)
    assert raw_points(stats) == 70
    assert compute_player_points(stats, designation=Designation.CAPTAIN) == 140
    assert compute_player_points(stats, designation=Designation.VICE_CAPTAIN) == 105
    assert compute_player_points(stats) == 70


def test_player_without_figures_scores_zero():
    assert compute_player_points(_stats()) == 0
    assert points_breakdown(_stats()) == []


def test_duck_only_when_faced_a_ball():
    assert compute_player_points(_stats(runs=0, balls_faced=3)) == -5
    assert compute_player_points(_stats(runs=0, balls_faced=0)) == 0


def test_century_replaces_half_century_bonus():
    stats = _stats(runs=100, balls_faced=60)
    labels = [i.label for i in points_breakdown(stats)]
    assert "century" in labels
    assert "half_century" not in labels
    assert raw_points(stats) == 125


def test_bowling_hauls_are_exclusive():
    three = _stats(overs=4, runs_conceded=30, wickets=3)
    five = _stats(overs=4, runs_conceded=30, wickets=5)
    assert raw_points(three) == 3 * 25 + 10
    assert raw_points(five) == 5 * 25 + 25


def test_fielding_points():
    stats = _stats(catches=2, stumpings=1, run_outs_direct=1, run_outs_assisted=1)
    assert raw_points(stats) == 20 + 15 + 15 + 10


def test_default_bumrah_figures():
    stats = _stats(overs=4, maidens=1, runs_conceded=22, wickets=3)
    assert raw_points(stats) == 75 + 10 + 10


@pytest.mark.parametrize(
    "raw, designation, expected",
    [
        (7, Designation.VICE_CAPTAIN, 11),  # 10.5 rounds up
        (5, Designation.VICE_CAPTAIN, 8),  # 7.5 rounds up
        (-5, Designation.VICE_CAPTAIN, -7),  # -7.5 rounds toward +inf
        (-5, Designation.CAPTAIN, -10),
        (0, Designation.CAPTAIN, 0),
    ],
)
def test_multiply_then_round_half_up(raw, designation, expected):
    assert apply_multiplier(raw, designation) == expected


def test_round_half_up():
    assert round_half_up(2.5) == 3
    assert round_half_up(3.5) == 4
    assert round_half_up(-2.5) == -2


def test_rate_modifiers_are_off_by_default():
    fast = _stats(runs=40, balls_faced=20)
    assert "strike_rate_bonus" not in [i.label for i in points_breakdown(fast, DEFAULT_SCORING)]
    rules = ScoringRules.with_rate_modifiers()
    assert "strike_rate_bonus" in [i.label for i in points_breakdown(fast, rules)]


def test_rate_modifiers_need_minimum_sample():
    rules = ScoringRules.with_rate_modifiers()
    short = _stats(runs=20, balls_faced=8)
    assert not any(i.label.startswith("strike_rate") for i in points_breakdown(short, rules))
    tidy = _stats(overs=1, runs_conceded=2)
    assert not any(i.label.startswith("economy") for i in points_breakdown(tidy, rules))
    economical = _stats(overs=4, runs_conceded=16)
    assert "economy_bonus" in [i.label for i in points_breakdown(economical, rules)]


def test_breakdown_sums_to_raw_total():
    stats = _stats(runs=67, balls_faced=45, fours=6, sixes=4, catches=1)
    items = points_breakdown(stats)
    assert sum(i.points for i in items) == raw_points(stats)


def test_describe_breakdown():
    lines = describe_breakdown(points_breakdown(_stats(runs=52, balls_faced=40)))
    assert lines == ["52 runs → +52", "Half-century → +10"]
    assert describe_breakdown(points_breakdown(_stats(runs=0, balls_faced=1))) == ["Duck → -5"]


def test_roster_total_is_sum_of_players():
    stats = {
        "a": _stats(player_id="a", runs=52, balls_faced=38, fours=4, sixes=2),
        "b": _stats(player_id="b", overs=4, runs_conceded=22, wickets=3, maidens=1),
        "c": _stats(player_id="c", catches=1),
    }
    roster = compute_roster_points(["a", "b", "c", "d"], "a", "b", stats)
    by_id = {p.player_id: p for p in roster.per_player}
    assert by_id["a"].points == 140
    assert by_id["b"].points == round_half_up(95 * 1.5)
    assert by_id["c"].points == 10
    assert by_id["d"].points == 0
    assert roster.total == sum(p.points for p in roster.per_player)


def test_roster_points_are_recomputed_not_accumulated():
    stats = {"a": _stats(player_id="a", runs=10, balls_faced=10)}
    first = compute_roster_points(["a", "b"], "a", "b", stats)
    second = compute_roster_points(["a", "b"], "a", "b", stats)
    assert first.total == second.total == 20


def test_contest_rules_override_points_table():
    rules = ScoringRules.model_validate({"batting": {"run": 2}})
    assert raw_points(_stats(runs=10, balls_faced=8), rules) == 20
