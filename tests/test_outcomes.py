import pytest

from predictor.utils.outcomes import Outcome, outcome_from_score, resolve_outcome


@pytest.mark.parametrize(
    "home, away, expected",
    [(2, 1, Outcome.HOME), (0, 3, Outcome.AWAY), (1, 1, Outcome.DRAW), (0, 0, Outcome.DRAW)],
)
def test_outcome_from_score(home, away, expected):
    assert outcome_from_score(home, away) is expected


def test_outcome_from_score_needs_both_sides():
    assert outcome_from_score(None, 2) is None
    assert outcome_from_score(1, None) is None


def test_explicit_code_beats_goals():
    # 3-0 would be a home win, the written code says away
    assert resolve_outcome("A", 3, 0) is Outcome.AWAY


def test_goals_used_without_code():
    assert resolve_outcome(None, 0, 2) is Outcome.AWAY


def test_unresolvable_result_is_undecided():
    assert resolve_outcome() is None
    assert resolve_outcome("X") is None
    assert resolve_outcome(None, 1, None) is None


def test_parse():
    assert Outcome.parse("h") is Outcome.HOME
    assert Outcome.parse(" d ") is Outcome.DRAW
    assert Outcome.parse(Outcome.AWAY) is Outcome.AWAY
    assert Outcome.parse("1") is None
    assert Outcome.parse(None) is None
