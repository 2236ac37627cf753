import pytest

from predictor.utils.streaks import Streak, longest_top_quartile_streak


def test_longest_run():
    streak = longest_top_quartile_streak([80, 90, 60, 76, 76, 76, 74])
    assert streak == Streak(3, 4, 6)


def test_threshold_is_inclusive():
    assert longest_top_quartile_streak([75, 75]).length == 2


def test_missing_round_breaks_run():
    streak = longest_top_quartile_streak([90, None, 90, 90])
    assert streak.to_dict() == {"length": 2, "start_round": 3, "end_round": 4}


def test_gap_in_round_numbers_breaks_run():
    streak = longest_top_quartile_streak([90, 90, 90], rounds=[1, 2, 5])
    assert streak == Streak(2, 1, 2)


def test_earliest_run_wins_tie():
    assert longest_top_quartile_streak([80, 10, 80]) == Streak(1, 1, 1)


def test_no_qualifying_round():
    assert longest_top_quartile_streak([10, 20]) == Streak()
    assert longest_top_quartile_streak([]).length == 0


def test_custom_threshold():
    assert longest_top_quartile_streak([60, 60], threshold=50).length == 2


def test_mismatched_rounds():
    with pytest.raises(ValueError):
        longest_top_quartile_streak([80, 90], rounds=[1])
