from predictor.utils.outcomes import Outcome
from predictor.utils.scoring import (
    count_correct_picks,
    is_pick_correct,
    merge_provisional,
    provisional_outcomes,
    score_round,
    score_round_provisional,
)
from predictor.utils.unicorns import count_unicorns, unicorn_fixtures, unicorn_winner

H, D, A = Outcome.HOME, Outcome.DRAW, Outcome.AWAY


class TestScoring:
    def test_undecided_fixture_is_skipped(self):
        picks = {0: H, 1: D, 2: A}
        outcomes = {0: H, 1: None, 2: H}
        assert count_correct_picks(picks, outcomes) == 1

    def test_is_pick_correct(self):
        assert is_pick_correct(H, H) is True
        assert is_pick_correct("A", H) is False
        assert is_pick_correct(H, None) is None

    def test_missing_pick_is_incorrect(self):
        assert count_correct_picks({0: H}, {0: H, 1: D}) == 1

    def test_score_round(self):
        score = score_round(7, 2, {0: H, 1: D}, {0: H, 1: D}, unicorn_count=1)
        assert score.to_dict() == {
            "user_id": 7,
            "round": 2,
            "correct": 2,
            "unicorns": 1,
            "is_provisional": False,
        }


class TestProvisional:
    def test_only_in_play_statuses_count(self):
        live = [
            {"fixture_index": 0, "home_score": 1, "away_score": 0, "status": "IN_PLAY"},
            {"fixture_index": 1, "home_score": 0, "away_score": 0, "status": "PAUSED"},
            {"fixture_index": 2, "home_score": 0, "away_score": 2, "status": "FINISHED"},
            {"fixture_index": 3, "home_score": 0, "away_score": 0, "status": "SCHEDULED"},
        ]
        assert provisional_outcomes(live) == {0: H, 1: D, 2: A}

    def test_final_result_overrides_live(self):
        merged, used_live = merge_provisional({0: A, 1: None}, {0: H, 1: D})
        assert merged == {0: A, 1: D}
        assert used_live is True

    def test_all_final_is_not_provisional(self):
        merged, used_live = merge_provisional({0: A, 1: H}, {0: H})
        assert merged == {0: A, 1: H}
        assert used_live is False

    def test_score_round_provisional(self):
        score = score_round_provisional(1, 4, {0: H, 1: D}, {0: H, 1: None}, {1: D})
        assert score.correct_count == 2
        assert score.is_provisional is True


class TestUnicorns:
    def test_sole_correct_pick_in_group(self):
        picks = {1: H, 2: A, 3: A}
        assert unicorn_winner(picks, H, group_size=3) == 1

    def test_two_correct_is_no_unicorn(self):
        picks = {1: H, 2: H, 3: A}
        assert unicorn_winner(picks, H, group_size=3) is None

    def test_small_group_never_awards(self):
        picks = {1: H, 2: A}
        assert unicorn_winner(picks, H, group_size=2) is None

    def test_undecided_fixture_never_awards(self):
        assert unicorn_winner({1: H, 2: A, 3: A}, None, group_size=3) is None

    def test_group_size_is_membership_not_pickers(self):
        # Two pickers in a five-member league still form a valid group
        picks_by_user = {1: {0: H}, 2: {0: A}}
        assert unicorn_fixtures(picks_by_user, {0: H}, group_size=5) == {0: 1}
        assert unicorn_fixtures(picks_by_user, {0: H}, group_size=2) == {}

    def test_count_unicorns(self):
        picks_by_user = {
            1: {0: H, 1: D, 2: A},
            2: {0: A, 1: H, 2: A},
            3: {0: A, 1: H, 2: H},
        }
        outcomes = {0: H, 1: D, 2: H, 3: None}
        assert count_unicorns(picks_by_user, outcomes, group_size=3) == {1: 2, 3: 1}
