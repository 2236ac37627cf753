from predictor.utils.gameweek_state import GameweekState
from predictor.utils.submissions import picks_match_fixtures, validate_submission

TEN = range(10)


def test_nine_of_ten_picks_is_invalid():
    assert not picks_match_fixtures(range(9), TEN)
    is_valid, message = validate_submission(range(9), TEN, GameweekState.OPEN)
    assert not is_valid
    assert message == "Missing picks for fixtures [9]"


def test_exact_cover_is_valid():
    assert picks_match_fixtures(TEN, TEN)
    assert validate_submission(TEN, TEN, GameweekState.PREDICTED) == (True, "Valid submission")


def test_extra_picks_are_invalid():
    is_valid, message = validate_submission(range(11), TEN, GameweekState.OPEN)
    assert not is_valid
    assert message == "Picks for unknown fixtures [10]"


def test_empty_round_never_matches():
    assert not picks_match_fixtures([], [])
    assert validate_submission([], [], GameweekState.OPEN) == (False, "Round has no fixtures")


def test_closed_states_reject():
    for state in (GameweekState.DEADLINE_PASSED, GameweekState.LIVE, GameweekState.RESULTS_FINAL):
        is_valid, message = validate_submission(TEN, TEN, state)
        assert not is_valid
        assert state.value in message


def test_state_value_string_accepted():
    assert validate_submission(TEN, TEN, "OPEN")[0]
