from datetime import datetime, timedelta, timezone

from predictor.utils.gameweek_state import (
    GameweekState,
    RoundTimeline,
    first_kickoff,
    resolve_gameweek_state,
    round_deadline,
)

KICKOFF = datetime(2024, 9, 14, 15, 0, tzinfo=timezone.utc)
KICKOFFS = [KICKOFF + timedelta(hours=2), KICKOFF, None]


def test_deadline_is_75_minutes_before_first_kickoff():
    assert first_kickoff(KICKOFFS) == KICKOFF
    assert round_deadline(KICKOFFS) == datetime(2024, 9, 14, 13, 45, tzinfo=timezone.utc)


def test_no_known_kickoff_has_no_deadline():
    assert round_deadline([None, None]) is None


def test_naive_kickoffs_are_utc():
    naive = datetime(2024, 9, 14, 15, 0)
    assert first_kickoff([naive]) == KICKOFF


def test_no_fixtures_is_undefined():
    assert resolve_gameweek_state([], KICKOFF, False) is GameweekState.UNDEFINED


def test_open_and_predicted_before_deadline():
    now = KICKOFF - timedelta(hours=3)
    assert resolve_gameweek_state(KICKOFFS, now, False) is GameweekState.OPEN
    assert (
        resolve_gameweek_state(KICKOFFS, now, False, picks_complete=True)
        is GameweekState.PREDICTED
    )


def test_deadline_passed_inside_buffer():
    now = KICKOFF - timedelta(minutes=75)
    assert resolve_gameweek_state(KICKOFFS, now, False, True) is GameweekState.DEADLINE_PASSED

    now = KICKOFF - timedelta(minutes=1)
    assert resolve_gameweek_state(KICKOFFS, now, False) is GameweekState.DEADLINE_PASSED


def test_live_from_first_kickoff():
    assert resolve_gameweek_state(KICKOFFS, KICKOFF, False) is GameweekState.LIVE


def test_results_final_when_decided():
    # A decided round is final whatever the clock says
    now = KICKOFF - timedelta(days=1)
    assert resolve_gameweek_state(KICKOFFS, now, True) is GameweekState.RESULTS_FINAL


def test_unknown_kickoffs_stay_open():
    now = KICKOFF + timedelta(days=30)
    assert resolve_gameweek_state([None], now, False) is GameweekState.OPEN


def test_custom_buffer():
    now = KICKOFF - timedelta(minutes=30)
    assert (
        resolve_gameweek_state(KICKOFFS, now, False, buffer_minutes=15)
        is GameweekState.OPEN
    )


def test_accepts_submissions():
    assert GameweekState.OPEN.accepts_submissions
    assert GameweekState.PREDICTED.accepts_submissions
    for state in (
        GameweekState.UNDEFINED,
        GameweekState.DEADLINE_PASSED,
        GameweekState.LIVE,
        GameweekState.RESULTS_FINAL,
    ):
        assert not state.accepts_submissions


class TestRoundTimeline:
    def test_state_for_user(self):
        timeline = RoundTimeline(3, KICKOFFS, KICKOFF - timedelta(hours=3), False)
        assert timeline.state is GameweekState.OPEN
        assert timeline.state_for(True) is GameweekState.PREDICTED
        assert timeline.state_for(False) is GameweekState.OPEN

    def test_state_for_after_deadline_ignores_picks(self):
        timeline = RoundTimeline(3, KICKOFFS, KICKOFF, False)
        assert timeline.state_for(True) is GameweekState.LIVE

    def test_to_dict(self):
        timeline = RoundTimeline(3, KICKOFFS, KICKOFF - timedelta(hours=3), False)
        data = timeline.to_dict(picks_complete=True)
        assert data["round"] == 3
        assert data["state"] == "PREDICTED"
        assert data["accepts_submissions"] is True
        assert data["deadline"] == "2024-09-14T13:45:00+00:00"
        assert data["first_kickoff"] == "2024-09-14T15:00:00+00:00"
