"""
Gameweek lifecycle resolution

A round moves through a closed set of states relative to its prediction
deadline (a fixed buffer before the first kickoff) and the arrival of
results. The state is computed here and nowhere else; callers get it from a
RoundTimeline built once per round.
"""

from datetime import timedelta
from enum import Enum

from predictor.utils.timezone_utils import ensure_utc

DEADLINE_BUFFER_MINUTES = 75


class GameweekState(str, Enum):
    UNDEFINED = "UNDEFINED"
    OPEN = "OPEN"
    PREDICTED = "PREDICTED"
    DEADLINE_PASSED = "DEADLINE_PASSED"
    LIVE = "LIVE"
    RESULTS_FINAL = "RESULTS_FINAL"

    @property
    def accepts_submissions(self):
        return self in (GameweekState.OPEN, GameweekState.PREDICTED)

    @property
    def is_pre_deadline(self):
        return self.accepts_submissions


def first_kickoff(kickoff_times):
    """Earliest known kickoff (UTC), ignoring fixtures without one"""
    known = [ensure_utc(k) for k in kickoff_times if k is not None]
    return min(known) if known else None


def round_deadline(kickoff_times, buffer_minutes=DEADLINE_BUFFER_MINUTES):
    """Prediction deadline for a round, or None if no kickoff is known yet"""
    kickoff = first_kickoff(kickoff_times)
    if kickoff is None:
        return None
    return kickoff - timedelta(minutes=buffer_minutes)


def resolve_gameweek_state(
    kickoff_times,
    now,
    is_decided,
    picks_complete=False,
    buffer_minutes=DEADLINE_BUFFER_MINUTES,
):
    """
    Resolve the lifecycle state of a round.

    Args:
        kickoff_times: kickoff datetimes for the round's fixtures (None allowed)
        now: current time
        is_decided: True when every fixture in the round has a result
        picks_complete: True when the viewing user's picks cover every fixture
        buffer_minutes: minutes before the first kickoff at which picks lock

    Returns:
        GameweekState
    """
    kickoff_times = list(kickoff_times)
    if not kickoff_times:
        return GameweekState.UNDEFINED

    if is_decided:
        return GameweekState.RESULTS_FINAL

    now = ensure_utc(now)
    kickoff = first_kickoff(kickoff_times)

    if kickoff is not None:
        if now >= kickoff:
            return GameweekState.LIVE
        if now >= kickoff - timedelta(minutes=buffer_minutes):
            return GameweekState.DEADLINE_PASSED

    if picks_complete:
        return GameweekState.PREDICTED
    return GameweekState.OPEN


class RoundTimeline:
    """
    Lifecycle facts for one round, resolved once and shared by every consumer.

    The round-level state is user-agnostic; `state_for(picks_complete)` only
    splits the pre-deadline state into OPEN/PREDICTED.
    """

    def __init__(self, round_number, kickoff_times, now, is_decided,
                 buffer_minutes=DEADLINE_BUFFER_MINUTES):
        self.round_number = round_number
        self.kickoff_times = list(kickoff_times)
        self.now = ensure_utc(now)
        self.is_decided = is_decided
        self.buffer_minutes = buffer_minutes
        self.first_kickoff = first_kickoff(self.kickoff_times)
        self.deadline = round_deadline(self.kickoff_times, buffer_minutes)
        self.state = resolve_gameweek_state(
            self.kickoff_times, self.now, is_decided, False, buffer_minutes
        )

    def __repr__(self):
        return f"<RoundTimeline round={self.round_number} state={self.state.value}>"

    def state_for(self, picks_complete):
        if self.state is GameweekState.OPEN and picks_complete:
            return GameweekState.PREDICTED
        return self.state

    def to_dict(self, picks_complete=None):
        state = self.state if picks_complete is None else self.state_for(picks_complete)
        return {
            "round": self.round_number,
            "state": state.value,
            "deadline": self.deadline.isoformat() if self.deadline else None,
            "first_kickoff": (
                self.first_kickoff.isoformat() if self.first_kickoff else None
            ),
            "is_decided": self.is_decided,
            "accepts_submissions": state.accepts_submissions,
        }
