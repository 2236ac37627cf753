"""
Scoring Engine for the Gameweek Predictor

This module scores one user's picks for one round against resolved outcomes.
League tables live in predictor/utils/standings.py and global leaderboards in
predictor/utils/rankings.py.
"""

from predictor.utils.outcomes import Outcome, outcome_from_score

# Live statuses that carry a meaningful scoreline
PROVISIONAL_STATUSES = ("IN_PLAY", "PAUSED", "FINISHED")


class RoundScore:
    """Correct picks and unicorns of one user in one round"""

    def __init__(self, user_id, round_number, correct_count=0, unicorn_count=0,
                 is_provisional=False):
        self.user_id = user_id
        self.round_number = round_number
        self.correct_count = correct_count
        self.unicorn_count = unicorn_count
        self.is_provisional = is_provisional

    def __repr__(self):
        flag = " provisional" if self.is_provisional else ""
        return (
            f"<RoundScore user={self.user_id} round={self.round_number} "
            f"correct={self.correct_count}{flag}>"
        )

    def to_dict(self):
        return {
            "user_id": self.user_id,
            "round": self.round_number,
            "correct": self.correct_count,
            "unicorns": self.unicorn_count,
            "is_provisional": self.is_provisional,
        }


def is_pick_correct(pick, outcome):
    """
    True/False for a decided fixture, None while it is undecided.

    Args:
        pick: the user's Outcome (or code)
        outcome: the resolved Outcome, or None
    """
    if outcome is None:
        return None
    return Outcome.parse(pick) == outcome


def count_correct_picks(picks, outcomes):
    """
    Count fixtures where the pick matches the decided outcome.

    Fixtures without a decided outcome are skipped, so the count never
    exceeds the number of decided fixtures.

    Args:
        picks: {fixture_index: Outcome}
        outcomes: {fixture_index: Outcome or None}
    """
    correct = 0
    for fixture_index, outcome in outcomes.items():
        if outcome is None:
            continue
        if is_pick_correct(picks.get(fixture_index), outcome):
            correct += 1
    return correct


def score_round(user_id, round_number, picks, outcomes, unicorn_count=0):
    """Final RoundScore built only from written results"""
    return RoundScore(
        user_id=user_id,
        round_number=round_number,
        correct_count=count_correct_picks(picks, outcomes),
        unicorn_count=unicorn_count,
        is_provisional=False,
    )


def _field(row, name):
    if isinstance(row, dict):
        return row.get(name)
    return getattr(row, name, None)


def provisional_outcomes(live_scores):
    """
    Outcomes implied by in-play or just-finished live scores.

    Args:
        live_scores: iterable of objects/dicts with fixture_index,
            home_score, away_score and status

    Returns:
        {fixture_index: Outcome}
    """
    outcomes = {}
    for live in live_scores:
        if _field(live, "status") not in PROVISIONAL_STATUSES:
            continue
        fixture_index = _field(live, "fixture_index")
        if fixture_index is None:
            continue
        outcome = outcome_from_score(
            _field(live, "home_score"), _field(live, "away_score")
        )
        if outcome is not None:
            outcomes[fixture_index] = outcome
    return outcomes


def merge_provisional(final_outcomes, live_outcomes):
    """
    Overlay written results on live outcomes.

    Returns (outcomes, used_live) where used_live tells whether any fixture
    relied on a live outcome. A written result always replaces the live one.
    """
    merged = {}
    used_live = False
    for fixture_index, outcome in live_outcomes.items():
        merged[fixture_index] = outcome
    for fixture_index, outcome in final_outcomes.items():
        if outcome is not None:
            merged[fixture_index] = outcome

    for fixture_index in merged:
        if final_outcomes.get(fixture_index) is None:
            used_live = True
            break

    return merged, used_live


def score_round_provisional(user_id, round_number, picks, final_outcomes,
                            live_outcomes, unicorn_count=0):
    """Best-effort score while a round is live, flagged when it used live data"""
    outcomes, used_live = merge_provisional(final_outcomes, live_outcomes)
    return RoundScore(
        user_id=user_id,
        round_number=round_number,
        correct_count=count_correct_picks(picks, outcomes),
        unicorn_count=unicorn_count,
        is_provisional=used_live,
    )
