"""
Pick and submission write path

Picks are upserted until the user submits. A submission is only written when
the pick set covers the round exactly and the round still accepts entries.
Submissions that stop matching the round's fixtures are revoked and the user
has to submit again.
"""

import logging

from flask import current_app

from predictor import db
from predictor.models import Fixture, Pick, Submission
from predictor.services.snapshot import load_snapshot
from predictor.signals import submission_revoked
from predictor.utils.cache_utils import invalidate_leaderboards
from predictor.utils.outcomes import Outcome
from predictor.utils.performance import timer
from predictor.utils.submissions import picks_match_fixtures, validate_submission

logger = logging.getLogger(__name__)

NOT_SUBMITTED = "not_submitted"
SUBMITTED = "submitted"
RESUBMISSION_REQUIRED = "resubmission_required"


class SubmissionError(Exception):
    """Rejected pick or submission write"""

    status_code = 400

    def __init__(self, message):
        super().__init__(message)
        self.message = message


class RoundNotFound(SubmissionError):
    status_code = 404


class SubmissionClosed(SubmissionError):
    """The round no longer accepts writes, or the picks are already submitted"""

    status_code = 409


def _round_fixture_indices(round_number):
    return {
        f.fixture_index
        for f in Fixture.query.filter_by(round_number=round_number).all()
    }


def _prune_stale_picks(user_id, round_number):
    """Drop picks for fixtures removed from the round so the user can resubmit"""
    fixture_indices = _round_fixture_indices(round_number)
    if not fixture_indices:
        return 0

    pruned = Pick.prune_stale(user_id, round_number, fixture_indices)
    if pruned:
        db.session.commit()
        logger.info(
            f"Dropped {pruned} stale picks of user {user_id} for round {round_number}"
        )
    return pruned


def _parse_picks(raw_picks, fixture_indices):
    parsed = {}
    for raw_index, raw_outcome in raw_picks.items():
        try:
            fixture_index = int(raw_index)
        except (TypeError, ValueError):
            raise SubmissionError(f"Invalid fixture index {raw_index!r}") from None
        if fixture_index not in fixture_indices:
            raise SubmissionError(f"Fixture {fixture_index} is not part of this round")
        outcome = Outcome.parse(raw_outcome)
        if outcome is None:
            raise SubmissionError(
                f"Invalid pick {raw_outcome!r} for fixture {fixture_index}, expected H, D or A"
            )
        parsed[fixture_index] = outcome
    return parsed


def save_picks(user_id, round_number, raw_picks, now=None):
    """
    Upsert one or many picks for a round.

    Args:
        raw_picks: {fixture_index: "H" | "D" | "A"}
        now: reference time, defaults to current UTC

    Returns:
        {fixture_index: Outcome} of the user's picks after the write
    """
    if not raw_picks:
        raise SubmissionError("No picks provided")

    # A stale submission must not keep the picks frozen
    revalidate_submission(user_id, round_number)
    _prune_stale_picks(user_id, round_number)

    snapshot = load_snapshot(now)
    fixture_indices = snapshot.fixture_indices(round_number)
    if not fixture_indices:
        raise RoundNotFound(f"Round {round_number} has no fixtures")

    if snapshot.has_submission(user_id, round_number):
        raise SubmissionClosed("Picks are locked after submission")

    timeline = snapshot.timeline(round_number)
    if not timeline.state.accepts_submissions:
        raise SubmissionClosed(
            f"Picks are closed for round {round_number} ({timeline.state.value})"
        )

    picks = _parse_picks(raw_picks, fixture_indices)
    for fixture_index, outcome in picks.items():
        Pick.upsert(user_id, round_number, fixture_index, outcome)
    db.session.commit()

    logger.info(f"User {user_id} saved {len(picks)} picks for round {round_number}")
    return Pick.for_user_round(user_id, round_number)


def submit(user_id, round_number, now=None):
    """
    Submit a user's picks for a round.

    Submitting twice is absorbed by the upsert.

    Returns:
        tuple: (submission, created)
    """
    revalidate_submission(user_id, round_number)
    _prune_stale_picks(user_id, round_number)

    snapshot = load_snapshot(now)
    fixture_indices = snapshot.fixture_indices(round_number)
    if not fixture_indices:
        raise RoundNotFound(f"Round {round_number} has no fixtures")

    timeline = snapshot.timeline(round_number)
    state = timeline.state_for(snapshot.picks_complete(user_id, round_number))
    pick_indices = snapshot.user_picks(user_id, round_number).keys()

    is_valid, message = validate_submission(pick_indices, fixture_indices, state)
    if not is_valid:
        if not state.accepts_submissions:
            raise SubmissionClosed(message)
        raise SubmissionError(message)

    submission, created = Submission.upsert(user_id, round_number)
    db.session.commit()

    if created:
        invalidate_leaderboards(f"submission user={user_id} round={round_number}")
        logger.info(f"User {user_id} submitted round {round_number}")
    else:
        logger.debug(f"Duplicate submission for user {user_id} round {round_number}")
    return submission, created


def revalidate_submission(user_id, round_number):
    """
    Check a stored submission against the round's current fixtures.

    A submission whose picks no longer cover the round exactly is deleted.

    Returns:
        str: NOT_SUBMITTED, SUBMITTED or RESUBMISSION_REQUIRED
    """
    submission = Submission.query.filter_by(
        user_id=user_id, round_number=round_number
    ).first()
    if submission is None:
        return NOT_SUBMITTED

    fixture_indices = _round_fixture_indices(round_number)
    pick_indices = Pick.for_user_round(user_id, round_number).keys()
    if picks_match_fixtures(pick_indices, fixture_indices):
        return SUBMITTED

    db.session.delete(submission)
    if fixture_indices:
        Pick.prune_stale(user_id, round_number, fixture_indices)
    db.session.commit()
    invalidate_leaderboards(f"revoked submission user={user_id} round={round_number}")
    submission_revoked.send(
        current_app._get_current_object(), user_id=user_id, round_number=round_number
    )

    logger.warning(
        f"Revoked submission of user {user_id} for round {round_number}: "
        f"picks no longer match fixtures"
    )
    return RESUBMISSION_REQUIRED


def heal_round(round_number):
    """
    Revoke every inconsistent submission of a round.

    Returns:
        list of user ids whose submissions were revoked
    """
    snapshot = load_snapshot()
    revoked = []
    for user_id in snapshot.invalid_submissions(round_number):
        if revalidate_submission(user_id, round_number) == RESUBMISSION_REQUIRED:
            revoked.append(user_id)

    if revoked:
        logger.warning(f"Round {round_number}: revoked {len(revoked)} submissions")
    return revoked


@timer
def heal_all_rounds():
    """Run heal_round over every round with submissions, {round: [user ids]}"""
    rounds = [
        row[0]
        for row in db.session.query(Submission.round_number).distinct().all()
    ]
    healed = {}
    for round_number in sorted(rounds):
        revoked = heal_round(round_number)
        if revoked:
            healed[round_number] = revoked
    return healed


def league_all_submitted(snapshot, league_id, round_number):
    """True when every member of a league holds a valid submission for the round"""
    members = snapshot.league_members(league_id)
    if not members:
        return False
    return all(
        snapshot.has_valid_submission(user_id, round_number) for user_id in members
    )


def submission_status(snapshot, user_id, round_number):
    """Submission state of a user as seen in a snapshot"""
    if snapshot.has_valid_submission(user_id, round_number):
        return SUBMITTED
    if snapshot.has_submission(user_id, round_number):
        return RESUBMISSION_REQUIRED
    return NOT_SUBMITTED
