import logging

from predictor import db
from predictor.models import Fixture, Result
from predictor.utils.cache_utils import invalidate_leaderboards

logger = logging.getLogger(__name__)


def record_result(round_number, fixture_index, outcome_code=None,
                  home_goals=None, away_goals=None):
    """
    Write a fixture result once and clear cached leaderboards.

    Returns:
        tuple: (result, created)

    Raises:
        LookupError: if the fixture does not exist
        ValueError: if the result cannot be resolved to an outcome
    """
    fixture = Fixture.query.filter_by(
        round_number=round_number, fixture_index=fixture_index
    ).first()
    if fixture is None:
        raise LookupError(f"No fixture {fixture_index} in round {round_number}")

    result, created = Result.record(
        round_number,
        fixture_index,
        outcome_code=outcome_code,
        home_goals=home_goals,
        away_goals=away_goals,
    )
    db.session.commit()

    if created:
        invalidate_leaderboards(f"result round={round_number} fixture={fixture_index}")
    else:
        logger.info(
            f"Ignored duplicate result for round {round_number} fixture {fixture_index}"
        )
    return result, created
