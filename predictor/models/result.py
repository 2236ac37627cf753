import logging
from datetime import datetime, timezone

from sqlalchemy.exc import IntegrityError

from predictor import db
from predictor.utils.outcomes import Outcome, resolve_outcome

logger = logging.getLogger(__name__)


class Result(db.Model):
    """Final result of a fixture, written once by the results feed"""

    __tablename__ = "results"

    id = db.Column(db.Integer, primary_key=True)
    round_number = db.Column(db.Integer, nullable=False)
    fixture_index = db.Column(db.Integer, nullable=False)

    # Either an explicit code ("H", "D", "A") or a goal pair, or both
    outcome_code = db.Column(db.String(1))
    home_goals = db.Column(db.Integer)
    away_goals = db.Column(db.Integer)

    recorded_at = db.Column(db.DateTime, default=lambda: datetime.now(timezone.utc))

    __table_args__ = (
        db.UniqueConstraint(
            "round_number", "fixture_index", name="unique_round_fixture_result"
        ),
        db.Index("idx_result_round", "round_number"),
    )

    def __repr__(self):
        return f"<Result R{self.round_number}#{self.fixture_index} {self.outcome_code or '?'}>"

    @property
    def outcome(self):
        """Resolved Outcome, or None if the result is not decided"""
        return resolve_outcome(self.outcome_code, self.home_goals, self.away_goals)

    @classmethod
    def record(cls, round_number, fixture_index, outcome_code=None,
               home_goals=None, away_goals=None):
        """
        Write a result once.

        Recording a result that already exists leaves the stored row untouched.

        Returns:
            tuple: (result, created)

        Raises:
            ValueError: if neither a valid outcome code nor both goals are given
        """
        if resolve_outcome(outcome_code, home_goals, away_goals) is None:
            raise ValueError("A result needs an outcome code (H/D/A) or both goals")

        existing = cls.query.filter_by(
            round_number=round_number, fixture_index=fixture_index
        ).first()
        if existing:
            logger.debug(f"Result for R{round_number}#{fixture_index} already recorded")
            return existing, False

        code = Outcome.parse(outcome_code)
        result = cls(
            round_number=round_number,
            fixture_index=fixture_index,
            outcome_code=code.value if code else None,
            home_goals=home_goals,
            away_goals=away_goals,
        )
        try:
            with db.session.begin_nested():
                db.session.add(result)
        except IntegrityError:
            # Another writer recorded it first
            existing = cls.query.filter_by(
                round_number=round_number, fixture_index=fixture_index
            ).one()
            return existing, False

        logger.info(f"Recorded result R{round_number}#{fixture_index}: {result.outcome.value}")
        return result, True

    def to_dict(self):
        outcome = self.outcome
        return {
            "round": self.round_number,
            "fixture_index": self.fixture_index,
            "outcome": outcome.value if outcome else None,
            "home_goals": self.home_goals,
            "away_goals": self.away_goals,
            "recorded_at": self.recorded_at.isoformat() if self.recorded_at else None,
        }
