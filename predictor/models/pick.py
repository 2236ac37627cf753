from datetime import datetime, timezone

from sqlalchemy.exc import IntegrityError

from predictor import db
from predictor.utils.outcomes import Outcome


class Pick(db.Model):
    __tablename__ = "picks"

    id = db.Column(db.Integer, primary_key=True)

    # Pick identification
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False)
    round_number = db.Column(db.Integer, nullable=False)
    fixture_index = db.Column(db.Integer, nullable=False)

    # "H", "D" or "A"
    choice = db.Column(db.String(1), nullable=False)

    # Timestamps
    created_at = db.Column(db.DateTime, default=lambda: datetime.now(timezone.utc))
    updated_at = db.Column(
        db.DateTime,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    # Constraints and indexes
    __table_args__ = (
        db.UniqueConstraint(
            "user_id", "round_number", "fixture_index", name="unique_user_round_pick"
        ),
        db.Index("idx_pick_user_round", "user_id", "round_number"),
        db.Index("idx_pick_round", "round_number"),
    )

    def __repr__(self):
        return f"<Pick user_id={self.user_id} R{self.round_number}#{self.fixture_index}={self.choice}>"

    @property
    def outcome(self):
        return Outcome.parse(self.choice)

    @classmethod
    def upsert(cls, user_id, round_number, fixture_index, outcome):
        """
        Insert or overwrite a pick keyed by (user, round, fixture index).

        The insert runs inside a SAVEPOINT so a concurrent insert of the same
        key turns into an update instead of failing the whole transaction.
        Callers check that the round is still open and not yet submitted.
        """
        choice = Outcome(outcome).value
        key = dict(user_id=user_id, round_number=round_number, fixture_index=fixture_index)

        pick = cls.query.filter_by(**key).first()
        if pick:
            pick.choice = choice
            return pick

        try:
            with db.session.begin_nested():
                pick = cls(choice=choice, **key)
                db.session.add(pick)
        except IntegrityError:
            pick = cls.query.filter_by(**key).one()
            pick.choice = choice
        return pick

    @classmethod
    def prune_stale(cls, user_id, round_number, fixture_indices):
        """Delete a user's picks for fixtures no longer in the round, returns the count"""
        return (
            cls.query.filter_by(user_id=user_id, round_number=round_number)
            .filter(cls.fixture_index.notin_(list(fixture_indices)))
            .delete(synchronize_session=False)
        )

    @classmethod
    def for_user_round(cls, user_id, round_number):
        """{fixture_index: Outcome} of a user's picks in a round"""
        picks = cls.query.filter_by(user_id=user_id, round_number=round_number).all()
        return {p.fixture_index: p.outcome for p in picks}

    def to_dict(self):
        return {
            "user_id": self.user_id,
            "round": self.round_number,
            "fixture_index": self.fixture_index,
            "pick": self.choice,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }
