from datetime import datetime, timezone

from sqlalchemy.exc import IntegrityError

from predictor import db
from predictor.utils.timezone_utils import isoformat_utc


class Submission(db.Model):
    """A user's locked-in pick set for a round"""

    __tablename__ = "submissions"

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False)
    round_number = db.Column(db.Integer, nullable=False)
    submitted_at = db.Column(db.DateTime, default=lambda: datetime.now(timezone.utc))

    __table_args__ = (
        db.UniqueConstraint("user_id", "round_number", name="unique_user_round_submission"),
        db.Index("idx_submission_round", "round_number"),
    )

    def __repr__(self):
        return f"<Submission user_id={self.user_id} round={self.round_number}>"

    @classmethod
    def upsert(cls, user_id, round_number):
        """
        Create the submission for (user, round) if missing.

        Returns:
            tuple: (submission, created)
        """
        existing = cls.query.filter_by(user_id=user_id, round_number=round_number).first()
        if existing:
            return existing, False

        submission = cls(user_id=user_id, round_number=round_number)
        try:
            with db.session.begin_nested():
                db.session.add(submission)
        except IntegrityError:
            existing = cls.query.filter_by(
                user_id=user_id, round_number=round_number
            ).one()
            return existing, False
        return submission, True

    def to_dict(self):
        return {
            "user_id": self.user_id,
            "round": self.round_number,
            "submitted_at": isoformat_utc(self.submitted_at),
        }
