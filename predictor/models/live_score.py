from datetime import datetime, timezone

from predictor import db
from predictor.utils.scoring import PROVISIONAL_STATUSES

LIVE_STATUSES = ("SCHEDULED", "TIMED", "IN_PLAY", "PAUSED", "FINISHED")


class LiveScore(db.Model):
    """In-play state of a fixture, written by the external live feed"""

    __tablename__ = "live_scores"

    id = db.Column(db.Integer, primary_key=True)
    round_number = db.Column(db.Integer, nullable=False)
    fixture_index = db.Column(db.Integer, nullable=False)

    home_score = db.Column(db.Integer, default=0)
    away_score = db.Column(db.Integer, default=0)
    status = db.Column(db.String(20), nullable=False, default="SCHEDULED")
    minute = db.Column(db.Integer)

    updated_at = db.Column(
        db.DateTime,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    __table_args__ = (
        db.UniqueConstraint(
            "round_number", "fixture_index", name="unique_round_fixture_live"
        ),
        db.CheckConstraint(
            "status IN ('SCHEDULED', 'TIMED', 'IN_PLAY', 'PAUSED', 'FINISHED')",
            name="valid_live_status",
        ),
    )

    def __repr__(self):
        return f"<LiveScore R{self.round_number}#{self.fixture_index} {self.home_score}-{self.away_score} {self.status}>"

    def to_dict(self):
        return {
            "round": self.round_number,
            "fixture_index": self.fixture_index,
            "home_score": self.home_score,
            "away_score": self.away_score,
            "status": self.status,
            "minute": self.minute,
            "provisional": self.status in PROVISIONAL_STATUSES,
        }
