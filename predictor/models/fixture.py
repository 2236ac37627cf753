from datetime import datetime, timezone

from predictor import db
from predictor.utils.timezone_utils import ensure_utc, isoformat_utc


class Fixture(db.Model):
    __tablename__ = "fixtures"

    id = db.Column(db.Integer, primary_key=True)

    # Fixture identification (index is 0..N-1 within a round)
    round_number = db.Column(db.Integer, nullable=False)
    fixture_index = db.Column(db.Integer, nullable=False)

    # Teams
    home_team = db.Column(db.String(10), nullable=False)
    away_team = db.Column(db.String(10), nullable=False)
    home_name = db.Column(db.String(100))
    away_name = db.Column(db.String(100))

    # Kickoff may be unknown until the schedule is confirmed
    kickoff_time = db.Column(db.DateTime, nullable=True)

    # External ID from the fixture feed
    external_id = db.Column(db.String(50), unique=True, index=True)

    created_at = db.Column(db.DateTime, default=lambda: datetime.now(timezone.utc))

    __table_args__ = (
        db.UniqueConstraint(
            "round_number", "fixture_index", name="unique_round_fixture"
        ),
        db.Index("idx_fixture_round", "round_number"),
        db.Index("idx_fixture_kickoff", "kickoff_time"),
    )

    def __repr__(self):
        return f"<Fixture R{self.round_number}#{self.fixture_index} {self.home_team} v {self.away_team}>"

    @property
    def kickoff_utc(self):
        return ensure_utc(self.kickoff_time)

    @property
    def label(self):
        home = self.home_name or self.home_team
        away = self.away_name or self.away_team
        return f"{home} v {away}"

    def to_dict(self):
        return {
            "round": self.round_number,
            "fixture_index": self.fixture_index,
            "home_team": self.home_team,
            "away_team": self.away_team,
            "home_name": self.home_name,
            "away_name": self.away_name,
            "kickoff_time": isoformat_utc(self.kickoff_time),
            "external_id": self.external_id,
        }
