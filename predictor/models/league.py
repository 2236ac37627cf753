from datetime import datetime, timezone

from predictor import db
from predictor.utils.timezone_utils import isoformat_utc


class League(db.Model):
    __tablename__ = "leagues"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(100), nullable=False)

    # Explicit first counting round; derived from created_at when empty
    start_round = db.Column(db.Integer, nullable=True)

    created_at = db.Column(db.DateTime, default=lambda: datetime.now(timezone.utc))

    # Relationships
    members = db.relationship(
        "LeagueMember", backref="league", lazy="dynamic", cascade="all, delete-orphan"
    )

    __table_args__ = (db.Index("idx_league_created_at", "created_at"),)

    def __repr__(self):
        return f"<League {self.name}>"

    def get_member_count(self):
        return self.members.count()

    def is_member(self, user_id):
        return self.members.filter_by(user_id=user_id).first() is not None

    def add_member(self, user):
        """Add a user to the league, no-op if already a member"""
        from .league_member import LeagueMember

        if self.is_member(user.id):
            return None
        membership = LeagueMember(league=self, user=user)
        db.session.add(membership)
        return membership

    def to_dict(self, include_members=False):
        data = {
            "id": self.id,
            "name": self.name,
            "start_round": self.start_round,
            "created_at": isoformat_utc(self.created_at),
            "member_count": self.get_member_count(),
        }
        if include_members:
            data["members"] = [m.to_dict() for m in self.members]
        return data
