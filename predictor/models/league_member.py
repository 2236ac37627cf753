from datetime import datetime, timezone

from predictor import db


class LeagueMember(db.Model):
    __tablename__ = "league_members"

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False)
    league_id = db.Column(db.Integer, db.ForeignKey("leagues.id"), nullable=False)

    joined_at = db.Column(db.DateTime, default=lambda: datetime.now(timezone.utc))

    # Constraints
    __table_args__ = (
        db.UniqueConstraint("user_id", "league_id", name="unique_user_league"),
        db.Index("idx_league_members_league", "league_id"),
    )

    def __repr__(self):
        return f"<LeagueMember user_id={self.user_id} league_id={self.league_id}>"

    def to_dict(self):
        """Convert membership to dictionary for API responses"""
        return {
            "user_id": self.user_id,
            "league_id": self.league_id,
            "username": self.user.username if self.user else None,
            "display_name": self.user.full_name if self.user else None,
            "joined_at": self.joined_at.isoformat() if self.joined_at else None,
        }
