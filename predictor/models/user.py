import html
from datetime import datetime, timezone

from predictor import db


class User(db.Model):
    __tablename__ = "users"

    id = db.Column(db.Integer, primary_key=True)
    username = db.Column(db.String(80), unique=True, nullable=False, index=True)
    display_name = db.Column(db.String(100))

    # Timestamps
    created_at = db.Column(db.DateTime, default=lambda: datetime.now(timezone.utc))
    updated_at = db.Column(
        db.DateTime,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    # Relationships
    picks = db.relationship(
        "Pick", backref="user", lazy="dynamic", cascade="all, delete-orphan"
    )
    submissions = db.relationship(
        "Submission", backref="user", lazy="dynamic", cascade="all, delete-orphan"
    )
    league_memberships = db.relationship(
        "LeagueMember", backref="user", lazy="dynamic", cascade="all, delete-orphan"
    )

    __table_args__ = (db.Index("idx_user_created_at", "created_at"),)

    def __repr__(self):
        return f"<User {self.username}>"

    def set_display_name(self, display_name):
        """Set display name with sanitization"""
        if display_name:
            self.display_name = html.escape(display_name.strip())
        else:
            self.display_name = display_name

    @property
    def full_name(self):
        """Return display name or username"""
        return self.display_name or self.username

    def to_dict(self):
        return {
            "id": self.id,
            "username": self.username,
            "display_name": self.full_name,
        }
