"""User model — team members who own projects and log time."""

from datetime import datetime, timezone

from portfolio_tracker.models import db

VALID_TIERS = frozenset({1, 2, 3})
DEFAULT_TIER = 2


class User(db.Model):
    """A team member. ``tier`` is the organizational level used for capacity grouping."""

    __tablename__ = "users"

    id = db.Column(db.Integer, primary_key=True)
    first_name = db.Column(db.String(100), nullable=False)
    last_name = db.Column(db.String(100), nullable=False)
    email = db.Column(db.String(255), nullable=True, unique=True)
    tier = db.Column(
        db.Integer, nullable=False, default=DEFAULT_TIER,
        comment="Organizational tier: 1 | 2 | 3",
    )
    is_active = db.Column(db.Boolean, nullable=False, default=True)

    created_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    time_entries = db.relationship(
        "TimeEntry", backref="user", lazy="dynamic",
        passive_deletes=True,
    )

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "first_name": self.first_name,
            "last_name": self.last_name,
            "email": self.email,
            "tier": self.tier,
            "is_active": self.is_active,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }

    def __repr__(self) -> str:
        return f"<User {self.id}: {self.full_name}>"
