from datetime import datetime, timezone

from app import db


class League(db.Model):
    __tablename__ = "leagues"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(100), nullable=False)
    description = db.Column(db.String(500))

    # Season info
    season_year = db.Column(db.Integer, nullable=False)
    sport = db.Column(db.String(50), nullable=False, default="NFL")

    # League settings
    is_active = db.Column(db.Boolean, default=True)
    max_members = db.Column(db.Integer, default=20)

    # Timestamps
    created_at = db.Column(db.DateTime, default=lambda: datetime.now(timezone.utc))
    updated_at = db.Column(
        db.DateTime,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    # Relationships
    members = db.relationship(
        "LeagueMember", backref="league", lazy="dynamic", cascade="all, delete-orphan"
    )
    competitions = db.relationship(
        "Competition", backref="league", lazy="dynamic", cascade="all, delete-orphan"
    )
    standings = db.relationship(
        "SeasonStanding", backref="league", lazy="dynamic", cascade="all, delete-orphan"
    )

    __table_args__ = (
        db.Index("idx_league_season_year", "season_year"),
        db.Index("idx_league_active", "is_active"),
    )

    def __repr__(self):
        return f"<League {self.name} {self.season_year}>"

    def get_display_name(self, user):
        """Get the league-specific display name for a user, if one is set"""
        from .league_member import LeagueMember

        member = self.members.filter(
            LeagueMember.user_id == user.id, LeagueMember.display_name.isnot(None)
        ).first()
        return member.display_name if member else user.full_name

    def to_dict(self):
        """Convert league to dictionary for API responses"""
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "season_year": self.season_year,
            "sport": self.sport,
            "is_active": self.is_active,
        }
