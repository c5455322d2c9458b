from datetime import datetime, timezone

from app import db
from app.utils.scoring import win_percentage


class SeasonStanding(db.Model):
    """Season-long totals of one user in one league over completed competitions"""

    __tablename__ = "season_standings"

    id = db.Column(db.Integer, primary_key=True)
    league_id = db.Column(db.Integer, db.ForeignKey("leagues.id"), nullable=False)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False)

    # Season totals
    total_points = db.Column(db.Integer, nullable=False, default=0)
    weeks_participated = db.Column(db.Integer, nullable=False, default=0)
    total_correct_picks = db.Column(db.Integer, nullable=False, default=0)
    total_picks = db.Column(db.Integer, nullable=False, default=0)
    average_points_per_week = db.Column(db.Float)
    rank = db.Column(db.Integer)

    updated_at = db.Column(
        db.DateTime, nullable=False, default=lambda: datetime.now(timezone.utc)
    )

    # Relationships
    user = db.relationship("User", backref=db.backref("standings", lazy="dynamic"))

    __table_args__ = (
        db.UniqueConstraint("league_id", "user_id", name="unique_league_user_standing"),
        db.Index("idx_standing_league", "league_id"),
        db.Index("idx_standing_user", "user_id"),
        db.Index("idx_standing_total_points", "total_points"),
    )

    def __repr__(self):
        return f"<SeasonStanding league_id={self.league_id} user_id={self.user_id} points={self.total_points} rank={self.rank}>"

    @property
    def correct_picks(self):
        # Alias so standings rank with the same key as weekly scores
        return self.total_correct_picks

    @property
    def win_percentage(self):
        return win_percentage(self.total_correct_picks, self.total_picks)

    @staticmethod
    def get_standings(league_id):
        """Get all standings for a league in rank order (unranked rows last)"""
        from sqlalchemy.orm import joinedload

        return (
            SeasonStanding.query.filter_by(league_id=league_id)
            .options(joinedload(SeasonStanding.user))
            .order_by(
                SeasonStanding.rank.is_(None),
                SeasonStanding.rank,
                SeasonStanding.total_points.desc(),
                SeasonStanding.total_correct_picks.desc(),
                SeasonStanding.user_id,
            )
            .all()
        )

    @staticmethod
    def get_for_user(user_id):
        """Get a user's standings in active leagues, newest season first"""
        from .league import League

        return (
            SeasonStanding.query.filter_by(user_id=user_id)
            .join(League, SeasonStanding.league_id == League.id)
            .filter(League.is_active.is_(True))
            .order_by(League.season_year.desc(), SeasonStanding.total_points.desc())
            .all()
        )

    def apply_totals(
        self,
        total_points,
        weeks_participated,
        total_correct_picks,
        total_picks,
        average_points_per_week,
    ):
        """Overwrite totals with freshly computed values. Returns True on change."""
        values = {
            "total_points": total_points,
            "weeks_participated": weeks_participated,
            "total_correct_picks": total_correct_picks,
            "total_picks": total_picks,
            "average_points_per_week": average_points_per_week,
        }
        changed = False
        for field, value in values.items():
            if getattr(self, field) != value:
                setattr(self, field, value)
                changed = True

        if changed:
            self.updated_at = datetime.now(timezone.utc)
        return changed

    def to_dict(self):
        """Convert standing to dictionary for API responses"""
        return {
            "user_id": self.user_id,
            "username": self.user.username if self.user else None,
            "display_name": (
                self.league.get_display_name(self.user)
                if self.league and self.user
                else None
            ),
            "total_points": self.total_points,
            "weeks_participated": self.weeks_participated,
            "total_correct_picks": self.total_correct_picks,
            "total_picks": self.total_picks,
            "average_points_per_week": self.average_points_per_week,
            "win_percentage": self.win_percentage,
            "rank": self.rank,
        }
