from datetime import datetime, timezone

from app import db
from app.utils.scoring import win_percentage


class Score(db.Model):
    """Weekly result of one user in one competition (derived from picks)"""

    __tablename__ = "scores"

    id = db.Column(db.Integer, primary_key=True)
    competition_id = db.Column(
        db.Integer, db.ForeignKey("competitions.id"), nullable=False
    )
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False)

    # Totals
    total_points = db.Column(db.Integer, nullable=False, default=0)
    correct_picks = db.Column(db.Integer, nullable=False, default=0)
    total_picks = db.Column(db.Integer, nullable=False, default=0)
    rank = db.Column(db.Integer)

    calculated_at = db.Column(
        db.DateTime, nullable=False, default=lambda: datetime.now(timezone.utc)
    )

    # Relationships
    user = db.relationship("User", backref=db.backref("scores", lazy="dynamic"))

    __table_args__ = (
        db.UniqueConstraint(
            "competition_id", "user_id", name="unique_competition_user_score"
        ),
        db.Index("idx_score_competition", "competition_id"),
        db.Index("idx_score_user", "user_id"),
        db.Index("idx_score_total_points", "total_points"),
    )

    def __repr__(self):
        return f"<Score competition_id={self.competition_id} user_id={self.user_id} points={self.total_points} rank={self.rank}>"

    @property
    def win_percentage(self):
        return win_percentage(self.correct_picks, self.total_picks)

    @staticmethod
    def get_leaderboard(competition_id):
        """Get all scores for a competition in rank order (unranked rows last)"""
        from sqlalchemy.orm import joinedload

        return (
            Score.query.filter_by(competition_id=competition_id)
            .options(joinedload(Score.user))
            .order_by(
                Score.rank.is_(None),
                Score.rank,
                Score.total_points.desc(),
                Score.correct_picks.desc(),
                Score.user_id,
            )
            .all()
        )

    @staticmethod
    def get_for_user(user_id):
        """Get a user's scores across competitions, latest week first"""
        from .competition import Competition

        return (
            Score.query.filter_by(user_id=user_id)
            .join(Competition, Score.competition_id == Competition.id)
            .order_by(Competition.week_number.desc(), Competition.id.desc())
            .all()
        )

    def apply_totals(self, total_points, correct_picks, total_picks):
        """Overwrite totals with freshly computed values. Returns True on change."""
        values = {
            "total_points": total_points,
            "correct_picks": correct_picks,
            "total_picks": total_picks,
        }
        changed = False
        for field, value in values.items():
            if getattr(self, field) != value:
                setattr(self, field, value)
                changed = True

        if changed:
            self.calculated_at = datetime.now(timezone.utc)
        return changed

    def to_dict(self):
        """Convert score to leaderboard entry for API responses"""
        return {
            "user_id": self.user_id,
            "username": self.user.username if self.user else None,
            "display_name": (
                self.competition.league.get_display_name(self.user)
                if self.competition and self.user
                else None
            ),
            "total_points": self.total_points,
            "correct_picks": self.correct_picks,
            "total_picks": self.total_picks,
            "win_percentage": self.win_percentage,
            "rank": self.rank,
        }
