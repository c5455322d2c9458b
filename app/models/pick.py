from datetime import datetime, timezone

from app import db

MIN_CONFIDENCE = 1
MAX_CONFIDENCE = 20


class Pick(db.Model):
    __tablename__ = "picks"

    id = db.Column(db.Integer, primary_key=True)

    # Pick identification
    competition_id = db.Column(
        db.Integer, db.ForeignKey("competitions.id"), nullable=False
    )
    game_id = db.Column(db.Integer, db.ForeignKey("games.id"), nullable=False)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False)

    # Pick details
    picked_team = db.Column(db.String(100), nullable=False)
    confidence_points = db.Column(db.Integer, nullable=False, default=1)

    # Results (null until the game is final)
    is_correct = db.Column(db.Boolean)
    points_earned = db.Column(db.Integer)

    # Timestamps
    submitted_at = db.Column(db.DateTime, default=lambda: datetime.now(timezone.utc))
    updated_at = db.Column(
        db.DateTime,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    # Constraints and indexes
    __table_args__ = (
        db.UniqueConstraint("game_id", "user_id", name="unique_game_user_pick"),
        db.CheckConstraint(
            f"confidence_points BETWEEN {MIN_CONFIDENCE} AND {MAX_CONFIDENCE}",
            name="valid_confidence_points",
        ),
        db.Index("idx_pick_competition", "competition_id"),
        db.Index("idx_pick_game", "game_id"),
        db.Index("idx_pick_user", "user_id"),
    )

    def __repr__(self):
        return f"<Pick user_id={self.user_id} game_id={self.game_id} team={self.picked_team} ({self.confidence_points})>"

    @property
    def is_graded(self):
        return self.is_correct is not None

    def update_result(self):
        """Regrade this pick from the current state of its game.

        Returns True if either result field changed.
        """
        from app.utils.scoring import grade_pick

        is_correct, points_earned = grade_pick(
            self.game, self.picked_team, self.confidence_points
        )

        changed = False
        if self.is_correct != is_correct:
            self.is_correct = is_correct
            changed = True
        if self.points_earned != points_earned:
            self.points_earned = points_earned
            changed = True
        return changed

    def to_dict(self):
        """Convert pick to dictionary for API responses"""
        return {
            "id": self.id,
            "competition_id": self.competition_id,
            "game_id": self.game_id,
            "user_id": self.user_id,
            "picked_team": self.picked_team,
            "confidence_points": self.confidence_points,
            "is_correct": self.is_correct,
            "points_earned": self.points_earned,
        }
