from datetime import datetime, timezone

from app import db


class GameStatus:
    SCHEDULED = "Scheduled"
    IN_PROGRESS = "InProgress"
    FINAL = "Final"
    POSTPONED = "Postponed"
    CANCELLED = "Cancelled"

    ALL = (SCHEDULED, IN_PROGRESS, FINAL, POSTPONED, CANCELLED)


class Game(db.Model):
    __tablename__ = "games"

    id = db.Column(db.Integer, primary_key=True)
    competition_id = db.Column(
        db.Integer, db.ForeignKey("competitions.id"), nullable=False
    )
    external_game_id = db.Column(db.String(100), index=True)

    # Teams
    home_team = db.Column(db.String(100), nullable=False)
    away_team = db.Column(db.String(100), nullable=False)

    # Scores
    home_score = db.Column(db.Integer)
    away_score = db.Column(db.Integer)

    # Game timing and status
    game_date = db.Column(db.DateTime, nullable=False)
    venue = db.Column(db.String(200))
    status = db.Column(db.String(20), nullable=False, default=GameStatus.SCHEDULED)

    # Timestamps
    created_at = db.Column(db.DateTime, default=lambda: datetime.now(timezone.utc))
    updated_at = db.Column(
        db.DateTime,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    # Relationships
    picks = db.relationship("Pick", backref="game", lazy="dynamic")

    # Indexes
    __table_args__ = (
        db.Index("idx_game_competition", "competition_id"),
        db.Index("idx_game_date", "game_date"),
        db.CheckConstraint("home_team != away_team", name="different_teams"),
        db.CheckConstraint(
            "status IN ('Scheduled', 'InProgress', 'Final', 'Postponed', 'Cancelled')",
            name="valid_game_status",
        ),
    )

    def __repr__(self):
        return f"<Game {self.away_team} @ {self.home_team} ({self.status})>"

    @property
    def is_final(self):
        return self.status == GameStatus.FINAL

    @property
    def is_tie(self):
        """Check if game ended in a tie"""
        return self.is_final and self.home_score == self.away_score

    @property
    def winning_team(self):
        """Get the winning team (None if game not final or tie)"""
        if not self.is_final or self.home_score is None or self.away_score is None:
            return None

        if self.home_score > self.away_score:
            return self.home_team
        if self.away_score > self.home_score:
            return self.away_team
        return None

    def update_score(self, home_score, away_score, status=None):
        """Update game score; picks are regraded on the next score calculation"""
        self.home_score = home_score
        self.away_score = away_score
        if status is not None:
            self.status = status

    def to_dict(self):
        """Convert game to dictionary for API responses"""
        return {
            "id": self.id,
            "competition_id": self.competition_id,
            "home_team": self.home_team,
            "away_team": self.away_team,
            "home_score": self.home_score,
            "away_score": self.away_score,
            "game_date": self.game_date.isoformat() if self.game_date else None,
            "status": self.status,
            "winning_team": self.winning_team,
        }
