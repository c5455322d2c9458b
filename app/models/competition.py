from datetime import datetime, timezone

from app import db
from app.services.errors import InvalidTransitionError


class CompetitionStatus:
    UPCOMING = "Upcoming"
    ACTIVE = "Active"
    LOCKED = "Locked"
    COMPLETED = "Completed"
    CANCELLED = "Cancelled"

    ALL = (UPCOMING, ACTIVE, LOCKED, COMPLETED, CANCELLED)


# Allowed status changes; Completed and Cancelled are terminal
TRANSITIONS = {
    CompetitionStatus.UPCOMING: {CompetitionStatus.ACTIVE, CompetitionStatus.CANCELLED},
    CompetitionStatus.ACTIVE: {CompetitionStatus.LOCKED, CompetitionStatus.CANCELLED},
    CompetitionStatus.LOCKED: {CompetitionStatus.COMPLETED, CompetitionStatus.CANCELLED},
    CompetitionStatus.COMPLETED: set(),
    CompetitionStatus.CANCELLED: set(),
}


class Competition(db.Model):
    __tablename__ = "competitions"

    id = db.Column(db.Integer, primary_key=True)
    league_id = db.Column(db.Integer, db.ForeignKey("leagues.id"), nullable=False)
    week_number = db.Column(db.Integer, nullable=False)
    name = db.Column(db.String(100), nullable=False)
    description = db.Column(db.String(500))

    # Schedule
    start_date = db.Column(db.DateTime, nullable=False)
    end_date = db.Column(db.DateTime, nullable=False)
    lock_date = db.Column(db.DateTime, nullable=False)

    # Status
    status = db.Column(db.String(20), nullable=False, default=CompetitionStatus.UPCOMING)
    scoring_calculated = db.Column(db.Boolean, nullable=False, default=False)

    # Timestamps
    created_at = db.Column(db.DateTime, default=lambda: datetime.now(timezone.utc))
    updated_at = db.Column(
        db.DateTime,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    # Relationships
    games = db.relationship(
        "Game", backref="competition", lazy="dynamic", cascade="all, delete-orphan"
    )
    picks = db.relationship(
        "Pick", backref="competition", lazy="dynamic", cascade="all, delete-orphan"
    )
    scores = db.relationship(
        "Score", backref="competition", lazy="dynamic", cascade="all, delete-orphan"
    )

    __table_args__ = (
        db.UniqueConstraint("league_id", "week_number", name="unique_league_week"),
        db.CheckConstraint(
            "status IN ('Upcoming', 'Active', 'Locked', 'Completed', 'Cancelled')",
            name="valid_competition_status",
        ),
        db.Index("idx_competition_league", "league_id"),
        db.Index("idx_competition_status", "status"),
    )

    def __repr__(self):
        return f"<Competition {self.name} Week {self.week_number} ({self.status})>"

    @property
    def is_completed(self):
        return self.status == CompetitionStatus.COMPLETED

    @property
    def is_locked(self):
        """Check if the lock deadline has passed or the status forbids new picks"""
        if self.status in (CompetitionStatus.LOCKED, CompetitionStatus.COMPLETED):
            return True

        if not self.lock_date:
            return False

        # If lock_date is timezone-naive, assume it's in UTC
        lock_date = self.lock_date
        if lock_date.tzinfo is None:
            lock_date = lock_date.replace(tzinfo=timezone.utc)

        return datetime.now(timezone.utc) > lock_date

    def is_accepting_picks(self):
        """Check if users may still create or edit picks"""
        return not self.is_locked and self.status != CompetitionStatus.CANCELLED

    def can_transition_to(self, status):
        return status in TRANSITIONS.get(self.status, set())

    def transition_to(self, status):
        """Move the competition to a new status, enforcing the lifecycle"""
        if status not in CompetitionStatus.ALL:
            raise InvalidTransitionError(f"Unknown competition status '{status}'")

        if not self.can_transition_to(status):
            raise InvalidTransitionError(
                f"Cannot move competition {self.id} from {self.status} to {status}"
            )

        self.status = status

    def to_dict(self):
        """Convert competition to dictionary for API responses"""
        return {
            "id": self.id,
            "league_id": self.league_id,
            "week_number": self.week_number,
            "name": self.name,
            "status": self.status,
            "lock_date": self.lock_date.isoformat() if self.lock_date else None,
            "is_locked": self.is_locked,
            "scoring_calculated": self.scoring_calculated,
        }
