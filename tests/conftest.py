"""
Shared pytest configuration.

Each test gets a fresh application bound to an in-memory SQLite database.
"""

from datetime import datetime, timedelta, timezone

import pytest

from app import create_app
from app import db as _db
from app.models import (
    Competition,
    CompetitionStatus,
    Game,
    GameStatus,
    League,
    LeagueMember,
    Pick,
    User,
)


@pytest.fixture
def app():
    app = create_app("testing")
    with app.app_context():
        yield app
        _db.session.remove()
        _db.drop_all()


@pytest.fixture
def db(app):
    return _db


@pytest.fixture
def client(app):
    return app.test_client()


class Factory:
    """Creates and commits rows with sensible defaults"""

    def __init__(self, session):
        self.session = session
        self._counter = 0

    def _next(self):
        self._counter += 1
        return self._counter

    def _save(self, obj):
        self.session.add(obj)
        self.session.commit()
        return obj

    def user(self, username=None, **kwargs):
        n = self._next()
        username = username or f"user{n}"
        return self._save(User(username=username, email=f"{username}@example.com", **kwargs))

    def league(self, name="Sunday Pickers", season_year=2025, **kwargs):
        return self._save(League(name=name, season_year=season_year, **kwargs))

    def member(self, league, user, display_name=None):
        return self._save(
            LeagueMember(league_id=league.id, user_id=user.id, display_name=display_name)
        )

    def competition(self, league, week_number=None, status=CompetitionStatus.ACTIVE, lock_in=timedelta(days=2)):
        week_number = week_number or self._next()
        now = datetime.now(timezone.utc)
        return self._save(
            Competition(
                league_id=league.id,
                week_number=week_number,
                name=f"Week {week_number}",
                start_date=now - timedelta(days=1),
                end_date=now + timedelta(days=6),
                lock_date=now + lock_in,
                status=status,
            )
        )

    def game(self, competition, home_team="Bears", away_team="Packers", home_score=None, away_score=None, status=GameStatus.SCHEDULED):
        return self._save(
            Game(
                competition_id=competition.id,
                home_team=home_team,
                away_team=away_team,
                home_score=home_score,
                away_score=away_score,
                status=status,
                game_date=datetime.now(timezone.utc),
            )
        )

    def final_game(self, competition, home_score, away_score, home_team="Bears", away_team="Packers"):
        return self.game(
            competition,
            home_team=home_team,
            away_team=away_team,
            home_score=home_score,
            away_score=away_score,
            status=GameStatus.FINAL,
        )

    def pick(self, user, game, picked_team, confidence_points=1, competition=None):
        return self._save(
            Pick(
                competition_id=(competition or game.competition).id,
                game_id=game.id,
                user_id=user.id,
                picked_team=picked_team,
                confidence_points=confidence_points,
            )
        )


@pytest.fixture
def factory(db):
    return Factory(db.session)
