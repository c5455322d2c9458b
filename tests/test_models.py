from datetime import timedelta

import pytest

from app.models import CompetitionStatus, Game, GameStatus, Score
from app.services.errors import InvalidTransitionError


class TestCompetition:
    def test_open_competition_accepts_picks(self, factory):
        comp = factory.competition(factory.league())

        assert comp.is_locked is False
        assert comp.is_accepting_picks() is True

    def test_past_lock_date_locks(self, factory):
        comp = factory.competition(factory.league(), lock_in=timedelta(hours=-1))

        assert comp.is_locked is True
        assert comp.is_accepting_picks() is False

    @pytest.mark.parametrize("status", [CompetitionStatus.LOCKED, CompetitionStatus.COMPLETED])
    def test_status_locks_before_lock_date(self, factory, status):
        comp = factory.competition(factory.league(), status=status)

        assert comp.is_locked is True

    def test_cancelled_competition_rejects_picks(self, factory):
        comp = factory.competition(factory.league(), status=CompetitionStatus.CANCELLED)

        assert comp.is_locked is False
        assert comp.is_accepting_picks() is False

    def test_lifecycle(self, factory):
        comp = factory.competition(factory.league(), status=CompetitionStatus.UPCOMING)

        for status in (
            CompetitionStatus.ACTIVE,
            CompetitionStatus.LOCKED,
            CompetitionStatus.COMPLETED,
        ):
            comp.transition_to(status)
            assert comp.status == status

        assert comp.is_completed

    def test_completed_is_terminal(self, factory):
        comp = factory.competition(factory.league(), status=CompetitionStatus.COMPLETED)

        with pytest.raises(InvalidTransitionError):
            comp.transition_to(CompetitionStatus.CANCELLED)
        assert comp.status == CompetitionStatus.COMPLETED

    def test_cannot_skip_states(self, factory):
        comp = factory.competition(factory.league(), status=CompetitionStatus.UPCOMING)

        with pytest.raises(InvalidTransitionError):
            comp.transition_to(CompetitionStatus.COMPLETED)

    def test_unknown_status(self, factory):
        comp = factory.competition(factory.league())

        with pytest.raises(InvalidTransitionError, match="Unknown competition status"):
            comp.transition_to("Paused")

    def test_cancel_from_open_states(self, factory):
        league = factory.league()
        for status in (
            CompetitionStatus.UPCOMING,
            CompetitionStatus.ACTIVE,
            CompetitionStatus.LOCKED,
        ):
            comp = factory.competition(league, status=status)
            comp.transition_to(CompetitionStatus.CANCELLED)
            assert comp.status == CompetitionStatus.CANCELLED


class TestGame:
    def test_winning_team(self):
        game = Game(home_team="Bears", away_team="Packers", home_score=3, away_score=10, status=GameStatus.FINAL)
        assert game.winning_team == "Packers"

    def test_tie_has_no_winner(self):
        game = Game(home_team="Bears", away_team="Packers", home_score=10, away_score=10, status=GameStatus.FINAL)
        assert game.is_tie
        assert game.winning_team is None

    def test_in_progress_has_no_winner(self):
        game = Game(home_team="Bears", away_team="Packers", home_score=21, away_score=0, status=GameStatus.IN_PROGRESS)
        assert game.winning_team is None


def test_score_win_percentage():
    assert Score(correct_picks=3, total_picks=4).win_percentage == 75.0
    assert Score(correct_picks=0, total_picks=0).win_percentage is None


def test_league_display_name_prefers_membership(factory):
    league = factory.league()
    alice = factory.user("alice", first_name="Alice", last_name="Smith")
    bob = factory.user("bob")
    factory.member(league, alice, display_name="Ace")
    factory.member(league, bob)

    assert league.get_display_name(alice) == "Ace"
    assert league.get_display_name(bob) == "bob"
