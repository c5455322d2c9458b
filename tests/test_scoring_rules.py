"""
Tests for the pure grading, aggregation and ranking rules.
"""

from types import SimpleNamespace

from app.models import Game, GameStatus
from app.utils.scoring import (
    average_points,
    grade_pick,
    rank_entries,
    summarize_picks,
    win_percentage,
)


def make_game(home_score, away_score, status=GameStatus.FINAL):
    return Game(
        home_team="Chiefs",
        away_team="Raiders",
        home_score=home_score,
        away_score=away_score,
        status=status,
    )


def entry(user_id, total_points, correct_picks):
    return SimpleNamespace(user_id=user_id, total_points=total_points, correct_picks=correct_picks)


# ============================================================================
# Grading
# ============================================================================


def test_home_win_grades_home_pick_correct():
    game = make_game(24, 17)
    assert grade_pick(game, "Chiefs", 7) == (True, 7)


def test_home_win_grades_away_pick_incorrect():
    game = make_game(24, 17)
    assert grade_pick(game, "Raiders", 7) == (False, 0)


def test_away_win_grades_away_pick_correct():
    game = make_game(10, 13)
    assert grade_pick(game, "Raiders", 20) == (True, 20)


def test_tie_is_incorrect_for_both_sides():
    game = make_game(14, 14)
    assert grade_pick(game, "Chiefs", 5) == (False, 0)
    assert grade_pick(game, "Raiders", 5) == (False, 0)


def test_pick_of_team_not_in_game_is_incorrect():
    game = make_game(24, 17)
    assert grade_pick(game, "Broncos", 3) == (False, 0)


def test_non_final_games_stay_ungraded():
    for status in (
        GameStatus.SCHEDULED,
        GameStatus.IN_PROGRESS,
        GameStatus.POSTPONED,
        GameStatus.CANCELLED,
    ):
        game = make_game(21, 3, status=status)
        assert grade_pick(game, "Chiefs", 4) == (None, None)


def test_missing_game_is_ungraded():
    assert grade_pick(None, "Chiefs", 4) == (None, None)


# ============================================================================
# Aggregation helpers
# ============================================================================


def test_summarize_picks_counts_ungraded_picks_without_points():
    picks = [
        SimpleNamespace(is_correct=True, points_earned=10),
        SimpleNamespace(is_correct=False, points_earned=0),
        SimpleNamespace(is_correct=None, points_earned=None),
        SimpleNamespace(is_correct=True, points_earned=3),
    ]

    assert summarize_picks(picks) == {
        "total_points": 13,
        "correct_picks": 2,
        "total_picks": 4,
    }


def test_summarize_no_picks():
    assert summarize_picks([]) == {"total_points": 0, "correct_picks": 0, "total_picks": 0}


def test_average_points():
    assert average_points(100, 3) == 33.33
    assert average_points(0, 2) == 0.0
    assert average_points(50, 0) is None


def test_win_percentage():
    assert win_percentage(3, 4) == 75.0
    assert win_percentage(0, 0) is None


# ============================================================================
# Ranking
# ============================================================================


def test_ties_share_rank_and_next_rank_skips():
    entries = [entry(3, 90, 6), entry(2, 100, 5), entry(1, 100, 5)]

    ranked = [(rank, e.user_id) for rank, e in rank_entries(entries)]

    assert ranked == [(1, 1), (1, 2), (3, 3)]


def test_correct_picks_break_point_ties():
    entries = [entry(1, 50, 2), entry(2, 50, 4), entry(3, 50, 3)]

    ranked = [(rank, e.user_id) for rank, e in rank_entries(entries)]

    assert ranked == [(1, 2), (2, 3), (3, 1)]


def test_two_way_tie_at_second_place():
    entries = [entry(1, 40, 4), entry(2, 30, 3), entry(3, 30, 3), entry(4, 10, 1)]

    assert [rank for rank, _ in rank_entries(entries)] == [1, 2, 2, 4]


def test_ranking_is_independent_of_input_order():
    entries = [entry(5, 10, 1), entry(4, 10, 1), entry(3, 20, 1), entry(2, 10, 2)]

    first = [(rank, e.user_id) for rank, e in rank_entries(entries)]
    second = [(rank, e.user_id) for rank, e in rank_entries(list(reversed(entries)))]

    assert first == second == [(1, 3), (2, 2), (3, 4), (3, 5)]


def test_rank_empty():
    assert rank_entries([]) == []
