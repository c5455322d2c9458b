"""
Scoring rules for the Pick'em league.

This module holds the pure grading, aggregation and ranking rules. Loading
and persisting rows is done by app.services.scoring_service.
"""

from operator import attrgetter


def grade_pick(game, picked_team, confidence_points):
    """
    Grade a single pick against its game.

    Returns:
        (is_correct, points_earned):
        (True, confidence_points) when the picked team won,
        (False, 0) for a loss or a tie (ties are not a push),
        (None, None) while the game is not final.

    Args:
        game: Game with status and scores loaded
        picked_team: Team name the user picked
        confidence_points: Confidence weight of the pick
    """
    if game is None or not game.is_final:
        return None, None

    if picked_team == game.winning_team:
        return True, confidence_points

    return False, 0


def summarize_picks(picks):
    """
    Sum graded picks into weekly totals.

    Ungraded picks count toward total_picks but contribute no points.

    Returns:
        dict with total_points, correct_picks and total_picks
    """
    total_points = 0
    correct_picks = 0
    total_picks = 0

    for pick in picks:
        total_picks += 1
        total_points += pick.points_earned or 0
        if pick.is_correct is True:
            correct_picks += 1

    return {
        "total_points": total_points,
        "correct_picks": correct_picks,
        "total_picks": total_picks,
    }


def average_points(total_points, weeks_participated):
    """Average points per week, rounded to cents; None without any weeks"""
    if not weeks_participated:
        return None
    return round(total_points / weeks_participated, 2)


def win_percentage(correct_picks, total_picks):
    if not total_picks:
        return None
    return correct_picks / total_picks * 100


def rank_entries(
    entries,
    points=attrgetter("total_points"),
    correct=attrgetter("correct_picks"),
    user=attrgetter("user_id"),
):
    """
    Assign standard competition ranks ("1224" ranking).

    Entries are ordered by points descending, then correct picks descending.
    Entries equal on both share a rank and the next distinct entry skips
    ahead by the size of the tie group. Remaining ties are listed by user id
    so repeated runs produce the same order.

    Returns:
        list of (rank, entry) tuples in leaderboard order
    """
    ordered = sorted(entries, key=lambda e: (-points(e), -correct(e), user(e)))

    ranked = []
    previous_key = None
    rank = 0
    for position, entry in enumerate(ordered, start=1):
        key = (points(entry), correct(entry))
        if key != previous_key:
            rank = position
            previous_key = key
        ranked.append((rank, entry))

    return ranked
