from functools import wraps

from flask import current_app, jsonify, make_response, request

from app import db, limiter
from app.models import Competition, League, Pick, Score, SeasonStanding, User
from app.routes.api import bp
from app.services.errors import ValidationError
from app.services.pick_service import PickService
from app.services.scoring_service import ScoringService
from app.utils.cache_utils import cached_query


def no_store(f):
    """Mark API responses as uncacheable by clients and proxies"""

    @wraps(f)
    def decorated_function(*args, **kwargs):
        response = make_response(f(*args, **kwargs))
        response.headers["Cache-Control"] = "no-store, no-cache, must-revalidate, max-age=0"
        return response

    return decorated_function


def calculate_rate_limit():
    return current_app.config.get("CALCULATE_RATE_LIMIT", "30 per minute")


@bp.route("/competitions/<int:competition_id>/scores/calculate", methods=["POST"])
@limiter.limit(calculate_rate_limit)
@no_store
def calculate_competition_scores(competition_id):
    """Grade picks and recompute the ranked leaderboard for a competition"""
    competition, leaderboard = ScoringService().calculate_competition_scores(
        competition_id
    )

    return jsonify(
        {
            "message": "Scores calculated successfully",
            "competition_id": competition.id,
            "provisional": not competition.is_completed,
            "leaderboard": [score.to_dict() for score in leaderboard],
        }
    )


@cached_query("Score")
def competition_leaderboard(competition_id):
    competition = db.get_or_404(Competition, competition_id)
    return {
        "competition": competition.to_dict(),
        "provisional": not competition.is_completed,
        "leaderboard": [score.to_dict() for score in Score.get_leaderboard(competition_id)],
    }


@bp.route("/competitions/<int:competition_id>/scores")
def competition_scores(competition_id):
    """Get the stored leaderboard for a competition"""
    return jsonify(competition_leaderboard(competition_id))


@bp.route("/users/<int:user_id>/scores")
def user_scores(user_id):
    """Get a user's weekly scores across competitions"""
    db.get_or_404(User, user_id)

    results = []
    for score in Score.get_for_user(user_id):
        entry = score.to_dict()
        entry.update(
            {
                "competition_id": score.competition_id,
                "competition_name": score.competition.name,
                "week_number": score.competition.week_number,
                "league_name": score.competition.league.name,
            }
        )
        results.append(entry)

    return jsonify(results)


@bp.route("/leagues/<int:league_id>/standings/calculate", methods=["POST"])
@limiter.limit(calculate_rate_limit)
@no_store
def calculate_season_standings(league_id):
    """Recompute season standings from completed competitions"""
    league, standings = ScoringService().calculate_season_standings(league_id)

    return jsonify(
        {
            "message": "Season standings calculated successfully",
            "league_id": league.id,
            "standings": [standing.to_dict() for standing in standings],
        }
    )


@cached_query("SeasonStanding")
def league_standings(league_id):
    league = db.get_or_404(League, league_id)
    return {
        "league": league.to_dict(),
        "standings": [
            standing.to_dict() for standing in SeasonStanding.get_standings(league_id)
        ],
    }


@bp.route("/leagues/<int:league_id>/standings")
def season_standings(league_id):
    """Get the stored season standings for a league"""
    return jsonify(league_standings(league_id))


@bp.route("/users/<int:user_id>/standings")
def user_standings(user_id):
    """Get a user's season standings in active leagues"""
    db.get_or_404(User, user_id)

    results = []
    for standing in SeasonStanding.get_for_user(user_id):
        entry = standing.to_dict()
        entry.update(
            {
                "league_id": standing.league_id,
                "league_name": standing.league.name,
                "season_year": standing.league.season_year,
                "sport": standing.league.sport,
            }
        )
        results.append(entry)

    return jsonify(results)


def _pick_payload():
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        raise ValidationError("Request body must be a JSON object")
    return data


def _optional_int(data, field):
    value = data.get(field)
    if value is None:
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{field} must be an integer")


@bp.route("/competitions/<int:competition_id>/picks")
@no_store
def competition_picks(competition_id):
    """Get picks for a competition, optionally for one user"""
    db.get_or_404(Competition, competition_id)

    query = Pick.query.filter_by(competition_id=competition_id)
    user_id = request.args.get("user_id", type=int)
    if user_id is not None:
        query = query.filter_by(user_id=user_id)

    return jsonify([pick.to_dict() for pick in query.order_by(Pick.game_id, Pick.user_id)])


@bp.route("/competitions/<int:competition_id>/picks", methods=["POST"])
@no_store
def create_pick(competition_id):
    """Submit a pick while the competition is open"""
    data = _pick_payload()
    confidence_points = data.get("confidence_points", 1)

    pick = PickService().submit_pick(
        competition_id,
        user_id=_optional_int(data, "user_id"),
        game_id=_optional_int(data, "game_id"),
        picked_team=data.get("picked_team"),
        confidence_points=confidence_points,
    )
    return jsonify(pick.to_dict()), 201


@bp.route(
    "/competitions/<int:competition_id>/picks/<int:pick_id>", methods=["PUT", "PATCH"]
)
@no_store
def update_pick(competition_id, pick_id):
    """Change the team or confidence of a pick while the competition is open"""
    data = _pick_payload()

    pick = PickService().update_pick(
        competition_id,
        pick_id,
        picked_team=data.get("picked_team"),
        confidence_points=data.get("confidence_points"),
    )
    return jsonify(pick.to_dict())


@bp.route("/competitions/<int:competition_id>/picks/<int:pick_id>", methods=["DELETE"])
@no_store
def delete_pick(competition_id, pick_id):
    """Withdraw a pick while the competition is open"""
    PickService().delete_pick(competition_id, pick_id)
    return "", 204
