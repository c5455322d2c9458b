"""
Pick'em Pick Service

Creates, edits and deletes picks while their competition is open. Picks are
regraded on the next score calculation; an edited pick is regraded right away
so it never shows a result for a team the user no longer holds.
"""

from flask import current_app
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from app import db
from app.models import Competition, Game, Pick, Score, User
from app.models.pick import MAX_CONFIDENCE, MIN_CONFIDENCE
from app.services.errors import (
    DuplicatePickError,
    NotFoundError,
    PicksLockedError,
    StorageFailureError,
    ValidationError,
)
from app.utils.cache_utils import invalidate_model_cache
from app.utils.calculation_lock import calculation_guard
from app.utils.logging_config import ContextualLogger


def validate_confidence(confidence_points):
    # bool is an int subclass; reject it explicitly
    if isinstance(confidence_points, bool) or not isinstance(confidence_points, int):
        raise ValidationError("confidence_points must be an integer")
    if not MIN_CONFIDENCE <= confidence_points <= MAX_CONFIDENCE:
        raise ValidationError(
            f"Confidence points must be between {MIN_CONFIDENCE} and {MAX_CONFIDENCE}"
        )


class PickService:
    """Pick writes for one database session"""

    def __init__(self, session=None, guard=None):
        self.session = session or db.session
        self.guard = guard or calculation_guard

    def _hold(self, competition_id):
        return self.guard.hold(
            ("competition", competition_id),
            timeout=current_app.config.get("SCORING_LOCK_TIMEOUT", 30.0),
        )

    def _open_competition(self, competition_id, action):
        competition = self.session.get(Competition, competition_id)
        if competition is None:
            raise NotFoundError(f"Competition {competition_id} not found")

        if not competition.is_accepting_picks():
            raise PicksLockedError(
                f"Competition {competition_id} is locked, picks cannot be {action}"
            )
        return competition

    def _get_pick(self, competition, pick_id):
        pick = self.session.get(Pick, pick_id)
        if pick is None or pick.competition_id != competition.id:
            raise NotFoundError(
                f"Pick {pick_id} not found in competition {competition.id}"
            )
        return pick

    def _commit(self, log, action):
        try:
            self.session.commit()
        except IntegrityError as e:
            self.session.rollback()
            log.warning(f"Pick {action} rejected by database constraint: {e.orig}")
            raise DuplicatePickError("User has already made a pick for this game") from e
        except SQLAlchemyError as e:
            self.session.rollback()
            log.exception(f"Pick {action} rolled back after database error: {e}")
            raise StorageFailureError(f"Database error while saving pick: {e}") from e

    def submit_pick(
        self, competition_id, user_id, game_id, picked_team, confidence_points=MIN_CONFIDENCE
    ):
        """
        Create a pick for a user on one game of an open competition.

        Raises:
            ValidationError: missing fields, unknown team or bad confidence
            NotFoundError: competition, user or game does not exist
            PicksLockedError: the competition is past its lock deadline
            DuplicatePickError: the user already picked this game
        """
        if game_id is None or user_id is None or not picked_team:
            raise ValidationError("game_id, user_id and picked_team are required")
        validate_confidence(confidence_points)

        log = ContextualLogger(
            __name__, {"competition_id": competition_id, "user_id": user_id}
        )

        with self._hold(competition_id):
            competition = self._open_competition(competition_id, "created")

            if self.session.get(User, user_id) is None:
                raise NotFoundError(f"User {user_id} not found")

            game = self.session.get(Game, game_id)
            if game is None or game.competition_id != competition.id:
                raise NotFoundError(
                    f"Game {game_id} not found in competition {competition.id}"
                )

            if picked_team not in (game.home_team, game.away_team):
                raise ValidationError(f"{picked_team} is not playing in game {game_id}")

            existing = (
                self.session.query(Pick).filter_by(game_id=game.id, user_id=user_id).first()
            )
            if existing is not None:
                raise DuplicatePickError("User has already made a pick for this game")

            pick = Pick(
                competition_id=competition.id,
                game_id=game.id,
                user_id=user_id,
                picked_team=picked_team,
                confidence_points=confidence_points,
            )
            self.session.add(pick)
            self._commit(log, "creation")

        log.info(f"Pick {pick.id} created for game {game_id}")
        return pick

    def update_pick(self, competition_id, pick_id, picked_team=None, confidence_points=None):
        """
        Change the team and/or confidence of a pick in an open competition.

        Raises:
            ValidationError: unknown team or bad confidence
            NotFoundError: competition or pick does not exist
            PicksLockedError: the competition is past its lock deadline
        """
        if confidence_points is not None:
            validate_confidence(confidence_points)

        log = ContextualLogger(__name__, {"competition_id": competition_id})

        with self._hold(competition_id):
            competition = self._open_competition(competition_id, "modified")
            pick = self._get_pick(competition, pick_id)

            if picked_team is not None:
                if picked_team not in (pick.game.home_team, pick.game.away_team):
                    raise ValidationError(
                        f"{picked_team} is not playing in game {pick.game_id}"
                    )
                pick.picked_team = picked_team

            if confidence_points is not None:
                pick.confidence_points = confidence_points

            pick.update_result()
            self._commit(log, "update")

        log.info(f"Pick {pick_id} updated")
        return pick

    def delete_pick(self, competition_id, pick_id):
        """
        Delete a pick from an open competition.

        A user's score for the competition is deleted together with their
        last pick.

        Raises:
            NotFoundError: competition or pick does not exist
            PicksLockedError: the competition is past its lock deadline
        """
        log = ContextualLogger(__name__, {"competition_id": competition_id})

        with self._hold(competition_id):
            competition = self._open_competition(competition_id, "deleted")
            pick = self._get_pick(competition, pick_id)
            user_id = pick.user_id

            remaining = (
                self.session.query(Pick)
                .filter(
                    Pick.competition_id == competition.id,
                    Pick.user_id == user_id,
                    Pick.id != pick.id,
                )
                .count()
            )

            self.session.delete(pick)
            if not remaining:
                removed = (
                    self.session.query(Score)
                    .filter_by(competition_id=competition.id, user_id=user_id)
                    .delete()
                )
                if removed:
                    log.info(f"Removed score of user {user_id} with their last pick")

            self._commit(log, "deletion")

        invalidate_model_cache("Score")
        log.info(f"Pick {pick_id} deleted")
        return user_id
