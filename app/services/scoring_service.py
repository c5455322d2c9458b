"""
Pick'em Scoring Service

Grades picks against final game results, aggregates weekly scores and
season standings, and assigns leaderboard ranks.

Every calculation runs as one unit: grade -> aggregate -> rank either commits
together or is rolled back, and calculations for the same competition or
league are serialized.
"""

import time
from collections import defaultdict

from flask import current_app
from sqlalchemy import distinct, func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import joinedload

from app import db
from app.models import (
    Competition,
    CompetitionStatus,
    League,
    Pick,
    Score,
    SeasonStanding,
)
from app.services.errors import (
    InconsistentStateError,
    NotFoundError,
    ScoringError,
    StorageFailureError,
)
from app.utils.cache_utils import invalidate_model_cache
from app.utils.calculation_lock import calculation_guard
from app.utils.logging_config import ContextualLogger
from app.utils.scoring import average_points, rank_entries, summarize_picks


class ScoringService:
    """Runs score calculations against one database session"""

    def __init__(self, session=None, guard=None, lock_timeout=None):
        self.session = session or db.session
        self.guard = guard or calculation_guard
        self.lock_timeout = lock_timeout

    def _lock_timeout(self):
        if self.lock_timeout is not None:
            return self.lock_timeout
        return current_app.config.get("SCORING_LOCK_TIMEOUT", 30.0)

    def _lock_row(self, model, row_id):
        """Load a row with FOR UPDATE so other workers wait for this calculation"""
        return (
            self.session.query(model)
            .filter(model.id == row_id)
            .with_for_update()
            .populate_existing()
            .one_or_none()
        )

    def _run_in_transaction(self, scope, log, work):
        """Run `work` under the scope lock, committing or rolling back as one unit"""
        with self.guard.hold(scope, timeout=self._lock_timeout()):
            start_time = time.perf_counter()
            try:
                result = work()
                self.session.commit()
            except ScoringError:
                self.session.rollback()
                raise
            except SQLAlchemyError as e:
                self.session.rollback()
                log.exception(f"Calculation rolled back after database error: {e}")
                raise StorageFailureError(
                    f"Database error during {scope[0]} calculation: {e}"
                ) from e
            except Exception:
                self.session.rollback()
                log.exception("Calculation rolled back after unexpected error")
                raise

        elapsed = time.perf_counter() - start_time
        threshold = current_app.config.get("SLOW_CALCULATION_THRESHOLD", 1.0)
        if elapsed > threshold:
            log.warning(
                f"Slow {scope[0]} calculation took {elapsed:.2f}s "
                f"(threshold: {threshold}s)"
            )
        else:
            log.debug(f"{scope[0].capitalize()} calculation took {elapsed:.2f}s")

        return result

    # Weekly scores

    def calculate_competition_scores(self, competition_id):
        """
        Grade picks, upsert Score rows and assign ranks for one competition.

        Returns:
            (competition, ranked list of Score rows)

        Raises:
            NotFoundError: competition does not exist
            InconsistentStateError: a pick points at a game of another competition,
                or a score has no picks behind it
            StorageFailureError: the database failed; nothing was written
        """
        log = ContextualLogger(__name__, {"competition_id": competition_id})

        def work():
            competition = self._lock_row(Competition, competition_id)
            if competition is None:
                raise NotFoundError(f"Competition {competition_id} not found")

            picks = self.grade_picks(competition, log)
            scores = self.aggregate_scores(competition, picks, log)
            self.assign_ranks(scores)
            competition.scoring_calculated = True
            return competition

        competition = self._run_in_transaction(("competition", competition_id), log, work)
        invalidate_model_cache("Score")

        leaderboard = Score.get_leaderboard(competition.id)
        log.info(f"Scores calculated for {len(leaderboard)} users")
        return competition, leaderboard

    def grade_picks(self, competition, log):
        """Regrade every pick in the competition from current game state"""
        picks = (
            self.session.query(Pick)
            .filter(Pick.competition_id == competition.id)
            .options(joinedload(Pick.game))
            .order_by(Pick.id)
            .all()
        )

        changed = 0
        for pick in picks:
            if pick.game is None:
                raise InconsistentStateError(
                    f"Pick {pick.id} references missing game {pick.game_id}"
                )
            if pick.game.competition_id != competition.id:
                raise InconsistentStateError(
                    f"Pick {pick.id} in competition {competition.id} references "
                    f"game {pick.game_id} of competition {pick.game.competition_id}"
                )
            if pick.update_result():
                changed += 1

        graded = sum(1 for pick in picks if pick.is_graded)
        log.info(f"Graded {graded}/{len(picks)} picks ({changed} changed)")
        return picks

    def aggregate_scores(self, competition, picks, log):
        """Upsert one Score row per user with picks in the competition"""
        picks_by_user = defaultdict(list)
        for pick in picks:
            picks_by_user[pick.user_id].append(pick)

        existing = {score.user_id: score for score in competition.scores.all()}

        scores = []
        for user_id in sorted(picks_by_user):
            totals = summarize_picks(picks_by_user[user_id])

            score = existing.pop(user_id, None)
            if score is None:
                score = Score(competition_id=competition.id, user_id=user_id)
                self.session.add(score)

            score.apply_totals(**totals)
            scores.append(score)

        # Deleting a user's last pick also deletes their score
        if existing:
            raise InconsistentStateError(
                f"Scores in competition {competition.id} reference users with "
                f"no picks: {sorted(existing)}"
            )

        return scores

    def find_discrepancies(self, competition_id):
        """
        Compare stored Score rows with the picks behind them without writing.

        Returns:
            list of human readable problems, empty when scores are current
        """
        competition = self.session.get(Competition, competition_id)
        if competition is None:
            raise NotFoundError(f"Competition {competition_id} not found")

        problems = []
        picks_by_user = defaultdict(list)
        for pick in competition.picks.options(joinedload(Pick.game)).all():
            picks_by_user[pick.user_id].append(pick)
            if pick.game and pick.game.is_final and not pick.is_graded:
                problems.append(f"Pick {pick.id} on final game {pick.game_id} is ungraded")

        scores = {score.user_id: score for score in competition.scores.all()}
        for user_id, user_picks in sorted(picks_by_user.items()):
            score = scores.pop(user_id, None)
            if score is None:
                problems.append(f"User {user_id} has picks but no score")
                continue
            totals = summarize_picks(user_picks)
            for field, expected in totals.items():
                actual = getattr(score, field)
                if actual != expected:
                    problems.append(
                        f"User {user_id} {field} is {actual}, picks give {expected}"
                    )

        for user_id in sorted(scores):
            problems.append(f"User {user_id} has a score but no picks")

        return problems

    def assign_ranks(self, entries):
        """Write standard competition ranks onto Score or SeasonStanding rows"""
        for rank, entry in rank_entries(entries):
            if entry.rank != rank:
                entry.rank = rank

    # Season standings

    def calculate_season_standings(self, league_id):
        """
        Aggregate Score rows of completed competitions into SeasonStanding rows.

        Returns:
            (league, ranked list of SeasonStanding rows)

        Raises:
            NotFoundError: league does not exist
            InconsistentStateError: a standing has no completed scores behind it
            StorageFailureError: the database failed; nothing was written
        """
        log = ContextualLogger(__name__, {"league_id": league_id})

        def work():
            league = self._lock_row(League, league_id)
            if league is None:
                raise NotFoundError(f"League {league_id} not found")

            standings = self.aggregate_standings(league, log)
            self.assign_ranks(standings)
            return league

        league = self._run_in_transaction(("league", league_id), log, work)
        invalidate_model_cache("SeasonStanding")

        standings = SeasonStanding.get_standings(league.id)
        log.info(f"Season standings calculated for {len(standings)} users")
        return league, standings

    def aggregate_standings(self, league, log):
        """Upsert one SeasonStanding row per user with completed weekly scores"""
        unscored = (
            self.session.query(Competition.id)
            .filter(
                Competition.league_id == league.id,
                Competition.status == CompetitionStatus.COMPLETED,
                Competition.scoring_calculated.is_(False),
            )
            .all()
        )
        if unscored:
            log.warning(
                f"Completed competitions without calculated scores: "
                f"{[row.id for row in unscored]}"
            )

        totals = (
            self.session.query(
                Score.user_id,
                func.sum(Score.total_points).label("total_points"),
                func.count(distinct(Score.competition_id)).label("weeks_participated"),
                func.sum(Score.correct_picks).label("total_correct_picks"),
                func.sum(Score.total_picks).label("total_picks"),
            )
            .join(Competition, Score.competition_id == Competition.id)
            .filter(
                Competition.league_id == league.id,
                Competition.status == CompetitionStatus.COMPLETED,
            )
            .group_by(Score.user_id)
            .order_by(Score.user_id)
            .all()
        )

        existing = {standing.user_id: standing for standing in league.standings.all()}

        standings = []
        for row in totals:
            total_points = int(row.total_points or 0)
            weeks = int(row.weeks_participated or 0)

            standing = existing.pop(row.user_id, None)
            if standing is None:
                standing = SeasonStanding(league_id=league.id, user_id=row.user_id)
                self.session.add(standing)

            standing.apply_totals(
                total_points=total_points,
                weeks_participated=weeks,
                total_correct_picks=int(row.total_correct_picks or 0),
                total_picks=int(row.total_picks or 0),
                average_points_per_week=average_points(total_points, weeks),
            )
            standings.append(standing)

        if existing:
            raise InconsistentStateError(
                f"Season standings in league {league.id} reference users with "
                f"no completed scores: {sorted(existing)}"
            )

        return standings
