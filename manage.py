#!/usr/bin/env python3
"""
Pick'em League Management CLI

This script provides command-line management functionality for the Pick'em league service.
"""

import logging

import click
from flask.cli import with_appcontext
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from app import create_app, db
from app.models import Competition, CompetitionStatus, Game, GameStatus, League, Pick, User
from app.services.errors import ScoringError
from app.services.scoring_service import ScoringService
from app.utils.cache_utils import invalidate_model_cache

logger = logging.getLogger(__name__)


@click.group()
def cli():
    """Pick'em League Management CLI"""
    pass


def _print_table(rows, columns):
    header = "  ".join(f"{title:>{width}}" for title, _, width in columns)
    click.echo(header)
    click.echo("-" * len(header))
    for row in rows:
        click.echo("  ".join(f"{str(getter(row)):>{width}}" for _, getter, width in columns))


# Score Commands
@cli.group()
def scores():
    """Weekly score commands"""
    pass


@scores.command("calculate")
@click.argument("competition_id", type=int)
@with_appcontext
def calculate_scores(competition_id):
    """Grade picks and rank the leaderboard for a competition"""
    try:
        competition, leaderboard = ScoringService().calculate_competition_scores(
            competition_id
        )
    except ScoringError as e:
        click.echo(f"❌ {e}")
        raise SystemExit(1)

    label = "final" if competition.is_completed else "provisional"
    click.echo(f"✅ Scores calculated for {competition.name} ({label})")

    if not leaderboard:
        click.echo("No picks submitted.")
        return

    _print_table(
        leaderboard,
        [
            ("Rank", lambda s: s.rank, 4),
            ("User", lambda s: s.user.username, 16),
            ("Points", lambda s: s.total_points, 6),
            ("Correct", lambda s: f"{s.correct_picks}/{s.total_picks}", 7),
        ],
    )


@scores.command("verify")
@click.argument("competition_id", type=int)
@with_appcontext
def verify_scores(competition_id):
    """Check stored scores against the picks behind them"""
    try:
        problems = ScoringService().find_discrepancies(competition_id)
    except ScoringError as e:
        click.echo(f"❌ {e}")
        raise SystemExit(1)

    if not problems:
        click.echo("✅ Scores match graded picks")
        return

    for problem in problems:
        click.echo(f"⚠️  {problem}")
    click.echo(f"Run 'python manage.py scores calculate {competition_id}' to rebuild.")
    raise SystemExit(1)


# Standings Commands
@cli.group()
def standings():
    """Season standings commands"""
    pass


@standings.command("calculate")
@click.argument("league_id", type=int)
@with_appcontext
def calculate_standings(league_id):
    """Aggregate completed competitions into season standings"""
    try:
        league, rows = ScoringService().calculate_season_standings(league_id)
    except ScoringError as e:
        click.echo(f"❌ {e}")
        raise SystemExit(1)

    click.echo(f"✅ Season standings calculated for {league.name} {league.season_year}")

    if not rows:
        click.echo("No completed competitions with scores.")
        return

    _print_table(
        rows,
        [
            ("Rank", lambda s: s.rank, 4),
            ("User", lambda s: s.user.username, 16),
            ("Points", lambda s: s.total_points, 6),
            ("Weeks", lambda s: s.weeks_participated, 5),
            ("Avg", lambda s: s.average_points_per_week, 6),
            ("Correct", lambda s: f"{s.total_correct_picks}/{s.total_picks}", 7),
        ],
    )


# Competition Commands
@cli.group()
def competition():
    """Competition management commands"""
    pass


@competition.command("set-status")
@click.argument("competition_id", type=int)
@click.argument("status", type=click.Choice(CompetitionStatus.ALL))
@with_appcontext
def set_status(competition_id, status):
    """Move a competition to a new lifecycle status"""
    comp = db.session.get(Competition, competition_id)
    if not comp:
        click.echo(f"❌ Competition {competition_id} not found!")
        raise SystemExit(1)

    previous = comp.status
    try:
        comp.transition_to(status)
        db.session.commit()
    except ScoringError as e:
        db.session.rollback()
        click.echo(f"❌ {e}")
        raise SystemExit(1)
    except SQLAlchemyError as e:
        db.session.rollback()
        click.echo(f"❌ Database error updating competition: {str(e)}")
        logger.error(f"Competition status update failed - SQL error: {e}")
        raise SystemExit(1)

    # Cached leaderboards carry the status and provisional flag
    invalidate_model_cache("Score")
    invalidate_model_cache("SeasonStanding")
    click.echo(f"✅ {comp.name}: {previous} -> {status}")


# Database Commands
@cli.group("db-cmd")
def db_cmd():
    """Database commands"""
    pass


@db_cmd.command("init-db")
@with_appcontext
def init_db():
    """Initialize database tables"""
    try:
        db.create_all()
        click.echo("✅ Database tables created successfully!")
    except SQLAlchemyError as e:
        click.echo(f"❌ Error initializing database: {str(e)}")


@db_cmd.command("reset")
@with_appcontext
def reset():
    """DANGER: Drop and recreate all tables"""
    if not click.confirm("This will DELETE ALL DATA. Are you sure?"):
        click.echo("Cancelled.")
        return

    try:
        db.drop_all()
        db.create_all()
        click.echo("✅ Database reset successfully!")
    except SQLAlchemyError as e:
        click.echo(f"❌ Error resetting database: {str(e)}")


@cli.command()
@with_appcontext
def status():
    """Show application status"""
    click.echo("Pick'em League Status")
    click.echo("=" * 40)

    try:
        db.session.execute(text("SELECT 1"))
        click.echo("✅ Database: Connected")
    except SQLAlchemyError as e:
        click.echo(f"❌ Database: Error - {str(e)}")
        return

    click.echo(f"👥 Active Users: {User.query.filter_by(is_active=True).count()}")
    click.echo(f"🏆 Active Leagues: {League.query.filter_by(is_active=True).count()}")

    open_count = Competition.query.filter(
        Competition.status.in_([CompetitionStatus.UPCOMING, CompetitionStatus.ACTIVE])
    ).count()
    pending_count = Competition.query.filter_by(
        status=CompetitionStatus.COMPLETED, scoring_calculated=False
    ).count()
    click.echo(f"📅 Open Competitions: {open_count}")
    if pending_count:
        click.echo(f"⚠️  Completed competitions awaiting scoring: {pending_count}")

    game_count = Game.query.count()
    final_count = Game.query.filter_by(status=GameStatus.FINAL).count()
    click.echo(f"🏈 Games: {final_count}/{game_count} final")

    ungraded = (
        Pick.query.join(Game, Pick.game_id == Game.id)
        .filter(Game.status == GameStatus.FINAL, Pick.is_correct.is_(None))
        .count()
    )
    if ungraded:
        click.echo(f"⚠️  Picks on final games not yet graded: {ungraded}")


if __name__ == "__main__":
    app = create_app()
    with app.app_context():
        cli()
