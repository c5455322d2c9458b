import logging
import os

from flask import Flask, jsonify, request
from flask_caching import Cache
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address
from flask_migrate import Migrate
from flask_sqlalchemy import SQLAlchemy

from config import config

logger = logging.getLogger(__name__)

db = SQLAlchemy()
cache = Cache()
migrate = Migrate()


def get_real_ip():
    """
    Get the real client IP address, accounting for reverse proxies.
    Checks X-Forwarded-For, X-Real-IP, and falls back to remote_addr.
    """
    # X-Forwarded-For: client, proxy1, proxy2, ...
    if request.headers.get("X-Forwarded-For"):
        return request.headers.get("X-Forwarded-For").split(",")[0].strip()
    if request.headers.get("X-Real-IP"):
        return request.headers.get("X-Real-IP")
    return get_remote_address()


# Use Redis in production for shared rate limiting across multiple workers
limiter_storage_uri = os.environ.get("RATELIMIT_STORAGE_URI", "memory://")

limiter = Limiter(
    key_func=get_real_ip,
    default_limits=["10000 per day", "1000 per hour"],
    storage_uri=limiter_storage_uri,
)


def create_app(config_name=None):
    app = Flask(__name__)

    # Determine configuration
    if config_name is None:
        config_name = os.environ.get("FLASK_CONFIG", "default")

    app.config.from_object(config[config_name]())

    # Initialize extensions
    db.init_app(app)
    cache.init_app(app)
    migrate.init_app(app, db)
    limiter.init_app(app)

    # Import and register blueprints
    from app.routes.api import bp as api_bp

    app.register_blueprint(api_bp, url_prefix="/api")

    # Register error handlers
    register_error_handlers(app)

    # Setup logging
    from app.utils.logging_config import setup_logging

    setup_logging(app)

    # Show configuration warnings
    if not app.config.get("TESTING", False):
        show_config_warnings(app, config_name)

    # Create database tables
    with app.app_context():
        db.create_all()

    return app


def show_config_warnings(app, config_name):
    """Display configuration warnings and status"""
    import warnings

    print(f"Pick'em League starting with '{config_name}' configuration")

    if config_name == "production" and app.config.get("DEBUG"):
        warnings.warn("DEBUG mode is enabled in production!", UserWarning)

    db_url = app.config.get("SQLALCHEMY_DATABASE_URI", "")
    if "sqlite" in db_url:
        print("Using SQLite database (development mode)")
    elif "postgresql" in db_url:
        # Extract host and database name for display (hide password)
        import re

        match = re.search(r"postgresql.*?://.*?@([^:/]+):?(\d+)?/([^?]+)", db_url)
        if match:
            host, port, dbname = match.groups()
            print("Using PostgreSQL database")
            print(f"   Host: {host}:{port or '5432'}")
            print(f"   Database: {dbname}")
        else:
            print("Using PostgreSQL database")
    else:
        print(
            f"Using database: {db_url.split('://')[0] if '://' in db_url else 'Unknown'}"
        )

    print(f"Cache backend: {app.config.get('CACHE_TYPE')}")


def register_error_handlers(app):
    """Register global error handlers"""
    from app.services.errors import (
        CalculationInProgressError,
        DuplicatePickError,
        InconsistentStateError,
        InvalidTransitionError,
        NotFoundError,
        PicksLockedError,
        StorageFailureError,
        ValidationError,
    )

    @app.after_request
    def after_request(response):
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"

        if not app.config.get("DEBUG"):
            response.headers["Strict-Transport-Security"] = (
                "max-age=31536000; includeSubDomains"
            )

        return response

    @app.errorhandler(NotFoundError)
    def handle_not_found(error):
        return jsonify({"error": str(error)}), 404

    @app.errorhandler(InvalidTransitionError)
    def handle_invalid_transition(error):
        return jsonify({"error": str(error)}), 400

    @app.errorhandler(ValidationError)
    def handle_validation_error(error):
        return jsonify({"error": str(error)}), 400

    @app.errorhandler(PicksLockedError)
    def handle_picks_locked(error):
        return jsonify({"error": str(error)}), 403

    @app.errorhandler(DuplicatePickError)
    def handle_duplicate_pick(error):
        return jsonify({"error": str(error)}), 409

    @app.errorhandler(InconsistentStateError)
    def handle_inconsistent_state(error):
        app.logger.error(f"Integrity violation: {error} - Path: {request.path}")
        return jsonify({"error": str(error)}), 409

    @app.errorhandler(CalculationInProgressError)
    def handle_calculation_in_progress(error):
        app.logger.warning(f"{error} - Path: {request.path}")
        return jsonify({"error": str(error)}), 409

    @app.errorhandler(StorageFailureError)
    def handle_storage_failure(error):
        app.logger.error(f"Storage failure: {error} - Path: {request.path}")
        return jsonify({"error": str(error)}), 500

    @app.errorhandler(404)
    def not_found_error(error):
        return jsonify({"error": "Resource not found"}), 404

    @app.errorhandler(405)
    def method_not_allowed_error(error):
        return jsonify({"error": "Method not allowed"}), 405

    @app.errorhandler(500)
    def internal_error(error):
        db.session.rollback()
        return jsonify({"error": "Internal server error"}), 500

    @app.errorhandler(400)
    def bad_request_error(error):
        app.logger.warning(
            f"400 Bad Request: {str(error)} - Path: {request.path} - Method: {request.method}"
        )
        return jsonify({"error": "Bad request"}), 400

    @app.errorhandler(429)
    def too_many_requests_error(error):
        return jsonify({"error": "Too many requests"}), 429


from app import models  # noqa: F401, E402 - imported for model registration
