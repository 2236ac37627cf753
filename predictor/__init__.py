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
    # We want the leftmost (original client) IP
    if request.headers.get("X-Forwarded-For"):
        return request.headers.get("X-Forwarded-For").split(",")[0].strip()
    # X-Real-IP is set by some proxies (nginx, Traefik)
    if request.headers.get("X-Real-IP"):
        return request.headers.get("X-Real-IP")
    # Fallback to direct connection IP
    return get_remote_address()


def _limiter_storage_uri():
    """Use Redis for shared rate limiting across workers when reachable"""
    redis_url = os.environ.get("REDIS_URL") or os.environ.get("RATELIMIT_STORAGE_URI")
    if not redis_url:
        return "memory://"
    try:
        import redis

        redis.Redis.from_url(redis_url).ping()
        return redis_url
    except redis.exceptions.ConnectionError as e:
        logger.warning(f"Redis not available for rate limiter, using memory storage: {e}")
        return "memory://"


limiter = Limiter(
    key_func=get_real_ip,
    default_limits=["10000 per day", "1000 per hour"],
    storage_uri=_limiter_storage_uri(),
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
    from predictor.routes.api import bp as api_bp

    app.register_blueprint(api_bp, url_prefix="/api")

    # Register error handlers
    register_error_handlers(app)

    # Setup logging
    from predictor.utils.logging_config import setup_logging

    setup_logging(app)

    # Request timing
    from predictor.utils.logging_config import log_request_info
    from predictor.utils.performance import (
        log_request_performance,
        track_request_performance,
    )

    app.before_request(track_request_performance)
    app.before_request(log_request_info)
    app.after_request(log_request_performance)

    # Management commands
    from predictor.cli import register_commands

    register_commands(app)

    # Show configuration summary
    show_config_warnings(app, config_name)

    # Create database tables
    with app.app_context():
        db.create_all()

    # Initialize and start background scheduler
    if not app.config.get("TESTING", False):
        from predictor.services.scheduler_service import scheduler_service

        scheduler_service.init_app(app)

    return app


def show_config_warnings(app, config_name):
    """Log configuration warnings and status"""
    logger.info(f"Gameweek Predictor starting with '{config_name}' configuration")

    if config_name == "production" and app.config.get("DEBUG"):
        logger.warning("DEBUG mode is enabled in production!")

    db_url = app.config.get("SQLALCHEMY_DATABASE_URI", "")
    if "sqlite" in db_url:
        logger.info(
            "Using SQLite database" + (" (in-memory)" if "memory" in db_url else "")
        )
    elif "postgresql" in db_url:
        logger.info("Using PostgreSQL database")
    else:
        logger.info(
            f"Using database: {db_url.split('://')[0] if '://' in db_url else 'Unknown'}"
        )

    isolation = app.config.get("SNAPSHOT_ISOLATION_LEVEL")
    if isolation:
        logger.info(f"Snapshot isolation level: {isolation}")


def register_error_handlers(app):
    """Register global error handlers"""
    from predictor.services.submission_service import SubmissionError

    @app.after_request
    def after_request(response):
        # Add security headers to all responses
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"

        # Add Strict-Transport-Security in production
        if not app.config.get("DEBUG"):
            response.headers["Strict-Transport-Security"] = (
                "max-age=31536000; includeSubDomains"
            )
        return response

    @app.errorhandler(SubmissionError)
    def handle_submission_error(error):
        app.logger.info(
            f"Rejected write: {error.message} - Path: {request.path} - Method: {request.method}"
        )
        return jsonify({"error": error.message}), error.status_code

    @app.errorhandler(404)
    def not_found_error(error):
        return jsonify({"error": "Resource not found"}), 404

    @app.errorhandler(500)
    def internal_error(error):
        db.session.rollback()
        return jsonify({"error": "Internal server error"}), 500

    @app.errorhandler(403)
    def forbidden_error(error):
        return jsonify({"error": "Access forbidden"}), 403

    @app.errorhandler(400)
    def bad_request_error(error):
        app.logger.warning(
            f"400 Bad Request: {str(error)} - Path: {request.path} - Method: {request.method}"
        )
        return jsonify({"error": getattr(error, "description", None) or "Bad request"}), 400

    @app.errorhandler(409)
    def conflict_error(error):
        return jsonify({"error": getattr(error, "description", None) or "Conflict"}), 409

    @app.errorhandler(429)
    def too_many_requests_error(error):
        return jsonify({"error": "Too many requests"}), 429

    @app.errorhandler(503)
    def service_unavailable_error(error):
        return jsonify({"error": "Service unavailable"}), 503


from predictor import models  # noqa: F401, E402 - imported for model registration
