"""
infosheet/__init__.py

Flask application factory for InfoSheet, the parental emergency-info sheet service.

- Parents register, log in and manage one emergency profile about their child.
- Each profile gets a random short code; /qr/<code> shows the sheet publicly
  and the dashboard offers the matching QR code for printing.
- SQLite is used for dev; any SQLAlchemy database works through DATABASE_URL.
"""

from __future__ import annotations

import logging

import click
from flask import Flask, redirect, render_template, url_for
from flask_login import current_user

from .extensions import csrf, db, login_manager, migrate
from .models import User

# Blueprint imports kept inside create_app() to reduce import side effects.


def _configure_logging(app: Flask) -> None:
    """Set the app logger level from LOG_LEVEL (Flask installs its own stderr handler)."""
    level_name = str(app.config.get("LOG_LEVEL", "INFO")).upper()
    level = logging.getLevelName(level_name)
    if not isinstance(level, int):
        level = logging.INFO
    app.logger.setLevel(level)


def _register_error_handlers(app: Flask) -> None:
    @app.errorhandler(404)
    def _not_found(_error):
        return render_template("errors/404.html"), 404

    @app.errorhandler(500)
    def _server_error(error):
        # The failing request may have left the session mid-transaction.
        db.session.rollback()
        app.logger.error("Unhandled error: %r", getattr(error, "original_exception", error))
        return render_template("errors/500.html"), 500


def create_app(config_object: str = "config.Config") -> Flask:
    """Create and configure the Flask application."""
    app = Flask(__name__)
    app.config.from_object(config_object)

    _configure_logging(app)

    # Extensions
    db.init_app(app)
    migrate.init_app(app, db)
    csrf.init_app(app)

    login_manager.init_app(app)
    login_manager.login_view = "auth.login"
    login_manager.login_message = "Please log in to see this page."
    login_manager.login_message_category = "info"

    @login_manager.user_loader
    def load_user(user_id: str) -> User | None:
        """Load user for Flask-Login."""
        try:
            return db.session.get(User, int(user_id))
        except (TypeError, ValueError):
            return None

    _register_error_handlers(app)

    # ----------------------------------------------------------------------
    # Blueprints
    # ----------------------------------------------------------------------
    from .blueprints.auth import auth_bp
    from .blueprints.profile import profile_bp
    from .blueprints.public import public_bp

    app.register_blueprint(auth_bp)
    app.register_blueprint(profile_bp)
    app.register_blueprint(public_bp)

    @app.context_processor
    def inject_globals():
        return {"app_name": app.config.get("APP_NAME", "InfoSheet")}

    # ----------------------------------------------------------------------
    # CLI
    # ----------------------------------------------------------------------
    @app.cli.command("init-db")
    def init_db_command():
        """Create all tables (development; use `flask db upgrade` with migrations)."""
        db.create_all()
        click.echo("Database tables created.")

    @app.cli.command("backfill-short-codes")
    def backfill_short_codes_command():
        """Allocate short codes for profiles that have none."""
        from .shortcodes import backfill_short_codes

        created = backfill_short_codes()
        click.echo(f"Allocated {created} short code(s).")

    # ----------------------------------------------------------------------
    # Home
    # ----------------------------------------------------------------------
    @app.route("/")
    def index():
        """Home: redirect to dashboard or login."""
        if current_user.is_authenticated:
            return redirect(url_for("profile.dashboard"))
        return redirect(url_for("auth.login"))

    app.logger.debug("InfoSheet app created with %s", config_object)
    return app
