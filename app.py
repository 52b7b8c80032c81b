import logging
import re

import click
from flask import Flask, jsonify
from flask_migrate import Migrate

from config import Config
from models import db
from reservations.errors import ReservationError, Unavailable
from routes import health_bp, auth_bp, admin_bp, booking_bp, catalog_bp
from security.csrf import csrf_protect
from utils.auth_context import load_current_user
from utils.seed import seed_roles


class RedactTokenFilter(logging.Filter):
    """Masks cancel tokens that show up in logged URLs (e.g. access logs)."""
    _pattern = re.compile(r"(token=)[^&\s\"']+", re.IGNORECASE)

    def filter(self, record):
        msg = record.getMessage()
        redacted = self._pattern.sub(r"\1[REDACTED]", msg)
        if redacted != msg:
            record.msg = redacted
            record.args = ()
        return True


def _configure_logging(app):
    logging.basicConfig(
        level=app.config.get("LOG_LEVEL", "INFO"),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    for handler in logging.getLogger().handlers + app.logger.handlers:
        if not any(isinstance(f, RedactTokenFilter) for f in handler.filters):
            handler.addFilter(RedactTokenFilter())


def create_app(config_class=Config):
    app = Flask(__name__)
    app.config.from_object(config_class)
    _configure_logging(app)

    # Register routes
    app.register_blueprint(health_bp)
    app.register_blueprint(auth_bp)
    app.register_blueprint(admin_bp)
    app.register_blueprint(booking_bp)
    app.register_blueprint(catalog_bp)

    # Database init
    db.init_app(app)

    # Migrations
    Migrate(app, db)

    if app.config.get("CREATE_SCHEMA_ON_STARTUP"):
        with app.app_context():
            db.create_all()

    # Seed default roles at startup (safe & idempotent)
    with app.app_context():
        seed_roles()

    @app.before_request
    def _load_user():
        load_current_user()

    # runs after _load_user so it knows whether the caller is an admin
    app.before_request(csrf_protect)

    @app.errorhandler(ReservationError)
    def _reservation_error(exc):
        resp = jsonify(exc.to_dict())
        resp.status_code = exc.status_code
        if isinstance(exc, Unavailable):
            resp.headers["Retry-After"] = str(exc.retry_after_seconds)
        return resp

    @app.after_request
    def add_security_headers(resp):
        resp.headers["X-Content-Type-Options"] = "nosniff"
        resp.headers["X-Frame-Options"] = "DENY"
        resp.headers["Referrer-Policy"] = "no-referrer"
        resp.headers["Permissions-Policy"] = "geolocation=(), microphone=(), camera=()"
        resp.headers["Content-Security-Policy"] = "default-src 'none'; frame-ancestors 'none';"
        # booking views carry customer data
        resp.headers["Cache-Control"] = "no-store"
        return resp

    register_cli(app)

    return app

#-------------------------
from models.user import User, Role
from reservations.generator import generate_rolling_horizon
from security.password import hash_password
from utils.audit import log_event
from utils.seed import seed_catalog

def register_cli(app):
    @app.cli.command("create-admin")
    @click.argument("email")
    @click.option("--password", prompt=True, hide_input=True, confirmation_prompt=True)
    @click.option("--role", type=click.Choice(["ADMIN", "STAFF"]), default="ADMIN", show_default=True)
    def create_admin(email, password, role):
        """Create (or promote) a back-office account."""
        email = email.strip().lower()
        user = User.query.filter_by(email=email).first()
        if not user:
            try:
                user = User(email=email, password_hash=hash_password(password))
            except ValueError as exc:
                raise click.BadParameter(str(exc), param_hint="--password")
            db.session.add(user)

        role_row = Role.query.filter_by(name=role).first()
        if not role_row:
            role_row = Role(name=role)
            db.session.add(role_row)

        if role_row not in user.roles:
            user.roles.append(role_row)
        db.session.commit()

        click.echo(f"{user.email} has role {role}")

    @app.cli.command("generate-timeslots")
    @click.option("--days", type=int, default=None, help="Horizon length (default SLOT_HORIZON_DAYS).")
    @click.option("--staff-id", type=int, default=None, help="Only this staff member.")
    def generate_timeslots_cmd(days, staff_id):
        """Populate the rolling booking horizon. Safe to re-run."""
        result = generate_rolling_horizon(days=days, staff_id=staff_id)
        log_event("TIMESLOT_GENERATE", entity="timeslot", metadata=result.to_dict())
        click.echo(
            f"created={result.created} skipped={result.skipped} failed_days={len(result.failed_days)}"
        )

    @app.cli.command("seed-catalog")
    def seed_catalog_cmd():
        """Insert the default services and technicians."""
        services, staff = seed_catalog()
        click.echo(f"added {services} services, {staff} staff")

#-------------------------




if __name__ == "__main__":
    app = create_app()
    # Run locally
    app.run(host="127.0.0.1", port=5002)
