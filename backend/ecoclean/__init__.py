import os
import random

import click
from flask import Flask, jsonify, request

from ecoclean.auth import auth_bp
from ecoclean.config import Config, is_production, validate_config
from ecoclean.errors import register_error_handlers
from ecoclean.extensions import db, cors, login_manager
from ecoclean.jobs.sensor_simulator import RandomSensorFeed, run_sensor_simulation
from ecoclean.segments.segment_bins import bins_bp
from ecoclean.segments.segment_profile import profile_bp
from ecoclean.segments.segment_quiz import quiz_bp
from ecoclean.segments.segment_reports import reports_bp
from ecoclean.segments.segment_trucks import trucks_bp
from ecoclean.services import EXTENSION_KEY, build_services


def create_app(overrides=None, *, store=None, identity=None, rng=None):
    app = Flask(__name__)

    app.config.from_object(Config)
    if overrides:
        app.config.update(overrides)

    env = app.config["ECOCLEAN_ENV"]

    # Production safety checks
    validate_config(app.config)

    # Ensure instance dir exists for SQLite paths
    os.makedirs(app.config["INSTANCE_DIR"], exist_ok=True)

    # CORS configuration
    prefix = app.config["API_PREFIX"]
    cors_origins = (app.config.get("CORS_ORIGINS") or "").strip()
    if is_production(env):
        origins = [o.strip() for o in cors_origins.split(",") if o.strip()]
    else:
        origins = ["*"] if not cors_origins else [o.strip() for o in cors_origins.split(",") if o.strip()]
    cors.init_app(
        app,
        resources={rf"{prefix}/*": {"origins": origins}},
        allow_headers=["Content-Type", "Authorization"],
        methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
    )

    # Init extensions
    db.init_app(app)
    login_manager.init_app(app)

    app.extensions[EXTENSION_KEY] = build_services(app.config, store=store, identity=identity, rng=rng)

    if app.config["LEDGER_BACKEND"] == "sql" and store is None:
        with app.app_context():
            db.create_all()

    register_error_handlers(app)

    @app.before_request
    def _log_request():
        app.logger.info("%s %s", request.method, request.url)

    # Register API routes
    url_prefix = prefix or None
    app.register_blueprint(auth_bp, url_prefix=url_prefix)
    app.register_blueprint(bins_bp, url_prefix=url_prefix)
    app.register_blueprint(reports_bp, url_prefix=url_prefix)
    app.register_blueprint(profile_bp, url_prefix=url_prefix)
    app.register_blueprint(trucks_bp, url_prefix=url_prefix)
    app.register_blueprint(quiz_bp, url_prefix=url_prefix)

    # Health check
    @app.get(f"{prefix}/health")
    def health():
        store_ok = app.extensions[EXTENSION_KEY].store.ping()
        return jsonify({
            "ok": True,
            "service": "ecoclean-backend",
            "env": env,
            "store": "ok" if store_ok else "fail",
            "identityProvider": app.config["IDENTITY_PROVIDER"],
        })

    @app.cli.command("simulate-sensors")
    @click.option("--rounds", default=1, show_default=True, help="Sensor rounds to apply.")
    @click.option("--seed", type=int, default=None, help="Seed for reproducible readings.")
    def simulate_sensors(rounds, seed):
        """Apply simulated IoT readings to every bin."""
        feed = RandomSensorFeed(random.Random(seed))
        registry = app.extensions[EXTENSION_KEY].bins
        for n in range(rounds):
            summary = run_sensor_simulation(registry, feed)
            click.echo(f"round {n + 1}: {summary}")

    return app
