# -*- coding: utf-8 -*-
import logging

from flask import Flask, jsonify

from .cache import make_redis
from .config import Config, ensure_instance
from .errors import register_error_handlers
from .extensions import db, migrate, login_manager

# blueprints
from .auth import auth_bp
from .modules.shipments import bp as shipments_bp
from .modules.payroll import bp as payroll_bp
from .modules.adjustments import bp as adjustments_bp
from .modules.payments import bp as payments_bp
from .modules.rates import bp as rates_bp
from .modules.users import bp as users_bp
from .modules.vehicles import bp as vehicles_bp
from .modules.logs import bp as logs_bp
from .modules.kpi import bp as kpi_bp

_DEFAULT = object()


def create_app(config_overrides=None, redis_client=_DEFAULT):
    app = Flask(__name__, instance_relative_config=True)
    app.config.from_object(Config)
    if config_overrides:
        app.config.update(config_overrides)
    ensure_instance(app)

    logging.basicConfig(
        level=app.config["LOG_LEVEL"],
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    db.init_app(app)
    migrate.init_app(app, db)
    login_manager.init_app(app)

    # registers the bearer request_loader
    from . import security  # noqa: F401

    app.extensions["redis"] = make_redis(app.config) if redis_client is _DEFAULT else redis_client

    register_error_handlers(app)

    # --- blueprints ---
    app.register_blueprint(auth_bp)
    app.register_blueprint(shipments_bp)
    app.register_blueprint(payroll_bp)
    app.register_blueprint(adjustments_bp)
    app.register_blueprint(payments_bp)
    app.register_blueprint(rates_bp)
    app.register_blueprint(users_bp)
    app.register_blueprint(vehicles_bp)
    app.register_blueprint(logs_bp)
    app.register_blueprint(kpi_bp)

    @app.get("/api/health")
    def health():
        return jsonify({"status": "ok"})

    return app
