# backend/oem_api/__init__.py
from __future__ import annotations

import os

from flask import Flask, request
from werkzeug.middleware.proxy_fix import ProxyFix

from .config import Settings, load_settings
from .context import begin_request_context
from .errors import register_error_handlers
from .extensions import db, migrate
from .observability.logger import configure_logging
from .observability.metrics import MetricsAggregator, PrometheusMetrics
from .observability.sentry import init_sentry
from .observers import default_observers, register_observers
from .rate_limit import EXTENSION_KEY as RATE_LIMITER_KEY
from .rate_limit import RateLimiter, default_policies, enforce_general_limit
from .services.integrations import EXTENSION_KEY as INTEGRATIONS_KEY
from .services.integrations import Integrations, build_integrations


MIGRATIONS_DIR = os.path.join(os.path.dirname(os.path.dirname(os.path.abspath(__file__))), "migrations")

SECURITY_HEADERS = {
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "DENY",
    "Referrer-Policy": "no-referrer",
    "Content-Security-Policy": "default-src 'self'; frame-ancestors 'none'",
    "Cross-Origin-Resource-Policy": "same-origin",
}


def create_app(settings: Settings | None = None, *, integrations: Integrations | None = None) -> Flask:
    """
    Application factory.

    `settings` defaults to the process environment (fails fast with
    ConfigError when required values are missing). `integrations` lets tests
    inject provider adapters wired to a mock transport.
    """
    settings = settings or load_settings()

    app = Flask(__name__)
    app.config.from_mapping(settings.flask_config())

    configure_logging(settings.log_level, settings.LOG_DIR if settings.LOG_FILES_ENABLED else None)
    init_sentry(settings)

    # One trusted proxy hop for the client IP used by rate limiting and logs
    app.wsgi_app = ProxyFix(app.wsgi_app, x_for=1, x_proto=1)

    # Initialize extensions
    db.init_app(app)
    migrate.init_app(app, db, directory=MIGRATIONS_DIR)

    # Import models so Alembic can discover metadata reliably
    from . import models  # noqa: F401

    aggregator = MetricsAggregator()
    prometheus = PrometheusMetrics()
    app.extensions["oem_metrics"] = aggregator
    app.extensions["oem_prometheus"] = prometheus
    app.extensions[RATE_LIMITER_KEY] = RateLimiter(default_policies(settings))
    app.extensions[INTEGRATIONS_KEY] = integrations or build_integrations(settings)

    @app.before_request
    def start_request():
        begin_request_context()
        enforce_general_limit()

    register_observers(app, default_observers(aggregator, prometheus))

    @app.after_request
    def add_cors_headers(response):
        origin = request.headers.get("Origin")
        if origin and origin == settings.CORS_ORIGIN:
            response.headers["Access-Control-Allow-Origin"] = origin
            response.headers["Vary"] = "Origin"
            response.headers["Access-Control-Allow-Credentials"] = "true"
            response.headers["Access-Control-Allow-Headers"] = "Authorization, Content-Type, X-Request-ID"
            response.headers["Access-Control-Allow-Methods"] = "GET,POST,PUT,DELETE,PATCH,OPTIONS"
        return response

    @app.after_request
    def add_security_headers(response):
        for header, value in SECURITY_HEADERS.items():
            response.headers.setdefault(header, value)
        if settings.is_production:
            response.headers.setdefault("Strict-Transport-Security", "max-age=31536000; includeSubDomains")
        return response

    # Register blueprints
    from .routes.system import system_bp
    from .routes.auth import auth_bp
    from .routes.orders import orders_bp
    from .routes.compliance import compliance_bp
    from .routes.payments import payments_bp
    from .routes.notify import notify_bp
    from .routes.health import health_bp

    app.register_blueprint(system_bp)
    app.register_blueprint(auth_bp)
    app.register_blueprint(orders_bp)
    app.register_blueprint(compliance_bp)
    app.register_blueprint(payments_bp)
    app.register_blueprint(notify_bp)
    app.register_blueprint(health_bp)

    register_error_handlers(app)

    # Register CLI commands
    from .cli import register_commands
    register_commands(app)

    app.logger.info("%s v%s configured (%s)", app.name, settings.APP_VERSION, settings.APP_ENV)
    return app
