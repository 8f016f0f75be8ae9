# backend/oem_api/routes/health.py
"""
Health and metrics endpoints.

/api/health             no auth; uptime and up/down per dependency
/api/health/detailed    auth; timed probes, memory and cpu
/api/health/metrics     auth; request timing aggregates (JSON)
/api/health/prometheus  no auth; text exposition format for scrapers
"""

from flask import Blueprint, current_app, jsonify

from ..decorators import require_auth
from ..responses import ok
from ..services import health_service
from ..services.integrations import current_integrations

health_bp = Blueprint("health", __name__, url_prefix="/api/health")


def _status_response(report: dict):
    healthy = report["status"] == health_service.STATUS_OK
    return jsonify({"success": healthy, "data": report}), 200 if healthy else 503


@health_bp.route("", methods=["GET"])
def health():
    return _status_response(health_service.shallow_status(current_app.config["SETTINGS"], current_integrations()))


@health_bp.route("/detailed", methods=["GET"])
@require_auth
def detailed(ctx):
    return _status_response(health_service.detailed_status(current_app.config["SETTINGS"], current_integrations()))


@health_bp.route("/metrics", methods=["GET"])
@require_auth
def metrics(ctx):
    data = health_service.runtime_metrics(
        current_app.config["SETTINGS"],
        current_integrations(),
        current_app.extensions["oem_metrics"],
        current_app.extensions["oem_prometheus"],
    )
    return ok(data)


@health_bp.route("/prometheus", methods=["GET"])
def prometheus():
    body, content_type = current_app.extensions["oem_prometheus"].export()
    return current_app.response_class(body, mimetype=None, content_type=content_type)
