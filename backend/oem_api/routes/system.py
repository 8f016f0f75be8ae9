# backend/oem_api/routes/system.py
"""
Service banner and API directory.
"""

from flask import Blueprint, current_app

from ..responses import ok
from ..time_utils import to_utc_z, utcnow

system_bp = Blueprint("system", __name__)

SERVICE_NAME = "Textile OEM Platform API"


@system_bp.route("/", methods=["GET"])
def root():
    settings = current_app.config["SETTINGS"]
    return ok({
        "name": SERVICE_NAME,
        "version": settings.APP_VERSION,
        "environment": settings.APP_ENV,
        "timestamp": to_utc_z(utcnow()),
    }, f"{SERVICE_NAME} is running")


@system_bp.route("/api", methods=["GET"])
def api_index():
    settings = current_app.config["SETTINGS"]
    return ok({
        "name": SERVICE_NAME,
        "version": settings.APP_VERSION,
        "endpoints": {
            "auth": "/api/auth",
            "orders": "/api/orders",
            "compliance": "/api/compliance",
            "payments": "/api/payments",
            "notifications": "/api/notify",
            "health": "/api/health",
        },
        "authentication": {
            "type": "Bearer token",
            "header": "Authorization: Bearer <token>",
            "exchange": "POST /api/auth/token with a hosted identity token",
        },
    })
