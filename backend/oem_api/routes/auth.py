# Overview: Flask API routes for auth operations; parses input and returns JSON responses.

# backend/oem_api/routes/auth.py
"""
Authentication API routes

Exchanges a hosted identity provider token for a self-issued API token and
reports who a token belongs to.

SECURITY FEATURES:
- token exchange carries the auth rate-limit class (5 attempts / 15 minutes per IP)
- deactivated accounts are rejected at exchange time and on every request
- attempts are logged as AUTH_SUCCESS / AUTH_FAILURE security events
"""

from flask import Blueprint, current_app

from ..decorators import require_auth, require_provider_auth
from ..extensions import db
from ..models import User
from ..observability.logger import audit_log
from ..rate_limit import AUTH, rate_limited
from ..responses import ok
from ..services import identity_service

auth_bp = Blueprint("auth", __name__, url_prefix="/api/auth")


@auth_bp.route("/token", methods=["POST"])
@rate_limited(AUTH)
@require_provider_auth
def exchange_token(ctx):
    """Trade a hosted-identity bearer token for a self-issued one."""
    settings = current_app.config["SETTINGS"]
    user = db.session.get(User, ctx.user_id)
    token = identity_service.issue_token(user, settings.JWT_SECRET, settings.jwt_expires_delta)
    audit_log("TOKEN_ISSUED", user.id, ip=ctx.ip)
    return ok({
        "token": token,
        "token_type": "Bearer",
        "expires_in": int(settings.jwt_expires_delta.total_seconds()),
        "user": user.to_dict(),
    })


@auth_bp.route("/me", methods=["GET"])
@require_auth
def me(ctx):
    user = db.session.get(User, ctx.user_id)
    return ok({"user": user.to_dict()})
