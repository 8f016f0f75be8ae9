# Overview: Request authentication and role decorators for API routes.

"""
Auth decorators.

Each decorator resolves the caller and hands the view an explicit
RequestContext as its first positional argument:

    @orders_bp.route("", methods=["GET"])
    @require_auth
    def list_orders(ctx):
        ...

require_auth            self-issued JWT (HS256, JWT_SECRET)
require_provider_auth   hosted identity provider token
optional_auth           never rejects; ctx.identity is None when the token
                        is missing or unusable (payment webhooks)
require_role(*roles)    stacked under one of the above; 403 otherwise

Missing credentials, unknown users and deactivated accounts are all 401.
Expired and malformed self-issued tokens raise PyJWT errors that the error
translator turns into "Token expired" and "Invalid token".
"""

from functools import wraps

import jwt
from flask import current_app, request

from .context import Identity, RequestContext, bind_identity, current_context
from .errors import AuthenticationError, PermissionDeniedError
from .services import identity_service
from .services.integrations import current_integrations


def _bearer_token() -> str | None:
    auth_header = request.headers.get("Authorization")
    if not auth_header or not auth_header.startswith("Bearer "):
        return None
    token = auth_header.split(" ", 1)[1].strip()
    return token or None


def _identity_for(user) -> Identity:
    return Identity(id=user.id, email=user.email, role=user.role)


def authenticate_jwt(token: str) -> Identity:
    settings = current_app.config["SETTINGS"]
    claims = identity_service.decode_token(token, settings.JWT_SECRET)
    user = identity_service.load_active_user(claims.get("sub"))
    return _identity_for(user)


def authenticate_provider_token(token: str) -> Identity:
    provider_user = current_integrations().identity.verify_token(token)
    if provider_user is None:
        raise AuthenticationError("Invalid token")
    user = identity_service.load_active_user(provider_user.id)
    return _identity_for(user)


def _authenticated_view(f, authenticate):
    @wraps(f)
    def decorated_function(*args, **kwargs):
        token = _bearer_token()
        if not token:
            raise AuthenticationError("Access token is required")
        ctx = bind_identity(current_context(), authenticate(token))
        return f(ctx, *args, **kwargs)

    return decorated_function


def require_auth(f):
    return _authenticated_view(f, authenticate_jwt)


def require_provider_auth(f):
    return _authenticated_view(f, authenticate_provider_token)


def optional_auth(f):
    @wraps(f)
    def decorated_function(*args, **kwargs):
        ctx = current_context()
        token = _bearer_token()
        if token:
            try:
                ctx = bind_identity(ctx, authenticate_jwt(token))
            except (jwt.InvalidTokenError, AuthenticationError):
                current_app.logger.debug("optional auth: continuing unauthenticated")
        return f(ctx, *args, **kwargs)

    return decorated_function


def require_role(*roles: str):
    """Reject with 403 unless the authenticated caller has one of `roles`."""
    allowed = frozenset(roles)

    def decorator(f):
        @wraps(f)
        def decorated_function(ctx: RequestContext, *args, **kwargs):
            if ctx.identity is None:
                raise AuthenticationError("Authentication required")
            if ctx.identity.role not in allowed:
                raise PermissionDeniedError("Insufficient permissions")
            return f(ctx, *args, **kwargs)

        return decorated_function

    return decorator
