# Overview: Service-layer operations for identities: tokens, user lookup, provisioning.

"""
Identity service.

Two credential forms resolve to the same User row:
- self-issued HS256 tokens (sub, email, role, iat, exp) signed with JWT_SECRET
- hosted-identity tokens, verified by the provider, whose subject id is the
  User primary key

Either way the user must exist and be active. Token errors from PyJWT are
left to propagate so the error translator can tell "Token expired" apart
from "Invalid token".
"""

from __future__ import annotations

from datetime import timedelta, timezone

import jwt

from ..errors import AuthenticationError, ConflictError, NotFoundError, ValidationError
from ..extensions import db
from ..models import User
from ..models.users import ROLES
from ..time_utils import utcnow


JWT_ALGORITHM = "HS256"


# =============================================================================
# Self-issued tokens
# =============================================================================

def issue_token(user: User, secret: str, expires_in: timedelta) -> str:
    now = utcnow().replace(tzinfo=timezone.utc)
    payload = {
        "sub": user.id,
        "email": user.email,
        "role": user.role,
        "iat": now,
        "exp": now + expires_in,
    }
    return jwt.encode(payload, secret, algorithm=JWT_ALGORITHM)


def decode_token(token: str, secret: str) -> dict:
    """
    Verify signature and expiry.

    Raises jwt.ExpiredSignatureError or jwt.InvalidTokenError.
    """
    claims = jwt.decode(token, secret, algorithms=[JWT_ALGORITHM], options={"require": ["sub", "exp"]})
    return claims


# =============================================================================
# User lookup
# =============================================================================

def load_active_user(user_id: str | None) -> User:
    user = db.session.get(User, user_id) if user_id else None
    if user is None:
        raise AuthenticationError("User not found")
    if not user.is_active:
        raise AuthenticationError("Account is deactivated")
    return user


def find_active_user(user_id: str | None) -> User | None:
    """Like load_active_user but returns None instead of raising."""
    user = db.session.get(User, user_id) if user_id else None
    if user is None or not user.is_active:
        return None
    return user


# =============================================================================
# Provisioning (CLI)
# =============================================================================

def create_user(
    email: str,
    role: str = "user",
    name: str | None = None,
    phone: str | None = None,
    company: str | None = None,
    user_id: str | None = None,
) -> User:
    email = (email or "").strip().lower()
    if not email or "@" not in email:
        raise ValidationError("A valid email is required")
    if role not in ROLES:
        raise ValidationError(f"role must be one of: {', '.join(ROLES)}")

    if db.session.query(User).filter_by(email=email).first():
        raise ConflictError("Resource already exists")

    user = User(email=email, role=role, name=name, phone=phone, company=company)
    if user_id:
        if db.session.get(User, user_id):
            raise ConflictError("Resource already exists")
        user.id = user_id
    db.session.add(user)
    db.session.commit()
    return user


def get_user_by_email(email: str) -> User:
    user = db.session.query(User).filter_by(email=(email or "").strip().lower()).first()
    if user is None:
        raise NotFoundError("User not found")
    return user


def set_user_active(email: str, active: bool) -> User:
    user = get_user_by_email(email)
    user.is_active = active
    db.session.commit()
    return user


def list_users() -> list[User]:
    return db.session.query(User).order_by(User.created_at.asc()).all()
