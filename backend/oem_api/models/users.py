from __future__ import annotations

import uuid

from ..extensions import db
from ..time_utils import to_utc_z, utcnow


ROLES = ("admin", "manager", "user")


def _new_uuid() -> str:
    return str(uuid.uuid4())


class User(db.Model):
    """
    Platform user.

    Rows are keyed by the hosted identity provider's subject id so a provider
    token and a self-issued token resolve to the same record. Deactivated users
    are rejected at auth time regardless of token validity.
    """
    __tablename__ = "users"

    id = db.Column(db.String(36), primary_key=True, default=_new_uuid)
    email = db.Column(db.String(255), nullable=False, unique=True, index=True)
    name = db.Column(db.String(255), nullable=True)
    phone = db.Column(db.String(32), nullable=True)
    company = db.Column(db.String(255), nullable=True)

    role = db.Column(db.String(16), nullable=False, default="user")  # admin, manager, user
    is_active = db.Column(db.Boolean, nullable=False, default=True)

    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    def to_dict(self):
        return {
            "id": self.id,
            "email": self.email,
            "name": self.name,
            "phone": self.phone,
            "company": self.company,
            "role": self.role,
            "is_active": self.is_active,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
