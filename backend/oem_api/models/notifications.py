from __future__ import annotations

import uuid

from ..extensions import db
from ..time_utils import to_utc_z, utcnow


NOTIFICATION_TYPES = (
    "whatsapp",
    "order_confirmation",
    "status_update",
    "compliance_alert",
    "payment_confirmation",
)
NOTIFICATION_STATUSES = ("sent", "failed")


def _new_uuid() -> str:
    return str(uuid.uuid4())


class Notification(db.Model):
    """Append-only log of outbound messages. Rows are never updated."""
    __tablename__ = "notifications"

    id = db.Column(db.String(36), primary_key=True, default=_new_uuid)
    user_id = db.Column(db.String(36), db.ForeignKey("users.id"), nullable=False, index=True)

    type = db.Column(db.String(32), nullable=False, index=True)
    recipient = db.Column(db.String(32), nullable=False)
    message = db.Column(db.Text, nullable=False)
    status = db.Column(db.String(16), nullable=False, index=True)  # sent, failed

    order_id = db.Column(db.String(40), nullable=True)
    compliance_id = db.Column(db.String(36), nullable=True)
    provider_message_id = db.Column(db.String(64), nullable=True)
    error = db.Column(db.Text, nullable=True)

    created_at = db.Column(db.DateTime, nullable=False, default=utcnow, index=True)

    def to_dict(self):
        return {
            "id": self.id,
            "user_id": self.user_id,
            "type": self.type,
            "recipient": self.recipient,
            "message": self.message,
            "status": self.status,
            "order_id": self.order_id,
            "compliance_id": self.compliance_id,
            "provider_message_id": self.provider_message_id,
            "error": self.error,
            "created_at": to_utc_z(self.created_at),
        }
