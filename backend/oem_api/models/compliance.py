from __future__ import annotations

import uuid
from datetime import datetime

from ..extensions import db
from ..time_utils import to_utc_z, utcnow


COMPLIANCE_TYPES = ("certification", "audit", "report", "alert")
COMPLIANCE_PRIORITIES = ("low", "medium", "high", "critical")
COMPLIANCE_STATUSES = ("pending", "in_progress", "completed", "overdue")

# Priorities that trigger an outbound alert on creation
ALERT_PRIORITIES = ("high", "critical")


def _new_uuid() -> str:
    return str(uuid.uuid4())


class ComplianceItem(db.Model):
    """
    Certification, audit, report or alert with a due date.

    "Overdue" is derived at read time (due_date in the past and status not
    completed) and is never written back.
    """
    __tablename__ = "compliance_items"

    id = db.Column(db.String(36), primary_key=True, default=_new_uuid)
    user_id = db.Column(db.String(36), db.ForeignKey("users.id"), nullable=False, index=True)

    title = db.Column(db.String(255), nullable=False)
    type = db.Column(db.String(32), nullable=False, index=True)
    description = db.Column(db.Text, nullable=True)
    due_date = db.Column(db.DateTime, nullable=False, index=True)
    priority = db.Column(db.String(16), nullable=False, default="medium")
    status = db.Column(db.String(32), nullable=False, default="pending", index=True)
    documents = db.Column(db.JSON, nullable=False, default=list)

    created_at = db.Column(db.DateTime, nullable=False, default=utcnow, index=True)
    updated_at = db.Column(db.DateTime, nullable=False, default=utcnow)

    def is_overdue(self, now: datetime | None = None) -> bool:
        if self.status == "completed" or self.due_date is None:
            return False
        return self.due_date < (now or utcnow())

    def to_dict(self, now: datetime | None = None):
        return {
            "id": self.id,
            "user_id": self.user_id,
            "title": self.title,
            "type": self.type,
            "description": self.description,
            "due_date": to_utc_z(self.due_date),
            "priority": self.priority,
            "status": self.status,
            "documents": list(self.documents or []),
            "is_overdue": self.is_overdue(now),
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
