# Overview: Service-layer operations for compliance items; encapsulates business logic and database work.

from __future__ import annotations

import logging
from datetime import timedelta

from ..extensions import db
from ..models import ComplianceItem, User
from ..models.compliance import (
    ALERT_PRIORITIES,
    COMPLIANCE_PRIORITIES,
    COMPLIANCE_TYPES,
)
from ..schemas import ComplianceCreate, CompliancePatch
from ..time_utils import is_current_month, utcnow
from ..validation import PageParams, apply_patch
from . import notification_service, records
from .whatsapp_client import WhatsAppClient


logger = logging.getLogger(__name__)

NOT_FOUND = "Compliance item not found"
DEFAULT_UPCOMING_DAYS = 30

# explicit null resets these to their empty value instead of NULL
_NULL_DEFAULTS = {"documents": []}


def create_item(user_id: str, data: ComplianceCreate, whatsapp: WhatsAppClient | None = None) -> ComplianceItem:
    """
    Create a compliance item.

    High and critical items trigger a best-effort alert to the owner; an
    alert failure never fails the creation.
    """
    now = utcnow()
    item = ComplianceItem(
        user_id=user_id,
        title=data.title,
        type=data.type,
        description=data.description,
        due_date=data.due_date,
        priority=data.priority,
        status=data.status,
        documents=list(data.documents),
        created_at=now,
        updated_at=now,
    )
    records.save(item)
    logger.info("Compliance item created: %s by user: %s", item.id, user_id)

    if whatsapp is not None and item.priority in ALERT_PRIORITIES:
        notification_service.notify_best_effort(
            whatsapp, db.session.get(User, user_id), "compliance_alert",
            notification_service.compliance_alert_message(item),
            summary=f"Compliance alert for {item.title}",
            compliance_id=item.id,
        )
    return item


def list_items(
    user_id: str,
    params: PageParams,
    type: str | None = None,
    status: str | None = None,
    priority: str | None = None,
) -> tuple[list[ComplianceItem], int]:
    query = records.owned_query(ComplianceItem, user_id)
    query = records.apply_filters(query, ComplianceItem, {"type": type, "status": status, "priority": priority})
    return records.paginate(query, ComplianceItem, params)


def get_item(user_id: str, item_id: str) -> ComplianceItem:
    return records.find_owned(ComplianceItem, item_id, user_id, NOT_FOUND)


def update_item(user_id: str, item_id: str, patch: CompliancePatch) -> ComplianceItem:
    item = get_item(user_id, item_id)
    apply_patch(patch, item, _NULL_DEFAULTS)
    item.updated_at = utcnow()
    records.save(item)
    logger.info("Compliance item updated: %s by user: %s", item.id, user_id)
    return item


def delete_item(user_id: str, item_id: str) -> None:
    item = get_item(user_id, item_id)
    records.delete(item)
    logger.info("Compliance item deleted: %s by user: %s", item_id, user_id)


def upcoming(user_id: str, days: int = DEFAULT_UPCOMING_DAYS) -> list[ComplianceItem]:
    """Open items due within `days` from now (overdue ones included), soonest first."""
    horizon = utcnow() + timedelta(days=days)
    return (
        records.owned_query(ComplianceItem, user_id)
        .filter(ComplianceItem.status != "completed")
        .filter(ComplianceItem.due_date <= horizon)
        .order_by(ComplianceItem.due_date.asc())
        .all()
    )


def compliance_stats(user_id: str) -> dict:
    rows = records.owned_query(ComplianceItem, user_id).all()
    now = utcnow()
    by_status = records.count_by(rows, "status", ("pending", "in_progress", "completed"))
    return {
        "total": len(rows),
        "pending": by_status["pending"],
        "in_progress": by_status["in_progress"],
        "completed": by_status["completed"],
        "overdue": sum(1 for item in rows if item.is_overdue(now)),
        "by_type": records.count_by(rows, "type", COMPLIANCE_TYPES),
        "by_priority": records.count_by(rows, "priority", COMPLIANCE_PRIORITIES),
        "this_month": sum(1 for item in rows if is_current_month(item.created_at, now)),
    }
