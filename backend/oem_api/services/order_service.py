# Overview: Service-layer operations for orders; encapsulates business logic and database work.

"""
Order service.

Orders are scoped to their owner. Status values are not checked as legal
transitions; any value in ORDER_STATUSES is accepted on update. Deletion is
only allowed while an order is still pending.
"""

from __future__ import annotations

import logging

from ..errors import BusinessRuleError
from ..extensions import db
from ..models import Order, User
from ..models.orders import ORDER_STATUSES
from ..schemas import OrderCreate, OrderPatch
from ..time_utils import is_current_month, utcnow
from ..validation import PageParams, apply_patch
from . import notification_service, records
from .whatsapp_client import WhatsAppClient


logger = logging.getLogger(__name__)

NOT_FOUND = "Order not found"


def create_order(user_id: str, data: OrderCreate) -> Order:
    now = utcnow()
    order = Order(
        id=records.generate_reference("ORD"),
        user_id=user_id,
        client=data.client,
        product=data.product,
        quantity=data.quantity,
        specifications=data.specifications or {},
        delivery_date=data.delivery_date,
        notes=data.notes,
        status="pending",
        progress=0,
        created_at=now,
        updated_at=now,
    )
    records.save(order)
    logger.info("Order created: %s by user: %s", order.id, user_id)
    return order


def list_orders(user_id: str, params: PageParams, status: str | None = None) -> tuple[list[Order], int]:
    query = records.apply_filters(records.owned_query(Order, user_id), Order, {"status": status})
    return records.paginate(query, Order, params)


def get_order(user_id: str, order_id: str) -> Order:
    return records.find_owned(Order, order_id, user_id, NOT_FOUND)


def update_order(user_id: str, order_id: str, patch: OrderPatch, whatsapp: WhatsAppClient | None = None) -> Order:
    order = get_order(user_id, order_id)
    previous_status = order.status

    changed = apply_patch(patch, order)
    order.updated_at = utcnow()
    records.save(order)
    logger.info("Order updated: %s by user: %s (%s)", order.id, user_id, ", ".join(sorted(changed)) or "no changes")

    if whatsapp is not None and order.status != previous_status:
        owner = db.session.get(User, user_id)
        notification_service.notify_best_effort(
            whatsapp, owner, "status_update",
            notification_service.order_status_message(order),
            summary=f"Status update for {order.id}",
            order_id=order.id,
        )
    return order


def delete_order(user_id: str, order_id: str) -> None:
    order = get_order(user_id, order_id)
    if order.status != "pending":
        raise BusinessRuleError("Only pending orders can be deleted")
    records.delete(order)
    logger.info("Order deleted: %s by user: %s", order_id, user_id)


def order_stats(user_id: str) -> dict:
    rows = records.owned_query(Order, user_id).all()
    now = utcnow()
    stats = {"total": len(rows)}
    stats.update(records.count_by(rows, "status", ORDER_STATUSES))
    stats["total_quantity"] = sum(o.quantity or 0 for o in rows)
    stats["this_month"] = sum(1 for o in rows if is_current_month(o.created_at, now))
    return stats
