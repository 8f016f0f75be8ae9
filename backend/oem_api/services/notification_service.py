# Overview: Service-layer operations for notifications; outbound WhatsApp sends and their log.

"""
Notification service.

Every outbound attempt is appended to the notifications table as `sent` or
`failed`; rows are never updated afterwards.

Two calling modes:
- deliver(): used by the /api/notify routes. A provider failure is recorded
  and then re-raised so the client sees the error.
- notify_best_effort(): used as a side effect of another mutation (order
  status change, high-priority compliance item, captured payment). It only
  fires when the owner has a phone number on file and never raises: the
  primary mutation has already succeeded.
"""

from __future__ import annotations

import logging

from sqlalchemy.exc import SQLAlchemyError

from ..extensions import db
from ..models import ComplianceItem, Notification, Order, Payment, User
from ..models.notifications import NOTIFICATION_STATUSES, NOTIFICATION_TYPES
from ..time_utils import is_current_month, utcnow
from ..validation import PageParams
from . import records
from .whatsapp_client import MessagingError, SentMessage, WhatsAppClient


logger = logging.getLogger(__name__)


# =============================================================================
# Message templates
# =============================================================================

def order_confirmation_message(order: Order) -> str:
    return (
        "*Order Confirmed!*\n\n"
        f"Order ID: {order.id}\n"
        f"Client: {order.client}\n"
        f"Product: {order.product}\n"
        f"Quantity: {order.quantity}\n"
        f"Status: {order.status}\n\n"
        "We'll keep you updated on your order progress. Thank you for choosing TextileOEM!"
    )


def order_status_message(order: Order) -> str:
    if order.status == "completed":
        closing = "Your order has been completed and is ready for delivery!"
    else:
        closing = "We'll continue to keep you updated."
    return (
        "*Order Status Update*\n\n"
        f"Order ID: {order.id}\n"
        f"New Status: {order.status}\n"
        f"Progress: {order.progress}%\n\n"
        f"{closing}"
    )


def compliance_alert_message(item: ComplianceItem) -> str:
    due = item.due_date.strftime("%Y-%m-%d") if item.due_date else "n/a"
    return (
        "*Compliance Alert*\n\n"
        f"{item.title}\n"
        f"Due Date: {due}\n"
        f"Priority: {item.priority}\n\n"
        "Please review and take necessary action. Contact us if you need assistance."
    )


def payment_confirmation_message(payment: Payment) -> str:
    major = (payment.amount or 0) / 100
    created = payment.created_at.strftime("%Y-%m-%d") if payment.created_at else ""
    return (
        "*Payment Confirmed*\n\n"
        f"Payment ID: {payment.razorpay_payment_id or payment.id}\n"
        f"Amount: {payment.currency} {major:.2f}\n"
        f"Status: {payment.status}\n"
        f"Date: {created}\n\n"
        "Thank you for your payment!"
    )


# =============================================================================
# Sending and recording
# =============================================================================

def record(
    user_id: str,
    type: str,
    recipient: str,
    message: str,
    status: str,
    order_id: str | None = None,
    compliance_id: str | None = None,
    provider_message_id: str | None = None,
    error: str | None = None,
) -> Notification | None:
    """Append a notification row. A failed write is logged, not raised."""
    notification = Notification(
        user_id=user_id,
        type=type,
        recipient=recipient,
        message=message,
        status=status,
        order_id=order_id,
        compliance_id=compliance_id,
        provider_message_id=provider_message_id,
        error=error,
        created_at=utcnow(),
    )
    try:
        return records.save(notification)
    except SQLAlchemyError:
        db.session.rollback()
        logger.exception("Failed to log notification for user %s", user_id)
        return None


def deliver(
    whatsapp: WhatsAppClient,
    user_id: str,
    type: str,
    to: str,
    body: str,
    summary: str | None = None,
    order_id: str | None = None,
    compliance_id: str | None = None,
) -> SentMessage:
    logged_message = summary or body
    try:
        sent = whatsapp.send(to, body)
    except MessagingError as e:
        record(user_id, type, to, logged_message, "failed",
               order_id=order_id, compliance_id=compliance_id, error=str(e.cause or e))
        raise

    record(user_id, type, to, logged_message, "sent",
           order_id=order_id, compliance_id=compliance_id, provider_message_id=sent.message_id)
    logger.info("%s sent to %s by user %s", type, to, user_id)
    return sent


def notify_best_effort(
    whatsapp: WhatsAppClient,
    user: User | None,
    type: str,
    body: str,
    summary: str,
    order_id: str | None = None,
    compliance_id: str | None = None,
) -> SentMessage | None:
    if user is None or not user.phone:
        logger.debug("Skipping %s notification: no phone number on file", type)
        return None
    try:
        return deliver(whatsapp, user.id, type, user.phone, body, summary,
                       order_id=order_id, compliance_id=compliance_id)
    except MessagingError:
        logger.warning("Best-effort %s notification failed for user %s", type, user.id)
        return None


# =============================================================================
# Route operations
# =============================================================================

def send_whatsapp(whatsapp: WhatsAppClient, user_id: str, phone_number: str, message: str,
                  order_id: str | None = None) -> SentMessage:
    return deliver(whatsapp, user_id, "whatsapp", phone_number, message, order_id=order_id)


def send_order_confirmation(whatsapp: WhatsAppClient, user_id: str, order_id: str, phone_number: str) -> SentMessage:
    order = records.find_owned(Order, order_id, user_id, "Order not found")
    return deliver(
        whatsapp, user_id, "order_confirmation", phone_number,
        order_confirmation_message(order),
        summary=f"Order confirmation for {order.id}",
        order_id=order.id,
    )


def send_order_status_update(whatsapp: WhatsAppClient, user_id: str, order_id: str, phone_number: str) -> SentMessage:
    order = records.find_owned(Order, order_id, user_id, "Order not found")
    return deliver(
        whatsapp, user_id, "status_update", phone_number,
        order_status_message(order),
        summary=f"Status update for {order.id}",
        order_id=order.id,
    )


def send_compliance_alert(whatsapp: WhatsAppClient, user_id: str, compliance_id: str, phone_number: str) -> SentMessage:
    item = records.find_owned(ComplianceItem, compliance_id, user_id, "Compliance item not found")
    return deliver(
        whatsapp, user_id, "compliance_alert", phone_number,
        compliance_alert_message(item),
        summary=f"Compliance alert for {item.title}",
        compliance_id=item.id,
    )


def list_notifications(user_id: str, params: PageParams, type: str | None = None,
                       status: str | None = None) -> tuple[list[Notification], int]:
    query = records.owned_query(Notification, user_id)
    query = records.apply_filters(query, Notification, {"type": type, "status": status})
    return records.paginate(query, Notification, params)


def notification_stats(user_id: str) -> dict:
    rows = records.owned_query(Notification, user_id).all()
    now = utcnow()
    by_status = records.count_by(rows, "status", NOTIFICATION_STATUSES)
    return {
        "total": len(rows),
        "sent": by_status["sent"],
        "failed": by_status["failed"],
        "by_type": records.count_by(rows, "type", NOTIFICATION_TYPES),
        "this_month": sum(1 for n in rows if is_current_month(n.created_at, now)),
    }
