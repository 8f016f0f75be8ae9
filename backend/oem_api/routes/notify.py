# backend/oem_api/routes/notify.py
"""
Notifications API (WhatsApp via Twilio)

All routes carry the notification rate-limit class. A send the provider
rejects is still recorded as a `failed` notification before the 500 goes
back to the client.
"""

from __future__ import annotations

from flask import Blueprint

from ..decorators import require_auth
from ..models.notifications import NOTIFICATION_STATUSES, NOTIFICATION_TYPES
from ..rate_limit import NOTIFICATION, rate_limited
from ..responses import ok, paged
from ..schemas import ComplianceAlert, OrderNotification, WhatsAppSend
from ..services import notification_service
from ..services.integrations import current_integrations
from ..validation import choice_arg, page_params, validate_body

notify_bp = Blueprint("notify", __name__, url_prefix="/api/notify")


@notify_bp.route("/whatsapp", methods=["POST"])
@rate_limited(NOTIFICATION)
@require_auth
@validate_body(WhatsAppSend)
def send_whatsapp(ctx, body: WhatsAppSend):
    sent = notification_service.send_whatsapp(
        current_integrations().whatsapp, ctx.user_id, body.phone_number, body.message, order_id=body.order_id,
    )
    return ok(sent.to_dict(), "WhatsApp message sent successfully")


@notify_bp.route("/order-confirmation", methods=["POST"])
@rate_limited(NOTIFICATION)
@require_auth
@validate_body(OrderNotification)
def order_confirmation(ctx, body: OrderNotification):
    sent = notification_service.send_order_confirmation(
        current_integrations().whatsapp, ctx.user_id, body.order_id, body.phone_number,
    )
    return ok(sent.to_dict(), "Order confirmation sent successfully")


@notify_bp.route("/order-status-update", methods=["POST"])
@rate_limited(NOTIFICATION)
@require_auth
@validate_body(OrderNotification)
def order_status_update(ctx, body: OrderNotification):
    sent = notification_service.send_order_status_update(
        current_integrations().whatsapp, ctx.user_id, body.order_id, body.phone_number,
    )
    return ok(sent.to_dict(), "Status update sent successfully")


@notify_bp.route("/compliance-alert", methods=["POST"])
@rate_limited(NOTIFICATION)
@require_auth
@validate_body(ComplianceAlert)
def compliance_alert(ctx, body: ComplianceAlert):
    sent = notification_service.send_compliance_alert(
        current_integrations().whatsapp, ctx.user_id, body.compliance_id, body.phone_number,
    )
    return ok(sent.to_dict(), "Compliance alert sent successfully")


@notify_bp.route("", methods=["GET"])
@rate_limited(NOTIFICATION)
@require_auth
def list_notifications(ctx):
    params = page_params()
    items, total = notification_service.list_notifications(
        ctx.user_id,
        params,
        type=choice_arg("type", NOTIFICATION_TYPES),
        status=choice_arg("status", NOTIFICATION_STATUSES),
    )
    return paged("notifications", [n.to_dict() for n in items], params.page, params.limit, total)


@notify_bp.route("/stats", methods=["GET"])
@rate_limited(NOTIFICATION)
@require_auth
def notification_stats(ctx):
    return ok(notification_service.notification_stats(ctx.user_id))
