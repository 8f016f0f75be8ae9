# backend/oem_api/routes/payments.py
"""
Payments API (Razorpay)

SECURITY:
- /webhook is reachable without credentials (the provider calls it); it is
  trusted only after the HMAC signature check in payment_service
- /webhook and /refund carry the payment rate-limit class on top of the
  general one
"""

from __future__ import annotations

from flask import Blueprint

from ..decorators import optional_auth, require_auth
from ..models.payments import PAYMENT_STATUSES
from ..rate_limit import PAYMENT, rate_limited
from ..responses import created, ok, paged
from ..schemas import PaymentCreateOrder, PaymentRefund, PaymentVerify
from ..services import payment_service
from ..services.integrations import current_integrations
from ..validation import choice_arg, page_params, validate_body

payments_bp = Blueprint("payments", __name__, url_prefix="/api/payments")


@payments_bp.route("/create-order", methods=["POST"])
@require_auth
@validate_body(PaymentCreateOrder)
def create_order(ctx, body: PaymentCreateOrder):
    order, record = payment_service.create_payment_order(current_integrations().razorpay, ctx.user_id, body)
    return created(
        {"order": order, "payment_record": record.to_dict() if record else None},
        "Payment order created successfully",
    )


@payments_bp.route("/webhook", methods=["POST"])
@rate_limited(PAYMENT)
@optional_auth
@validate_body(PaymentVerify)
def webhook(ctx, body: PaymentVerify):
    integrations = current_integrations()
    details, record = payment_service.verify_webhook(integrations.razorpay, integrations.whatsapp, body)
    return ok({"payment": details, "payment_record": record.to_dict()}, "Payment verified successfully")


@payments_bp.route("/stats", methods=["GET"])
@require_auth
def payment_stats(ctx):
    return ok(payment_service.payment_stats(ctx.user_id))


@payments_bp.route("/refund", methods=["POST"])
@rate_limited(PAYMENT)
@require_auth
@validate_body(PaymentRefund)
def refund(ctx, body: PaymentRefund):
    refund_info, record = payment_service.refund_payment(current_integrations().razorpay, ctx.user_id, body)
    return ok({"refund": refund_info, "payment_record": record.to_dict()}, "Refund processed successfully")


@payments_bp.route("/<payment_id>", methods=["GET"])
@require_auth
def get_payment(ctx, payment_id: str):
    return ok(payment_service.get_payment(ctx.user_id, payment_id).to_dict())


@payments_bp.route("", methods=["GET"])
@require_auth
def list_payments(ctx):
    params = page_params()
    status = choice_arg("status", PAYMENT_STATUSES)
    payments, total = payment_service.list_payments(ctx.user_id, params, status=status)
    return paged("payments", [p.to_dict() for p in payments], params.page, params.limit, total)
