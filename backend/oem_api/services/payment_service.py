# Overview: Service-layer operations for payments; provider orders, webhook verification, refunds.

"""
Payment service.

Lifecycle: created (provider order placed) -> captured | failed, and
captured -> refunded, which is terminal. A refund against anything other
than a captured payment is a 400, including a second refund of the same
payment.

The webhook trusts nothing until the HMAC signature over
"<provider order id>|<provider payment id>" matches; only then are the
payment details fetched from the provider and written to the record.
"""

from __future__ import annotations

import logging

from sqlalchemy.exc import SQLAlchemyError

from ..errors import BusinessRuleError, NotFoundError
from ..extensions import db
from ..models import Payment, User
from ..models.payments import PAYMENT_STATUSES
from ..observability.logger import security_log
from ..schemas import PaymentCreateOrder, PaymentRefund, PaymentVerify
from ..time_utils import is_current_month, utcnow
from ..validation import PageParams
from . import notification_service, records
from .razorpay_client import RazorpayClient, verify_signature
from .whatsapp_client import WhatsAppClient


logger = logging.getLogger(__name__)

NOT_FOUND = "Payment not found"

# provider status -> record status; anything else leaves the record unchanged
_WEBHOOK_STATUS = {"captured": "captured", "failed": "failed"}


def create_payment_order(razorpay: RazorpayClient, user_id: str, data: PaymentCreateOrder) -> tuple[dict, Payment | None]:
    """
    Place a provider order and store the matching payment record.

    Storing the record is best-effort: the provider order already exists, so
    a database failure is logged and the order is still returned.
    """
    receipt = records.generate_reference("RCP")
    notes = {"order_id": data.order_id, "user_id": user_id, **data.notes}
    order = razorpay.create_order(data.amount, data.currency, receipt, notes)

    now = utcnow()
    payment = Payment(
        id=order["id"],
        user_id=user_id,
        order_id=data.order_id,
        amount=order["amount"],
        currency=order["currency"] or data.currency,
        receipt=order["receipt"] or receipt,
        notes=notes,
        status="created",
        razorpay_order_id=order["id"],
        created_at=now,
        updated_at=now,
    )
    try:
        records.save(payment)
    except SQLAlchemyError:
        db.session.rollback()
        logger.exception("Failed to store payment order %s", order["id"])
        payment = None

    logger.info("Payment order created: %s for user: %s", order["id"], user_id)
    return order, payment


def verify_webhook(
    razorpay: RazorpayClient,
    whatsapp: WhatsAppClient | None,
    data: PaymentVerify,
) -> tuple[dict, Payment]:
    if not verify_signature(data.razorpay_order_id, data.razorpay_payment_id,
                            data.razorpay_signature, razorpay.key_secret):
        security_log(
            "PAYMENT_SIGNATURE_INVALID",
            razorpay_order_id=data.razorpay_order_id,
            razorpay_payment_id=data.razorpay_payment_id,
        )
        raise BusinessRuleError("Invalid payment signature")

    details = razorpay.fetch_payment(data.razorpay_payment_id)

    payment = db.session.query(Payment).filter_by(razorpay_order_id=data.razorpay_order_id).first()
    if payment is None:
        logger.error("Payment record not found for provider order %s", data.razorpay_order_id)
        raise NotFoundError("Payment record not found")
    if payment.status == "refunded":
        raise BusinessRuleError("Payment has already been refunded")

    previous_status = payment.status
    payment.razorpay_payment_id = data.razorpay_payment_id
    payment.status = _WEBHOOK_STATUS.get(details["status"], payment.status)
    payment.payment_method = details["method"]
    payment.captured = details["captured"]
    payment.updated_at = utcnow()
    records.save(payment)
    logger.info("Payment verified successfully: %s", data.razorpay_payment_id)

    if whatsapp is not None and payment.status == "captured" and previous_status != "captured":
        notification_service.notify_best_effort(
            whatsapp, db.session.get(User, payment.user_id), "payment_confirmation",
            notification_service.payment_confirmation_message(payment),
            summary=f"Payment confirmation for {data.razorpay_payment_id}",
            order_id=payment.order_id,
        )
    return details, payment


def get_payment(user_id: str, payment_id: str) -> Payment:
    return records.find_owned(Payment, payment_id, user_id, NOT_FOUND)


def list_payments(user_id: str, params: PageParams, status: str | None = None) -> tuple[list[Payment], int]:
    query = records.apply_filters(records.owned_query(Payment, user_id), Payment, {"status": status})
    return records.paginate(query, Payment, params)


def refund_payment(razorpay: RazorpayClient, user_id: str, data: PaymentRefund) -> tuple[dict, Payment]:
    payment = (
        records.owned_query(Payment, user_id)
        .filter(Payment.razorpay_payment_id == data.payment_id)
        .first()
    )
    if payment is None:
        raise NotFoundError(NOT_FOUND)
    if payment.status != "captured":
        raise BusinessRuleError("Only captured payments can be refunded")

    refund = razorpay.refund(data.payment_id, data.amount)

    payment.status = "refunded"
    payment.refund_id = refund["id"]
    payment.refund_amount = refund["amount"]
    payment.updated_at = utcnow()
    records.save(payment)
    logger.info("Refund processed for payment: %s", data.payment_id)
    return refund, payment


def payment_stats(user_id: str) -> dict:
    rows = records.owned_query(Payment, user_id).all()
    now = utcnow()
    by_status = records.count_by(rows, "status", PAYMENT_STATUSES)
    this_month = [p for p in rows if is_current_month(p.created_at, now)]
    return {
        "total": len(rows),
        "total_amount": sum(p.amount or 0 for p in rows),
        "captured": by_status["captured"],
        "failed": by_status["failed"],
        "refunded": by_status["refunded"],
        "this_month": len(this_month),
        "this_month_amount": sum(p.amount or 0 for p in this_month),
    }
