from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z, utcnow


PAYMENT_STATUSES = ("created", "captured", "failed", "refunded")
CURRENCIES = ("INR", "USD", "EUR")


class Payment(db.Model):
    """
    Provider payment order and its outcome.

    The primary key is the provider-assigned order id. Amounts are stored in
    minor units (paise/cents) exactly as the provider reports them.

    Lifecycle: created -> captured | failed; captured -> refunded (terminal).
    """
    __tablename__ = "payments"

    id = db.Column(db.String(64), primary_key=True)
    user_id = db.Column(db.String(36), db.ForeignKey("users.id"), nullable=False, index=True)
    order_id = db.Column(db.String(40), nullable=True, index=True)

    amount = db.Column(db.Integer, nullable=False)
    currency = db.Column(db.String(3), nullable=False, default="INR")
    receipt = db.Column(db.String(64), nullable=False)
    notes = db.Column(db.JSON, nullable=False, default=dict)
    status = db.Column(db.String(16), nullable=False, default="created", index=True)

    razorpay_order_id = db.Column(db.String(64), nullable=False, unique=True)
    razorpay_payment_id = db.Column(db.String(64), nullable=True, index=True)
    payment_method = db.Column(db.String(32), nullable=True)
    captured = db.Column(db.Boolean, nullable=False, default=False)

    refund_id = db.Column(db.String(64), nullable=True)
    refund_amount = db.Column(db.Integer, nullable=True)

    created_at = db.Column(db.DateTime, nullable=False, default=utcnow, index=True)
    updated_at = db.Column(db.DateTime, nullable=False, default=utcnow)

    def to_dict(self):
        return {
            "id": self.id,
            "user_id": self.user_id,
            "order_id": self.order_id,
            "amount": self.amount,
            "currency": self.currency,
            "receipt": self.receipt,
            "notes": self.notes or {},
            "status": self.status,
            "razorpay_order_id": self.razorpay_order_id,
            "razorpay_payment_id": self.razorpay_payment_id,
            "payment_method": self.payment_method,
            "captured": self.captured,
            "refund_id": self.refund_id,
            "refund_amount": self.refund_amount,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
