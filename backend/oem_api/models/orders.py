from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z, utcnow


ORDER_STATUSES = ("pending", "in_production", "quality_check", "completed", "cancelled")


class Order(db.Model):
    """
    Manufacturing order placed by a user.

    Lifecycle: pending -> in_production -> quality_check -> completed, with
    cancelled reachable from any non-terminal state. Transitions are not
    enforced; any value in ORDER_STATUSES is accepted on update. Orders may
    only be deleted while pending.
    """
    __tablename__ = "orders"

    id = db.Column(db.String(40), primary_key=True)  # ORD-<ms>-<4 alnum>
    user_id = db.Column(db.String(36), db.ForeignKey("users.id"), nullable=False, index=True)

    client = db.Column(db.String(255), nullable=False)
    product = db.Column(db.String(255), nullable=False)
    quantity = db.Column(db.Integer, nullable=False)
    specifications = db.Column(db.JSON, nullable=False, default=dict)
    delivery_date = db.Column(db.DateTime, nullable=True)
    notes = db.Column(db.Text, nullable=True)

    status = db.Column(db.String(32), nullable=False, default="pending", index=True)
    progress = db.Column(db.Integer, nullable=False, default=0)  # 0-100

    created_at = db.Column(db.DateTime, nullable=False, default=utcnow, index=True)
    updated_at = db.Column(db.DateTime, nullable=False, default=utcnow)

    def to_dict(self):
        return {
            "id": self.id,
            "user_id": self.user_id,
            "client": self.client,
            "product": self.product,
            "quantity": self.quantity,
            "specifications": self.specifications or {},
            "delivery_date": to_utc_z(self.delivery_date),
            "notes": self.notes,
            "status": self.status,
            "progress": self.progress,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
