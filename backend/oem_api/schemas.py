# Overview: Request body schemas, one per write endpoint.

"""
Declarative request schemas (pydantic).

Validation is purely structural: types, enum membership, numeric ranges and
string patterns. Unknown keys are rejected. Anything that needs the database
(ownership, state rules) lives in the services.

Patch schemas mark every field optional. `model_fields_set` tells an absent
field apart from an explicit null; fields whose column cannot be null refuse
an explicit null here instead of failing later at flush time.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .time_utils import to_utc_naive


PHONE_PATTERN = r"^\+?[1-9]\d{1,14}$"

OrderStatus = Literal["pending", "in_production", "quality_check", "completed", "cancelled"]
ComplianceType = Literal["certification", "audit", "report", "alert"]
CompliancePriority = Literal["low", "medium", "high", "critical"]
ComplianceStatus = Literal["pending", "in_progress", "completed", "overdue"]
Currency = Literal["INR", "USD", "EUR"]


class RequestSchema(BaseModel):
    model_config = ConfigDict(extra="forbid", str_strip_whitespace=True)


def _utc(value: Optional[datetime]) -> Optional[datetime]:
    return to_utc_naive(value) if value is not None else None


def _reject_null(value: Any) -> Any:
    if value is None:
        raise ValueError("may not be null")
    return value


# =============================================================================
# Orders
# =============================================================================

class OrderCreate(RequestSchema):
    client: str = Field(min_length=1, max_length=255)
    product: str = Field(min_length=1, max_length=255)
    quantity: int = Field(ge=1)
    specifications: dict[str, Any] = Field(default_factory=dict)
    delivery_date: Optional[datetime] = None
    notes: Optional[str] = None

    _normalize_dates = field_validator("delivery_date")(_utc)


class OrderPatch(RequestSchema):
    status: Optional[OrderStatus] = None
    progress: Optional[int] = Field(default=None, ge=0, le=100)
    notes: Optional[str] = None
    delivery_date: Optional[datetime] = None

    _not_null = field_validator("status", "progress", mode="before")(_reject_null)
    _normalize_dates = field_validator("delivery_date")(_utc)


# =============================================================================
# Compliance
# =============================================================================

class ComplianceCreate(RequestSchema):
    title: str = Field(min_length=1, max_length=255)
    type: ComplianceType
    description: Optional[str] = None
    due_date: datetime
    priority: CompliancePriority = "medium"
    status: ComplianceStatus = "pending"
    documents: list[str] = Field(default_factory=list)

    _normalize_dates = field_validator("due_date")(_utc)


class CompliancePatch(RequestSchema):
    status: Optional[ComplianceStatus] = None
    priority: Optional[CompliancePriority] = None
    description: Optional[str] = None
    due_date: Optional[datetime] = None
    documents: Optional[list[str]] = None

    _not_null = field_validator("status", "priority", "due_date", mode="before")(_reject_null)
    _normalize_dates = field_validator("due_date")(_utc)


# =============================================================================
# Payments
# =============================================================================

class PaymentCreateOrder(RequestSchema):
    amount: float = Field(gt=0)
    currency: Currency = "INR"
    order_id: str = Field(min_length=1)
    notes: dict[str, Any] = Field(default_factory=dict)


class PaymentVerify(RequestSchema):
    razorpay_order_id: str = Field(min_length=1)
    razorpay_payment_id: str = Field(min_length=1)
    razorpay_signature: str = Field(min_length=1)


class PaymentRefund(RequestSchema):
    payment_id: str = Field(min_length=1)
    amount: Optional[float] = Field(default=None, gt=0)


# =============================================================================
# Notifications
# =============================================================================

class WhatsAppSend(RequestSchema):
    phone_number: str = Field(pattern=PHONE_PATTERN)
    message: str = Field(min_length=1)
    order_id: Optional[str] = None


class OrderNotification(RequestSchema):
    order_id: str = Field(min_length=1)
    phone_number: str = Field(pattern=PHONE_PATTERN)


class ComplianceAlert(RequestSchema):
    compliance_id: str = Field(min_length=1)
    phone_number: str = Field(pattern=PHONE_PATTERN)
