# Overview: Razorpay REST adapter: payment orders, payment lookup, refunds, signatures.

"""
Thin Razorpay client over httpx.

Amounts cross this boundary in major units (rupees) and are converted to
minor units (paise) for the provider. Every provider failure is raised as
PaymentGatewayError with a generic client-facing message; the real cause is
chained for the log.
"""

from __future__ import annotations

import hashlib
import hmac
import logging

import httpx

from ..errors import UpstreamServiceError


logger = logging.getLogger(__name__)


class PaymentGatewayError(UpstreamServiceError):
    pass


def compute_signature(order_id: str, payment_id: str, secret: str) -> str:
    """HMAC-SHA256 hex digest of "<order_id>|<payment_id>"."""
    message = f"{order_id}|{payment_id}".encode("utf-8")
    return hmac.new(secret.encode("utf-8"), message, hashlib.sha256).hexdigest()


def verify_signature(order_id: str, payment_id: str, signature: str, secret: str) -> bool:
    expected = compute_signature(order_id, payment_id, secret)
    return hmac.compare_digest(expected.encode("utf-8"), (signature or "").encode("utf-8"))


def to_minor_units(amount: float) -> int:
    return int(round(amount * 100))


class RazorpayClient:
    def __init__(self, key_id: str, key_secret: str, base_url: str, http: httpx.Client):
        self.key_id = key_id
        self.key_secret = key_secret
        self.base_url = base_url.rstrip("/")
        self.http = http

    @property
    def is_configured(self) -> bool:
        return bool(self.key_id and self.key_secret)

    def _call(self, method: str, path: str, failure: str, **kwargs) -> dict:
        try:
            response = self.http.request(
                method,
                f"{self.base_url}{path}",
                auth=(self.key_id, self.key_secret),
                **kwargs,
            )
            response.raise_for_status()
            return response.json()
        except (httpx.HTTPError, ValueError) as e:
            logger.error("Razorpay %s %s failed: %s", method, path, e)
            raise PaymentGatewayError(failure, cause=e) from e

    def create_order(self, amount: float, currency: str, receipt: str, notes: dict | None = None) -> dict:
        order = self._call(
            "POST", "/orders", "Failed to create payment order",
            json={
                "amount": to_minor_units(amount),
                "currency": currency or "INR",
                "receipt": receipt,
                "notes": notes or {},
            },
        )
        logger.info("Payment order created: %s", order.get("id"))
        return {
            "id": order.get("id"),
            "amount": order.get("amount"),
            "currency": order.get("currency"),
            "receipt": order.get("receipt"),
            "status": order.get("status"),
            "created_at": order.get("created_at"),
        }

    def fetch_payment(self, payment_id: str) -> dict:
        payment = self._call("GET", f"/payments/{payment_id}", "Failed to fetch payment details")
        return {
            "id": payment.get("id"),
            "order_id": payment.get("order_id"),
            "amount": payment.get("amount"),
            "currency": payment.get("currency"),
            "status": payment.get("status"),
            "method": payment.get("method"),
            "captured": bool(payment.get("captured")),
            "description": payment.get("description"),
            "created_at": payment.get("created_at"),
        }

    def refund(self, payment_id: str, amount: float | None = None) -> dict:
        payload = {}
        if amount:
            payload["amount"] = to_minor_units(amount)
        refund = self._call("POST", f"/payments/{payment_id}/refund", "Failed to process refund", json=payload)
        logger.info("Payment refunded: %s", refund.get("id"))
        return {
            "id": refund.get("id"),
            "payment_id": refund.get("payment_id", payment_id),
            "amount": refund.get("amount"),
            "currency": refund.get("currency"),
            "status": refund.get("status"),
            "created_at": refund.get("created_at"),
        }

    def ping(self) -> None:
        """Authenticated no-op call; raises PaymentGatewayError when unreachable."""
        self._call("GET", "/orders", "Payment provider unreachable", params={"count": 1})
