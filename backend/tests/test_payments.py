"""
Payment API tests.

Verifies:
- Provider orders are placed in minor units and mirrored as a payment record
- The webhook trusts nothing until the HMAC signature matches
- Refunds only apply to captured payments, and only once
- Provider outages surface as a generic 500
"""

import base64
import hashlib
import hmac
import json

import pytest

from oem_api.models import Notification, Payment
from oem_api.services.razorpay_client import compute_signature, to_minor_units, verify_signature


def create_payment_order(client, headers, amount=500.0, **overrides):
    payload = {"amount": amount, "currency": "INR", "order_id": "ORD-1760000000000-AB12"}
    payload.update(overrides)
    resp = client.post("/api/payments/create-order", json=payload, headers=headers)
    assert resp.status_code == 201, resp.get_json()
    return resp.get_json()["data"]


def capture(client, providers, sign, order_id, payment_id="pay_001", status="captured", headers=None):
    providers.add_payment(payment_id, order_id, status=status)
    return client.post(
        "/api/payments/webhook",
        json={
            "razorpay_order_id": order_id,
            "razorpay_payment_id": payment_id,
            "razorpay_signature": sign(order_id, payment_id),
        },
        headers=headers or {},
    )


# =============================================================================
# SIGNATURES
# =============================================================================


class TestSignatures:
    def test_matches_hmac_sha256(self):
        expected = hmac.new(b"secret", b"order_1|pay_1", hashlib.sha256).hexdigest()
        assert compute_signature("order_1", "pay_1", "secret") == expected

    def test_verify(self):
        signature = compute_signature("order_1", "pay_1", "secret")
        assert verify_signature("order_1", "pay_1", signature, "secret")
        assert not verify_signature("order_1", "pay_2", signature, "secret")
        assert not verify_signature("order_1", "pay_1", signature, "other")
        assert not verify_signature("order_1", "pay_1", "", "secret")
        assert not verify_signature("order_1", "pay_1", "ü" + signature[1:], "secret")

    @pytest.mark.parametrize("amount,minor", [(500, 50000), (19.99, 1999), (0.1, 10)])
    def test_minor_units(self, amount, minor):
        assert to_minor_units(amount) == minor


# =============================================================================
# CREATE ORDER
# =============================================================================


class TestCreatePaymentOrder:
    def test_creates_provider_order_and_record(self, client, user, auth_headers, providers, db_session):
        data = create_payment_order(client, auth_headers(user), amount=500, notes={"batch": "B-7"})

        order = data["order"]
        assert order["amount"] == 50000
        assert order["currency"] == "INR"
        assert order["status"] == "created"
        assert order["receipt"].startswith("RCP-")

        record = data["payment_record"]
        assert record["id"] == order["id"]
        assert record["status"] == "created"
        assert record["order_id"] == "ORD-1760000000000-AB12"
        assert record["notes"] == {"order_id": "ORD-1760000000000-AB12", "user_id": user.id, "batch": "B-7"}
        assert db_session.get(Payment, order["id"]).amount == 50000

    def test_provider_call_is_authenticated(self, client, user, auth_headers, providers):
        create_payment_order(client, auth_headers(user))
        call = providers.requests[-1]
        expected = base64.b64encode(b"rzp_test_key:rzp_test_secret").decode()
        assert call.headers["Authorization"] == f"Basic {expected}"
        assert json.loads(call.content)["amount"] == 50000

    @pytest.mark.parametrize(
        "payload",
        [
            {"amount": 0, "order_id": "ORD-1"},
            {"amount": -5, "order_id": "ORD-1"},
            {"amount": 10, "order_id": "ORD-1", "currency": "GBP"},
            {"amount": 10},
        ],
    )
    def test_invalid_input(self, client, user, auth_headers, payload):
        resp = client.post("/api/payments/create-order", json=payload, headers=auth_headers(user))
        assert resp.status_code == 400

    def test_provider_outage(self, client, user, auth_headers, providers):
        providers.payments_down = True
        resp = client.post(
            "/api/payments/create-order",
            json={"amount": 10, "order_id": "ORD-1"},
            headers=auth_headers(user),
        )
        assert resp.status_code == 500
        assert resp.get_json() == {"success": False, "error": "Failed to create payment order"}


# =============================================================================
# WEBHOOK
# =============================================================================


class TestWebhook:
    def test_valid_signature_captures(self, client, user, auth_headers, providers, sign, db_session):
        order = create_payment_order(client, auth_headers(user))["order"]

        resp = capture(client, providers, sign, order["id"])
        assert resp.status_code == 200
        body = resp.get_json()
        assert body["message"] == "Payment verified successfully"
        assert body["data"]["payment"]["status"] == "captured"

        record = db_session.get(Payment, order["id"])
        assert record.status == "captured"
        assert record.razorpay_payment_id == "pay_001"
        assert record.payment_method == "upi"
        assert record.captured is True

    def test_reachable_without_credentials(self, client, user, auth_headers, providers, sign):
        order = create_payment_order(client, auth_headers(user))["order"]
        resp = capture(client, providers, sign, order["id"], headers={"Authorization": "Bearer junk"})
        assert resp.status_code == 200

    def test_single_character_mutation_rejected(self, client, user, auth_headers, providers, sign, db_session):
        order = create_payment_order(client, auth_headers(user))["order"]
        providers.add_payment("pay_001", order["id"])
        signature = sign(order["id"], "pay_001")
        tampered = signature[:-1] + ("0" if signature[-1] != "0" else "1")

        resp = client.post("/api/payments/webhook", json={
            "razorpay_order_id": order["id"],
            "razorpay_payment_id": "pay_001",
            "razorpay_signature": tampered,
        })
        assert resp.status_code == 400
        assert resp.get_json()["error"] == "Invalid payment signature"
        assert db_session.get(Payment, order["id"]).status == "created"
        assert not any(r.url.path.startswith("/v1/payments") for r in providers.requests)

    def test_non_ascii_mutation_rejected(self, client, user, auth_headers, providers, sign, db_session):
        order = create_payment_order(client, auth_headers(user))["order"]
        providers.add_payment("pay_001", order["id"])
        signature = sign(order["id"], "pay_001")

        resp = client.post("/api/payments/webhook", json={
            "razorpay_order_id": order["id"],
            "razorpay_payment_id": "pay_001",
            "razorpay_signature": "é" + signature[1:],
        })
        assert resp.status_code == 400
        assert resp.get_json()["error"] == "Invalid payment signature"
        assert db_session.get(Payment, order["id"]).status == "created"

    def test_failed_payment(self, client, user, auth_headers, providers, sign, db_session):
        order = create_payment_order(client, auth_headers(user))["order"]
        resp = capture(client, providers, sign, order["id"], status="failed")
        assert resp.status_code == 200
        assert db_session.get(Payment, order["id"]).status == "failed"

    def test_authorized_payment_leaves_status(self, client, user, auth_headers, providers, sign, db_session):
        order = create_payment_order(client, auth_headers(user))["order"]
        capture(client, providers, sign, order["id"], status="authorized")
        assert db_session.get(Payment, order["id"]).status == "created"

    def test_unknown_order(self, client, db_session, providers, sign):
        resp = capture(client, providers, sign, "order_missing")
        assert resp.status_code == 404
        assert resp.get_json()["error"] == "Payment record not found"

    def test_capture_confirms_to_owner(self, client, phone_user, auth_headers, providers, sign, db_session):
        order = create_payment_order(client, auth_headers(phone_user), amount=1250)["order"]
        capture(client, providers, sign, order["id"])

        assert len(providers.messages) == 1
        assert "INR 1250.00" in providers.messages[0]["Body"]
        logged = db_session.query(Notification).filter_by(type="payment_confirmation").one()
        assert logged.user_id == phone_user.id


# =============================================================================
# REFUNDS
# =============================================================================


class TestRefund:
    def test_refund_lifecycle(self, client, user, auth_headers, providers, sign):
        headers = auth_headers(user)
        order = create_payment_order(client, headers)["order"]
        capture(client, providers, sign, order["id"])

        resp = client.post("/api/payments/refund", json={"payment_id": "pay_001"}, headers=headers)
        assert resp.status_code == 200
        data = resp.get_json()["data"]
        assert data["refund"]["status"] == "processed"
        assert data["payment_record"]["status"] == "refunded"
        assert data["payment_record"]["refund_id"] == data["refund"]["id"]
        assert data["payment_record"]["refund_amount"] == 50000

        again = client.post("/api/payments/refund", json={"payment_id": "pay_001"}, headers=headers)
        assert again.status_code == 400
        assert again.get_json()["error"] == "Only captured payments can be refunded"

    def test_partial_refund_amount(self, client, user, auth_headers, providers, sign):
        headers = auth_headers(user)
        order = create_payment_order(client, headers)["order"]
        capture(client, providers, sign, order["id"])

        resp = client.post("/api/payments/refund", json={"payment_id": "pay_001", "amount": 125.5}, headers=headers)
        assert resp.get_json()["data"]["payment_record"]["refund_amount"] == 12550

    def test_cannot_refund_uncaptured(self, client, user, auth_headers, providers, sign):
        headers = auth_headers(user)
        order = create_payment_order(client, headers)["order"]
        capture(client, providers, sign, order["id"], status="failed")

        resp = client.post("/api/payments/refund", json={"payment_id": "pay_001"}, headers=headers)
        assert resp.status_code == 400
        assert resp.get_json()["error"] == "Only captured payments can be refunded"

    def test_other_users_payment(self, client, user, other_user, auth_headers, providers, sign):
        order = create_payment_order(client, auth_headers(user))["order"]
        capture(client, providers, sign, order["id"])

        resp = client.post("/api/payments/refund", json={"payment_id": "pay_001"}, headers=auth_headers(other_user))
        assert resp.status_code == 404

    def test_webhook_replay_after_refund(self, client, user, auth_headers, providers, sign, db_session):
        headers = auth_headers(user)
        order = create_payment_order(client, headers)["order"]
        capture(client, providers, sign, order["id"])
        client.post("/api/payments/refund", json={"payment_id": "pay_001"}, headers=headers)

        replay = capture(client, providers, sign, order["id"])
        assert replay.status_code == 400
        assert replay.get_json()["error"] == "Payment has already been refunded"
        assert db_session.get(Payment, order["id"]).status == "refunded"


# =============================================================================
# READS
# =============================================================================


class TestPaymentReads:
    def test_get_and_list(self, client, user, other_user, auth_headers):
        headers = auth_headers(user)
        order = create_payment_order(client, headers)["order"]
        create_payment_order(client, auth_headers(other_user))

        resp = client.get(f"/api/payments/{order['id']}", headers=headers)
        assert resp.status_code == 200
        assert resp.get_json()["data"]["amount"] == 50000

        listed = client.get("/api/payments?status=created", headers=headers).get_json()["data"]
        assert [p["id"] for p in listed["payments"]] == [order["id"]]

        missing = client.get(f"/api/payments/{order['id']}", headers=auth_headers(other_user))
        assert missing.status_code == 404
        assert missing.get_json()["error"] == "Payment not found"

    def test_stats(self, client, user, auth_headers, providers, sign):
        headers = auth_headers(user)
        first = create_payment_order(client, headers, amount=100)["order"]
        create_payment_order(client, headers, amount=250)
        capture(client, providers, sign, first["id"])

        stats = client.get("/api/payments/stats", headers=headers).get_json()["data"]
        assert stats["total"] == 2
        assert stats["total_amount"] == 35000
        assert stats["captured"] == 1
        assert stats["refunded"] == 0
        assert stats["this_month"] == 2
        assert stats["this_month_amount"] == 35000
