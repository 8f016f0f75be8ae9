"""
Pytest fixtures for the Textile OEM API tests.

Provides the test database, a fake provider backend (payments, messaging,
hosted identity) served through httpx.MockTransport, users and auth headers.
"""

import json
import uuid
from datetime import timedelta
from urllib.parse import parse_qs

import httpx
import pytest

from oem_api import create_app
from oem_api.config import load_settings
from oem_api.extensions import db
from oem_api.models import User
from oem_api.rate_limit import current_limiter
from oem_api.services.identity_service import issue_token
from oem_api.services.integrations import build_integrations
from oem_api.services.razorpay_client import compute_signature


TEST_SETTINGS = {
    "APP_ENV": "test",
    "DATABASE_URL": "sqlite:///:memory:",
    "SUPABASE_URL": "https://identity.test",
    "SUPABASE_ANON_KEY": "anon-key",
    "SUPABASE_SERVICE_ROLE_KEY": "service-role-key",
    "JWT_SECRET": "test-jwt-secret",
    "JWT_EXPIRES_IN": "1h",
    "RAZORPAY_KEY_ID": "rzp_test_key",
    "RAZORPAY_KEY_SECRET": "rzp_test_secret",
    "RAZORPAY_API_URL": "https://razorpay.test/v1",
    "TWILIO_ACCOUNT_SID": "AC0000test",
    "TWILIO_AUTH_TOKEN": "twilio-token",
    "TWILIO_API_URL": "https://twilio.test/2010-04-01",
    "LOG_FILES_ENABLED": False,
    "RATE_LIMIT_MAX_REQUESTS": 10_000,
}

PROVIDER_CREATED_AT = 1_760_000_000


class FakeProviders:
    """
    Stand-in for Razorpay, Twilio and Supabase Auth.

    Tests flip `messaging_down` / `payments_down` to simulate outages and
    seed `payments` / `identity_tokens` to control what the providers report.
    """

    def __init__(self):
        self.reset()

    def reset(self):
        self.requests = []
        self.messages = []
        self.payments = {}
        self.identity_tokens = {}
        self.messaging_down = False
        self.payments_down = False
        self._seq = 0

    def _next(self) -> int:
        self._seq += 1
        return self._seq

    def add_payment(self, payment_id, order_id, amount=50_000, status="captured", method="upi"):
        self.payments[payment_id] = {
            "id": payment_id,
            "entity": "payment",
            "order_id": order_id,
            "amount": amount,
            "currency": "INR",
            "status": status,
            "method": method,
            "captured": status == "captured",
            "description": "Test payment",
            "created_at": PROVIDER_CREATED_AT,
        }

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        host = request.url.host
        if host == "razorpay.test":
            return self._razorpay(request)
        if host == "twilio.test":
            return self._twilio(request)
        if host == "identity.test":
            return self._identity(request)
        return httpx.Response(404, json={"error": "unknown host"})

    # -- Razorpay -------------------------------------------------------------

    def _razorpay(self, request):
        if self.payments_down:
            return httpx.Response(502, json={"error": {"description": "gateway down"}})

        path = request.url.path.removeprefix("/v1")
        body = json.loads(request.content) if request.content else {}

        if request.method == "POST" and path == "/orders":
            return httpx.Response(200, json={
                "id": f"order_{self._next():06d}",
                "entity": "order",
                "amount": body["amount"],
                "currency": body["currency"],
                "receipt": body["receipt"],
                "notes": body.get("notes", {}),
                "status": "created",
                "created_at": PROVIDER_CREATED_AT,
            })
        if request.method == "GET" and path == "/orders":
            return httpx.Response(200, json={"entity": "collection", "count": 0, "items": []})

        parts = path.strip("/").split("/")
        if len(parts) >= 2 and parts[0] == "payments":
            payment = self.payments.get(parts[1])
            if payment is None:
                return httpx.Response(400, json={"error": {"description": "The id provided does not exist"}})
            if request.method == "GET" and len(parts) == 2:
                return httpx.Response(200, json=payment)
            if request.method == "POST" and parts[2:] == ["refund"]:
                return httpx.Response(200, json={
                    "id": f"rfnd_{self._next():06d}",
                    "entity": "refund",
                    "payment_id": payment["id"],
                    "amount": body.get("amount", payment["amount"]),
                    "currency": payment["currency"],
                    "status": "processed",
                    "created_at": PROVIDER_CREATED_AT,
                })
        return httpx.Response(404, json={"error": {"description": "not found"}})

    # -- Twilio ---------------------------------------------------------------

    def _twilio(self, request):
        path = request.url.path
        if request.method == "POST" and path.endswith("/Messages.json"):
            if self.messaging_down:
                return httpx.Response(500, json={"code": 20500, "message": "Internal Server Error"})
            form = {k: v[0] for k, v in parse_qs(request.content.decode()).items()}
            self.messages.append(form)
            return httpx.Response(201, json={"sid": f"SM{self._next():032d}", "status": "queued"})
        if request.method == "GET" and path.endswith(f"/Accounts/{TEST_SETTINGS['TWILIO_ACCOUNT_SID']}.json"):
            return httpx.Response(200, json={"sid": TEST_SETTINGS["TWILIO_ACCOUNT_SID"], "status": "active"})
        return httpx.Response(404, json={"message": "not found"})

    # -- Supabase Auth --------------------------------------------------------

    def _identity(self, request):
        if request.url.path != "/auth/v1/user":
            return httpx.Response(404, json={"msg": "not found"})
        token = request.headers.get("Authorization", "").removeprefix("Bearer ").strip()
        user = self.identity_tokens.get(token)
        if user is None:
            return httpx.Response(401, json={"msg": "invalid JWT"})
        return httpx.Response(200, json=user)


@pytest.fixture(scope='session')
def settings():
    return load_settings(**TEST_SETTINGS)


@pytest.fixture(scope='session')
def providers():
    return FakeProviders()


def build_test_app(settings, providers):
    http = httpx.Client(transport=httpx.MockTransport(providers.handler))
    return create_app(settings, integrations=build_integrations(settings, http=http))


@pytest.fixture(scope='session')
def app(settings, providers):
    """Create application for testing."""
    app = build_test_app(settings, providers)

    with app.app_context():
        db.create_all()
        yield app
        db.drop_all()


@pytest.fixture(scope='function')
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function')
def db_session(app, providers):
    """Fresh tables, provider state, limiter windows and metrics for each test."""
    with app.app_context():
        # Clear all data but keep schema
        meta = db.metadata
        for table in reversed(meta.sorted_tables):
            db.session.execute(table.delete())
        db.session.commit()

        providers.reset()
        current_limiter().reset()
        app.extensions["oem_metrics"].reset()

        yield db.session

        # Cleanup after test
        db.session.rollback()


def make_user(session, email, role="user", phone=None, is_active=True):
    user = User(
        id=str(uuid.uuid4()),
        email=email,
        name=email.split("@")[0].title(),
        phone=phone,
        company="Loomworks",
        role=role,
        is_active=is_active,
    )
    session.add(user)
    session.commit()
    return user


def bearer(token):
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture(scope='function')
def user(db_session):
    """Active user without a phone number (no side-effect notifications)."""
    return make_user(db_session, "buyer@loomworks.test")


@pytest.fixture(scope='function')
def other_user(db_session):
    """Second active user, used to prove row ownership."""
    return make_user(db_session, "rival@weavers.test")


@pytest.fixture(scope='function')
def phone_user(db_session):
    """Active user with a phone number on file."""
    return make_user(db_session, "owner@loomworks.test", phone="+919876543210")


@pytest.fixture(scope='function')
def admin_user(db_session):
    return make_user(db_session, "ops@loomworks.test", role="admin")


@pytest.fixture(scope='function')
def inactive_user(db_session):
    return make_user(db_session, "former@loomworks.test", is_active=False)


@pytest.fixture(scope='function')
def auth_headers(settings):
    """Build Authorization headers holding a self-issued token for a user."""
    def _headers(user, expires_in=timedelta(hours=1)):
        return bearer(issue_token(user, settings.JWT_SECRET, expires_in))

    return _headers


@pytest.fixture(scope='function')
def sign(settings):
    """Provider-style signature over "<order id>|<payment id>"."""
    def _sign(order_id, payment_id):
        return compute_signature(order_id, payment_id, settings.RAZORPAY_KEY_SECRET)

    return _sign
