"""
Pytest configuration and shared fixtures.
"""

import json

import fakeredis
import pytest
from fastapi.testclient import TestClient

from storefront.config import Settings
from storefront.dependencies import build_services, get_services
from storefront.exceptions import MailDeliveryError

JWT_SECRET = "test-jwt-secret-with-enough-length-0123456789"
ADMIN_KEY = "admin-test-key"


class RecordingTransport:
    """Mail transport that keeps sent mails in memory."""

    def __init__(self):
        self.sent = []
        self.fail_when = None
        self.use_fallback = False

    def send(self, mail):
        if self.fail_when is not None and self.fail_when(mail):
            raise MailDeliveryError(reason="network")
        self.sent.append(mail)
        return self.use_fallback


class FakePayPal:
    def __init__(self):
        self.created = []
        self.captured = []
        self.capture_response = None

    def create_order(self, **kwargs):
        self.created.append(kwargs)
        return {"id": "ORDER-123", "status": "CREATED"}

    def capture_order(self, order_id):
        self.captured.append(order_id)
        return self.capture_response


class FakeCollection:
    def __init__(self):
        self.docs = []

    def insert_one(self, doc):
        self.docs.append(doc)


@pytest.fixture
def capture_payload():
    """Builder for PayPal capture responses (/v2/checkout/orders/<id>/capture)."""

    def build(order_id="ORDER-123", status="COMPLETED", license_type="single",
              email="max@muster-kunde.de", payer_email=None):
        unit = {}
        if email is not None:
            unit["custom_id"] = json.dumps({"licenseType": license_type, "email": email})
        payload = {"id": order_id, "status": status, "purchase_units": [unit]}
        if payer_email:
            payload["payer"] = {"email_address": payer_email}
        return payload

    return build


@pytest.fixture
def settings(tmp_path):
    return Settings(
        ENVIRONMENT="development",
        LICENSE_SALT="test-salt",
        LICENSE_JWT_SECRET=JWT_SECRET,
        ADMIN_API_KEY=ADMIN_KEY,
        INVOICE_DIR=str(tmp_path / "invoices"),
        SITE_URL="https://basic.evervibestudios.com",
        RATE_LIMIT_BACKEND="memory",
        ENABLE_RATE_LIMIT=True,
    )


@pytest.fixture
def redis_client():
    return fakeredis.FakeRedis(decode_responses=True)


@pytest.fixture
def transport():
    return RecordingTransport()


@pytest.fixture
def paypal():
    return FakePayPal()


@pytest.fixture
def audit_collection():
    return FakeCollection()


@pytest.fixture
def services(settings, redis_client, transport, paypal, audit_collection):
    return build_services(
        settings,
        redis_client=redis_client,
        audit_collection=audit_collection,
        transport=transport,
        paypal=paypal,
    )


@pytest.fixture
def client(services):
    from storefront.main import app

    app.dependency_overrides[get_services] = lambda: services
    yield TestClient(app)
    app.dependency_overrides.clear()
