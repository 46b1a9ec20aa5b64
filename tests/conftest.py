"""Shared fixtures: an isolated app on in-memory SQLite with fake collaborators"""
import os

os.environ["OTEL_ENABLED"] = "false"
os.environ["LOG_FORMAT"] = "text"

import hashlib
import hmac
import json

import pytest
from fastapi.testclient import TestClient

from storefront.api.dependencies import get_image_client, get_mailer, get_payment_client
from storefront.config import Settings
from storefront.main import create_app
from storefront.models.user import Role, User
from storefront.services.auth import create_access_token, hash_password
from storefront.services.errors import ImageHostError
from storefront.services.payment_client import PaymentProviderClient, SANDBOX_BASE_URL

JWT_SECRET = "test-secret"
WEBHOOK_SECRET = "webhook-secret"
PASSWORD = "secret123"


class FakeMailer:
    """Records messages instead of talking to SMTP"""

    def __init__(self):
        self.is_configured = True
        self.sent = []

    def send(self, to, subject, body, reply_to=None):
        self.sent.append({"to": to, "subject": subject, "body": body, "reply_to": reply_to})


class FakePaymentClient(PaymentProviderClient):
    """Real signature check, scripted transaction verification"""

    def __init__(self):
        self.private_api_key = None
        self.webhook_secret = WEBHOOK_SECRET
        self.base_url = SANDBOX_BASE_URL
        self.verification = None
        self.error = None
        self.verified = []

    @property
    def is_configured(self) -> bool:
        return self.verification is not None or self.error is not None

    def answer(self, status, amount=None, message=None, payment_method="MOBILE_MONEY"):
        self.verification = {
            "status": status,
            "amount": amount,
            "currency": "XOF",
            "payment_method": payment_method,
            "message": message,
        }

    async def verify_transaction(self, transaction_id):
        self.verified.append(transaction_id)
        if self.error is not None:
            raise self.error
        return dict(self.verification, transaction_id=transaction_id)

    async def close(self):
        pass


class FakeImageClient:
    def __init__(self):
        self.uploads = []
        self.fail = False

    async def upload(self, filename, content, content_type):
        if self.fail:
            raise ImageHostError("Image host answered 500")
        self.uploads.append((filename, len(content), content_type))
        return f"https://images.test/{filename}"


def sign(body: bytes, secret: str = WEBHOOK_SECRET) -> str:
    return hmac.new(secret.encode(), body, hashlib.sha256).hexdigest()


def webhook_body(payload: dict) -> bytes:
    return json.dumps(payload).encode()


@pytest.fixture
def settings():
    return Settings(
        database_url="sqlite://",
        otel_enabled=False,
        log_format="text",
        jwt_secret=JWT_SECRET,
        payment_webhook_secret=WEBHOOK_SECRET,
        public_base_url="http://shop.test",
        contact_receiver_email="shop@example.com",
    )


@pytest.fixture
def mailer():
    return FakeMailer()


@pytest.fixture
def payment_client():
    return FakePaymentClient()


@pytest.fixture
def image_client():
    return FakeImageClient()


@pytest.fixture
def app(settings, mailer, payment_client, image_client):
    app = create_app(settings)
    app.dependency_overrides[get_mailer] = lambda: mailer
    app.dependency_overrides[get_payment_client] = lambda: payment_client
    app.dependency_overrides[get_image_client] = lambda: image_client
    return app


@pytest.fixture
def client(app):
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def db(client):
    session = client.app.state.db.session()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def make_user(client):
    """Insert a user directly and return (user, auth headers)"""

    def _make_user(email="ada@example.com", role=Role.USER, first_name="Ada", last_name="Lovelace"):
        session = client.app.state.db.session()
        try:
            user = User(
                email=email,
                hashed_password=hash_password(PASSWORD),
                role=role,
                first_name=first_name,
                last_name=last_name,
            )
            session.add(user)
            session.commit()
            session.refresh(user)
            token = create_access_token(user, secret=JWT_SECRET)
            session.expunge(user)
        finally:
            session.close()
        return user, {"Authorization": f"Bearer {token}"}

    return _make_user


@pytest.fixture
def customer(make_user):
    return make_user()


@pytest.fixture
def admin(make_user):
    return make_user(email="admin@example.com", role=Role.ADMIN, first_name="Grace", last_name="Hopper")


@pytest.fixture
def products(client, admin):
    """Two products priced 1000 and 2000 in one category"""
    _, admin_headers = admin
    created = {}
    for key, name, price in (("A", "Phone case", 1000), ("B", "Charger", 2000)):
        response = client.post(
            "/api/products",
            json={
                "name": name,
                "description": f"{name} for everyday use",
                "price": price,
                "stock": 10,
                "image_urls": [f"https://images.test/{key}.png"],
                "category": "Accessories",
            },
            headers=admin_headers,
        )
        assert response.status_code == 201, response.text
        created[key] = response.json()
    return created


def order_payload(order_id, products, quantities=None, **overrides):
    quantities = quantities or {"A": 2, "B": 1}
    items = [
        {
            "product_id": products[key]["id"],
            "quantity": quantity,
            "price": products[key]["price"],
        }
        for key, quantity in quantities.items()
    ]
    payload = {
        "id": order_id,
        "items": items,
        "total_amount": sum(item["quantity"] * item["price"] for item in items),
        "shipping_address": {
            "full_name": "Ada Lovelace",
            "phone_number": "+22990000000",
            "area": "Haie Vive",
            "street": "Rue 12",
            "city": "Cotonou",
            "state": "Littoral",
            "pincode": "01BP",
            "country": "Benin",
        },
        "payment_method": "MOBILE_MONEY",
        "user_email": "ada@example.com",
    }
    payload.update(overrides)
    return payload
