"""Payment reconciliation: client reports, provider webhook and browser redirect"""
from urllib.parse import parse_qs, urlparse

import pytest

from conftest import order_payload, sign, webhook_body
from storefront.models.order import ExternalPaymentStatus, Payment
from storefront.services.errors import PaymentVerificationError


@pytest.fixture
def order(client, customer, products):
    user, headers = customer
    for key, quantity in {"A": 2, "B": 1}.items():
        client.post(
            f"/api/cart/{user.id}",
            json={"product_id": products[key]["id"], "quantity": quantity},
            headers=headers,
        )
    response = client.post("/api/order/create", json=order_payload("order-1", products), headers=headers)
    assert response.status_code == 201
    return response.json()


def confirm(client, headers, status, order_id="order-1"):
    return client.post(
        "/api/orders/confirm",
        json={"transactionId": order_id, "status": status, "amount": 4000, "paymentMethod": "CARD"},
        headers=headers,
    )


def cart_size(client, customer):
    user, headers = customer
    return len(client.get(f"/api/cart/{user.id}", headers=headers).json()["items"])


@pytest.mark.parametrize("status", ["FAILED", "CANCELLED"])
def test_failed_report_keeps_cart(client, customer, order, status):
    _, headers = customer
    response = confirm(client, headers, status)
    assert response.status_code == 200
    assert response.json()["payment_status"] == "FAILED"
    assert response.json()["payment"]["status"] == "FAILED"
    assert cart_size(client, customer) == 2


def test_pending_report_changes_nothing(client, customer, order):
    _, headers = customer
    body = confirm(client, headers, "PENDING").json()
    assert body["payment_status"] == "PENDING"
    assert cart_size(client, customer) == 2


def test_repeated_success_is_a_noop(client, customer, order):
    _, headers = customer
    first = confirm(client, headers, "SUCCESS").json()
    second = confirm(client, headers, "SUCCESS")
    assert second.status_code == 200
    assert second.json()["payment"] == first["payment"]


def test_settled_payment_cannot_flip(client, customer, order):
    _, headers = customer
    assert confirm(client, headers, "SUCCESS").status_code == 200
    response = confirm(client, headers, "FAILED")
    assert response.status_code == 409

    orders = client.get("/api/order/user-orders", headers=headers).json()["orders"]
    assert orders[0]["payment_status"] == "COMPLETED"


def test_unknown_status_rejected(client, customer, order):
    _, headers = customer
    assert confirm(client, headers, "sort-of-paid").status_code == 400


def test_confirm_unknown_order(client, customer, order):
    _, headers = customer
    assert confirm(client, headers, "SUCCESS", order_id="nope").status_code == 404


def test_confirm_someone_elses_order(client, make_user, order):
    _, other_headers = make_user(email="eve@example.com")
    assert confirm(client, other_headers, "SUCCESS").status_code == 403


def test_provider_answer_wins_when_configured(client, customer, order, payment_client):
    _, headers = customer
    payment_client.answer(ExternalPaymentStatus.FAILED, amount=4000)

    response = confirm(client, headers, "SUCCESS")
    assert response.status_code == 200
    assert response.json()["payment_status"] == "FAILED"
    assert payment_client.verified == ["order-1"]
    assert cart_size(client, customer) == 2


def test_provider_outage_is_502(client, customer, order, payment_client):
    _, headers = customer
    payment_client.error = PaymentVerificationError("Payment provider unreachable")

    assert confirm(client, headers, "SUCCESS").status_code == 502
    orders = client.get("/api/order/user-orders", headers=headers).json()["orders"]
    assert orders[0]["payment_status"] == "PENDING"


def test_webhook_requires_valid_signature(client, order):
    body = webhook_body({"transactionId": "order-1", "status": "SUCCESS", "amount": 4000, "method": "CARD"})

    missing = client.post("/api/kkiapay-callback", content=body, headers={"content-type": "application/json"})
    forged = client.post(
        "/api/kkiapay-callback",
        content=body,
        headers={"content-type": "application/json", "x-kkiapay-signature": sign(body, "wrong")},
    )
    assert missing.status_code == 401
    assert forged.status_code == 401


def test_webhook_reconciles(client, customer, order):
    _, headers = customer
    body = webhook_body({"transactionId": "order-1", "status": "SUCCESS", "amount": 4000, "paymentMethod": "CARD"})

    response = client.post(
        "/api/kkiapay-callback",
        content=body,
        headers={"content-type": "application/json", "x-kkiapay-signature": sign(body)},
    )
    assert response.status_code == 200
    assert response.json() == {"success": True, "order_id": "order-1", "payment_status": "COMPLETED"}

    saved = client.get("/api/order/user-orders", headers=headers).json()["orders"][0]
    assert saved["payment"]["payment_method"] == "CARD"
    assert saved["status"] == "PENDING"
    assert cart_size(client, customer) == 0


def post_webhook(client, payload):
    body = webhook_body(payload)
    return client.post(
        "/api/kkiapay-callback",
        content=body,
        headers={"content-type": "application/json", "x-kkiapay-signature": sign(body)},
    )


def provider_event(status, transaction_id="kkiapay-tx-999", reference="order-1", **fields):
    data = {"id": transaction_id, "status": status, "amount": 4000, "currency": "XOF", **fields}
    if reference is not None:
        data["reference"] = reference
    return {"event_type": f"transaction.{status.lower()}", "data": data}


def test_provider_event_resolved_by_reference(client, customer, order):
    _, headers = customer
    response = post_webhook(client, provider_event("SUCCESS", paymentMethod="MOBILE_MONEY_MTN"))
    assert response.status_code == 200
    assert response.json() == {"success": True, "order_id": "order-1", "payment_status": "COMPLETED"}

    payment = client.get("/api/order/user-orders", headers=headers).json()["orders"][0]["payment"]
    assert payment["transaction_id"] == "kkiapay-tx-999"
    assert payment["payment_method"] == "MOBILE_MONEY_MTN"
    assert cart_size(client, customer) == 0


def test_provider_event_resolved_by_stored_transaction_id(client, customer, order, db):
    db.query(Payment).filter(Payment.order_id == "order-1").update({"transaction_id": "kkiapay-tx-7"})
    db.commit()

    response = post_webhook(client, provider_event("FAILED", transaction_id="kkiapay-tx-7", reference=None))
    assert response.status_code == 200
    assert response.json()["order_id"] == "order-1"
    assert response.json()["payment_status"] == "FAILED"


def test_provider_event_for_unknown_order(client, order):
    response = post_webhook(client, provider_event("SUCCESS", transaction_id="kkiapay-tx-1", reference="nope"))
    assert response.status_code == 404


def test_webhook_still_reads_legacy_method_key(client, customer, order):
    _, headers = customer
    response = post_webhook(client, {"transactionId": "order-1", "status": "FAILED", "method": "CARD"})
    assert response.status_code == 200
    payment = client.get("/api/order/user-orders", headers=headers).json()["orders"][0]["payment"]
    assert payment["payment_method"] == "CARD"


def test_webhook_rejects_unknown_status(client, order):
    body = webhook_body({"transactionId": "order-1", "status": "MAYBE"})
    response = client.post(
        "/api/kkiapay-callback",
        content=body,
        headers={"content-type": "application/json", "x-kkiapay-signature": sign(body)},
    )
    assert response.status_code == 400


def test_webhook_unknown_order(client, order):
    body = webhook_body({"transactionId": "nope", "status": "SUCCESS"})
    response = client.post(
        "/api/kkiapay-callback",
        content=body,
        headers={"content-type": "application/json", "x-kkiapay-signature": sign(body)},
    )
    assert response.status_code == 404


def redirect_target(response):
    assert response.status_code == 307
    location = urlparse(response.headers["location"])
    assert location.netloc == "shop.test"
    assert location.path == "/order-status"
    return {key: values[0] for key, values in parse_qs(location.query).items()}


def test_browser_return_success(client, customer, order, payment_client):
    payment_client.answer(ExternalPaymentStatus.SUCCESS, amount=4000)

    response = client.get(
        "/api/kkiapay-callback",
        params={"transactionId": "order-1", "transaction_id": "kkia-99"},
        follow_redirects=False,
    )
    assert redirect_target(response) == {"orderId": "order-1", "status": "success"}
    assert payment_client.verified == ["kkia-99"]
    assert cart_size(client, customer) == 0


def test_browser_return_failure(client, order, payment_client):
    payment_client.answer(ExternalPaymentStatus.FAILED, message="Insufficient funds")

    response = client.get("/api/kkiapay-callback", params={"transactionId": "order-1"}, follow_redirects=False)
    target = redirect_target(response)
    assert target["status"] == "failed"
    assert target["message"] == "Insufficient funds"


def test_browser_return_unknown_order(client, order, payment_client):
    payment_client.answer(ExternalPaymentStatus.SUCCESS)
    response = client.get("/api/kkiapay-callback", params={"transactionId": "nope"}, follow_redirects=False)
    assert redirect_target(response)["status"] == "failed"
    assert payment_client.verified == []


def test_browser_return_without_order_id(client, order):
    response = client.get("/api/kkiapay-callback", follow_redirects=False)
    assert redirect_target(response)["orderId"] == "unknown"
