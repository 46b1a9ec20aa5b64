"""Payment provider and image host clients against mocked HTTP transports"""
import asyncio
import json

import httpx
import pytest

from conftest import sign
from storefront.models.order import ExternalPaymentStatus, PaymentStatus
from storefront.services.errors import ImageHostError, PaymentVerificationError
from storefront.services.image_client import ImageHostClient
from storefront.services.order_service import to_money
from storefront.services.payment_client import (
    PRODUCTION_BASE_URL,
    SANDBOX_BASE_URL,
    PaymentProviderClient,
)


def with_transport(client, handler):
    client.client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return client


@pytest.mark.parametrize(
    "reported,expected",
    [
        (ExternalPaymentStatus.SUCCESS, PaymentStatus.COMPLETED),
        (ExternalPaymentStatus.FAILED, PaymentStatus.FAILED),
        (ExternalPaymentStatus.CANCELLED, PaymentStatus.FAILED),
        (ExternalPaymentStatus.PENDING, PaymentStatus.PENDING),
    ],
)
def test_reported_status_mapping(reported, expected):
    assert reported.to_payment_status() is expected


def test_money_rounds_to_cents():
    assert str(to_money(1000)) == "1000.00"
    assert str(to_money(19.999)) == "20.00"
    assert to_money(0.1) * 3 == to_money(0.3)


def test_base_url_follows_sandbox_flag():
    assert PaymentProviderClient(sandbox=True).base_url == SANDBOX_BASE_URL
    assert PaymentProviderClient(sandbox=False).base_url == PRODUCTION_BASE_URL


def test_signature_check():
    client = PaymentProviderClient(webhook_secret="webhook-secret")
    body = b'{"transactionId": "order-1"}'
    assert client.verify_signature(body, sign(body))
    assert not client.verify_signature(body, sign(body, "other"))
    assert not client.verify_signature(body, None)
    assert not PaymentProviderClient().verify_signature(body, sign(body))


def test_verify_transaction_success():
    seen = {}

    def handler(request):
        seen["url"] = str(request.url)
        seen["key"] = request.headers.get("X-API-KEY")
        seen["body"] = json.loads(request.content)
        return httpx.Response(
            200,
            json={"status": "SUCCESS", "amount": 4000, "transactionId": "kkia-1", "source": "MOBILE_MONEY"},
        )

    client = with_transport(PaymentProviderClient(private_api_key="pk_test"), handler)
    result = asyncio.run(client.verify_transaction("kkia-1"))

    assert seen == {
        "url": f"{SANDBOX_BASE_URL}/v1/transactions/verify",
        "key": "pk_test",
        "body": {"transactionId": "kkia-1"},
    }
    assert result["status"] is ExternalPaymentStatus.SUCCESS
    assert result["amount"] == 4000
    assert result["payment_method"] == "MOBILE_MONEY"


@pytest.mark.parametrize(
    "response",
    [
        httpx.Response(500, json={"message": "boom"}),
        httpx.Response(200, json={"status": "WHO_KNOWS"}),
        httpx.Response(200, content=b"not json"),
        httpx.Response(200, json=["SUCCESS"]),
        httpx.Response(200, json="SUCCESS"),
    ],
)
def test_verify_transaction_failures(response):
    client = with_transport(PaymentProviderClient(private_api_key="pk_test"), lambda request: response)
    with pytest.raises(PaymentVerificationError):
        asyncio.run(client.verify_transaction("kkia-1"))


def test_verify_transaction_network_error():
    def handler(request):
        raise httpx.ConnectError("refused", request=request)

    client = with_transport(PaymentProviderClient(private_api_key="pk_test"), handler)
    with pytest.raises(PaymentVerificationError):
        asyncio.run(client.verify_transaction("kkia-1"))


def test_verify_transaction_needs_api_key():
    with pytest.raises(PaymentVerificationError):
        asyncio.run(PaymentProviderClient().verify_transaction("kkia-1"))


def test_image_upload():
    seen = {}

    def handler(request):
        seen["body"] = request.content
        return httpx.Response(200, json={"secure_url": "https://cdn.test/shoe.png"})

    client = with_transport(
        ImageHostClient(upload_url="https://upload.test", api_key="key", upload_preset="products"),
        handler,
    )
    url = asyncio.run(client.upload("shoe.png", b"\x89PNG", "image/png"))

    assert url == "https://cdn.test/shoe.png"
    assert b'name="upload_preset"' in seen["body"]
    assert b'filename="shoe.png"' in seen["body"]


def test_image_upload_failures():
    client = with_transport(
        ImageHostClient(upload_url="https://upload.test"),
        lambda request: httpx.Response(503),
    )
    with pytest.raises(ImageHostError):
        asyncio.run(client.upload("shoe.png", b"\x89PNG", "image/png"))

    with pytest.raises(ImageHostError):
        asyncio.run(ImageHostClient().upload("shoe.png", b"\x89PNG", "image/png"))
