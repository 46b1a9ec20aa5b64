"""
HTTP client for the payment provider (Kkiapay) transaction API
"""
import hashlib
import hmac
import httpx
from typing import Dict, Optional
from opentelemetry import trace
from storefront.models.order import ExternalPaymentStatus
from storefront.services.errors import PaymentVerificationError
import logging

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)

SANDBOX_BASE_URL = "https://api-sandbox.kkiapay.me"
PRODUCTION_BASE_URL = "https://api.kkiapay.me"


class PaymentProviderClient:
    """Client for server-side verification of widget transactions"""

    def __init__(
        self,
        private_api_key: Optional[str] = None,
        webhook_secret: Optional[str] = None,
        sandbox: bool = True,
        timeout: float = 10.0
    ):
        self.private_api_key = private_api_key
        self.webhook_secret = webhook_secret
        self.base_url = SANDBOX_BASE_URL if sandbox else PRODUCTION_BASE_URL
        self.client = httpx.AsyncClient(timeout=timeout)

    @property
    def is_configured(self) -> bool:
        return bool(self.private_api_key)

    def verify_signature(self, raw_body: bytes, signature: Optional[str]) -> bool:
        """Check the hex HMAC-SHA256 of a webhook body against its signature header"""
        if not signature or not self.webhook_secret:
            return False
        digest = hmac.new(self.webhook_secret.encode(), raw_body, hashlib.sha256).hexdigest()
        return hmac.compare_digest(digest, signature.strip().lower())

    async def verify_transaction(self, transaction_id: str) -> Dict:
        """
        Ask the provider for the state of a transaction

        Returns:
            Dict with ``status`` (ExternalPaymentStatus), ``amount``,
            ``currency``, ``payment_method``, ``transaction_id`` and
            ``message``

        Raises:
            PaymentVerificationError: provider unreachable, error answer or
            unknown status
        """
        with tracer.start_as_current_span("payment_client.verify_transaction") as span:
            span.set_attribute("payment.transaction_id", transaction_id)

            if not self.is_configured:
                raise PaymentVerificationError("Payment provider API key is not configured")

            url = f"{self.base_url}/v1/transactions/verify"
            logger.info(f"Calling payment provider: POST {url}")

            try:
                response = await self.client.post(
                    url,
                    json={"transactionId": transaction_id},
                    headers={"X-API-KEY": self.private_api_key, "Accept": "application/json"}
                )
            except httpx.HTTPError as e:
                logger.error(f"Failed to call payment provider: {e}")
                span.record_exception(e)
                raise PaymentVerificationError(f"Payment provider unreachable: {e}")

            span.set_attribute("http.status_code", response.status_code)

            if response.status_code != 200:
                logger.error(f"Payment provider error: {response.status_code}")
                raise PaymentVerificationError(
                    f"Payment provider answered {response.status_code} for {transaction_id}"
                )

            try:
                data = response.json()
                if not isinstance(data, dict):
                    raise ValueError(f"expected a JSON object, got {type(data).__name__}")
                status =ExternalPaymentStatus(str(data.get("status", "")).upper())
            except ValueError as e:
                logger.error(f"Unexpected payment provider answer: {e}")
                raise PaymentVerificationError("Unexpected payment provider answer")

            reason = data.get("reason") or {}
            result = {
                "status": status,
                "amount": data.get("amount"),
                "currency": data.get("currency"),
                "payment_method": data.get("paymentMethod") or data.get("source"),
                "transaction_id": data.get("transactionId") or transaction_id,
                "message": reason.get("message") if isinstance(reason, dict) else None,
            }
            span.set_attribute("payment.status", status.value)
            logger.info(f"Transaction {transaction_id} verified: {status.value}")
            return result

    async def close(self):
        """Close the HTTP client"""
        await self.client.aclose()
