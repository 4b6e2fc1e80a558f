"""
Payment gateway client: creates Stripe payment intents over the REST API.
"""
import logging
from decimal import ROUND_DOWN, Decimal, InvalidOperation
from typing import Any, Optional

import httpx

from errors import GatewayError, invalid

logger = logging.getLogger(__name__)


def to_minor_units(price: Any) -> int:
    """Decimal price to an integer amount in the smallest currency unit (truncated)."""
    try:
        value = Decimal(str(price))
    except (InvalidOperation, ValueError):
        raise invalid("price must be a number")
    if not value.is_finite() or value <= 0:
        raise invalid("price must be greater than zero")
    try:
        return int((value * 100).quantize(Decimal("1"), rounding=ROUND_DOWN))
    except InvalidOperation:
        raise invalid("price is too large")


class PaymentGateway:
    """Thin client for the gateway's payment-intent endpoint"""

    def __init__(
        self,
        secret_key: Optional[str],
        api_url: str,
        currency: str = "usd",
        timeout: float = 30.0,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        self.secret_key = secret_key
        self.currency = currency
        self.client = httpx.Client(base_url=api_url, timeout=timeout, transport=transport)

    def is_available(self) -> bool:
        return bool(self.secret_key)

    def create_payment_intent(self, amount: int) -> str:
        """Create a card payment intent and return its client secret."""
        if not self.is_available():
            raise GatewayError("payment gateway secret key not configured")

        try:
            response = self.client.post(
                "/payment_intents",
                headers={"Authorization": f"Bearer {self.secret_key}"},
                data={
                    "amount": str(amount),
                    "currency": self.currency,
                    "payment_method_types[]": "card",
                },
            )
        except httpx.HTTPError as e:
            raise GatewayError(f"request failed: {e}") from e

        if response.status_code != 200:
            logger.error(f"❌ Failed to create payment intent: HTTP {response.status_code} {response.text[:200]}")
            raise GatewayError(f"HTTP {response.status_code}")

        client_secret = response.json().get("client_secret")
        if not client_secret:
            raise GatewayError("response carried no client_secret")
        logger.info(f"✅ Payment intent created for {amount} {self.currency}")
        return client_secret

    def close(self) -> None:
        self.client.close()
