"""Payment collaborator backed by Stripe PaymentIntents."""

import logging
from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Dict, Optional, Protocol

import stripe

from core.config import settings
from core.errors import PaymentAuthorizationError, ValidationError

logger = logging.getLogger(__name__)

# Currencies Stripe expects in major units
ZERO_DECIMAL_CURRENCIES = frozenset({
    "bif", "clp", "djf", "gnf", "jpy", "kmf", "krw", "mga",
    "pyg", "rwf", "ugx", "vnd", "vuv", "xaf", "xof", "xpf",
})


@dataclass(frozen=True)
class PaymentAuthorization:
    authorization_id: str
    client_secret: Optional[str]


class PaymentGateway(Protocol):
    def authorize(self, amount: Decimal, currency: str, metadata: Dict[str, Any]) -> PaymentAuthorization:
        ...

    def void(self, authorization_id: str) -> None:
        ...


def to_minor_units(amount: Decimal, currency: str) -> int:
    if currency.lower() in ZERO_DECIMAL_CURRENCIES:
        return int(amount.quantize(Decimal("1"), rounding=ROUND_HALF_UP))
    return int((amount * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


class StripePaymentGateway:
    def __init__(self, api_key: str | None = None, timeout: int | None = None, client: Any = None):
        self.api_key = api_key if api_key is not None else settings.STRIPE_SECRET_KEY
        self.timeout = timeout or settings.STRIPE_TIMEOUT_SECONDS
        self._client = client

    @property
    def client(self) -> "stripe.StripeClient":
        if self._client is None:
            if not self.api_key:
                raise PaymentAuthorizationError("Stripe is not configured")
            self._client = stripe.StripeClient(
                self.api_key,
                http_client=stripe.RequestsClient(timeout=self.timeout),
                max_network_retries=0,
            )
        return self._client

    def authorize(self, amount: Decimal, currency: str, metadata: Dict[str, Any]) -> PaymentAuthorization:
        if amount <= 0:
            raise PaymentAuthorizationError("Payment amount must be greater than 0")
        params = {
            "amount": to_minor_units(amount, currency),
            "currency": currency.lower(),
            "metadata": {k: str(v) for k, v in metadata.items()},
            "automatic_payment_methods": {"enabled": True},
        }
        try:
            intent = self.client.payment_intents.create(params=params)
        except stripe.CardError as e:
            logger.warning("Card declined: %s", e.user_message)
            raise PaymentAuthorizationError(e.user_message or "Card declined") from e
        except stripe.APIConnectionError as e:
            logger.error("Stripe unreachable or timed out: %s", e)
            raise PaymentAuthorizationError("Payment provider timed out") from e
        except stripe.StripeError as e:
            logger.error("Stripe error creating payment intent: %s", e)
            raise PaymentAuthorizationError(e.user_message or "Payment authorization failed") from e
        logger.info("Created payment intent %s for %s %s", intent.id, params["amount"], params["currency"])
        return PaymentAuthorization(authorization_id=intent.id, client_secret=intent.client_secret)

    def void(self, authorization_id: str) -> None:
        try:
            self.client.payment_intents.cancel(authorization_id)
        except stripe.StripeError as e:
            raise PaymentAuthorizationError(f"Could not cancel payment {authorization_id}") from e
        logger.info("Cancelled payment intent %s", authorization_id)


def construct_webhook_event(payload: bytes, signature: str | None, secret: str | None = None) -> Dict[str, Any]:
    secret = secret if secret is not None else settings.STRIPE_WEBHOOK_SECRET
    if not secret:
        raise ValidationError("Stripe webhook secret is not configured")
    if not signature:
        raise ValidationError("Missing Stripe-Signature header")
    try:
        return stripe.Webhook.construct_event(payload, signature, secret)
    except ValueError as e:
        raise ValidationError("Invalid webhook payload") from e
    except stripe.SignatureVerificationError as e:
        logger.warning("Invalid webhook signature: %s", e)
        raise ValidationError("Invalid webhook signature") from e
