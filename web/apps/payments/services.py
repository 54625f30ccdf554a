"""Payment-intent creation and gateway webhook handling.

Both operations read their configuration (secret key, webhook secret,
environment) from Django settings on each call, so tests can override them
with the ``settings`` fixture.
"""

import json
import logging
from typing import Optional, Tuple

import stripe
from django.conf import settings

from apps.cart.reader import CartSnapshotReader
from apps.orders import providers
from apps.orders.domain import CartSnapshot, PaymentIntent
from apps.orders.errors import CheckoutError, ConfigurationError, EmptyCart, GatewayUnavailable
from apps.orders.repository import OrderRepository

logger = logging.getLogger(__name__)

# Environments that may receive unsigned webhook events.
UNSIGNED_WEBHOOK_ENVS = ("development", "test", "local")


class WebhookError(CheckoutError):
    code = "WEBHOOK_REJECTED"
    status_code = 400
    default_message = "Webhook rejected"

    def __init__(self, message: Optional[str] = None, status_code: Optional[int] = None):
        super().__init__(message)
        if status_code is not None:
            self.status_code = status_code


def create_intent_for_cart(user_id, idempotency_key: Optional[str] = None) -> Tuple[PaymentIntent, CartSnapshot]:
    """Create a gateway intent for the user's current cart total.

    The amount is always computed server-side from the cart. ``userId`` is
    stored in the intent metadata so checkout can later verify ownership.

    Raises:
        EmptyCart: Nothing to pay for.
        ConfigurationError: No gateway secret key.
        GatewayUnavailable: The gateway call failed.
    """
    cart = CartSnapshotReader().get_cart_total(user_id)
    if not cart.lines or cart.amount_minor <= 0:
        raise EmptyCart()

    secret_key = providers.get_gateway_secret_key()
    if not secret_key:
        logger.error("gateway secret key is not configured")
        raise ConfigurationError()

    gateway = providers.get_payment_gateway()
    try:
        intent = gateway.create_payment_intent(
            secret_key,
            amount=cart.amount_minor,
            currency=cart.currency,
            metadata={"userId": str(user_id)},
            idempotency_key=idempotency_key,
        )
    except CheckoutError:
        raise
    except Exception as exc:
        logger.exception("payment intent creation failed", extra={"user_id": str(user_id)})
        raise GatewayUnavailable() from exc

    logger.info(
        "payment intent created",
        extra={"payment_intent_id": intent.id, "user_id": str(user_id), "amount": cart.amount_minor},
    )
    return intent, cart


def _parse_event(payload: bytes, signature: Optional[str]) -> dict:
    secret = getattr(settings, "STRIPE_WEBHOOK_SECRET", "")
    if secret:
        if not signature:
            raise WebhookError("Missing Stripe-Signature header", status_code=400)
        try:
            stripe.WebhookSignature.verify_header(
                payload.decode("utf-8"), signature, secret, stripe.Webhook.DEFAULT_TOLERANCE
            )
        except (ValueError, stripe.SignatureVerificationError):
            logger.warning("webhook signature verification failed")
            raise WebhookError("Invalid webhook signature", status_code=400) from None
    elif getattr(settings, "APP_ENV", "production") not in UNSIGNED_WEBHOOK_ENVS:
        logger.error("webhook received but no webhook secret is configured")
        raise WebhookError("Webhook secret is required", status_code=503)

    try:
        event = json.loads(payload)
    except ValueError:
        raise WebhookError("Invalid webhook payload", status_code=400) from None
    if not isinstance(event, dict):
        raise WebhookError("Invalid webhook payload", status_code=400)
    return event


def handle_webhook(payload: bytes, signature: Optional[str]) -> dict:
    """Verify and apply a gateway event.

    ``payment_intent.succeeded`` flags the order backed by that intent as
    paid. Other event types are acknowledged and ignored.

    Returns:
        dict: ``{"type": ..., "updated": n}``.

    Raises:
        WebhookError: Missing or invalid signature (400), malformed payload
            (400), or no webhook secret outside local environments (503).
    """
    event = _parse_event(payload, signature)
    event_type = event.get("type")
    updated = 0

    if event_type == "payment_intent.succeeded":
        obj = (event.get("data") or {}).get("object") or {}
        intent_id = obj.get("id")
        if intent_id:
            updated = OrderRepository().mark_paid_by_transaction_id(intent_id)
        logger.info("payment intent succeeded event", extra={"payment_intent_id": intent_id, "orders_updated": updated})
    else:
        logger.info("webhook event ignored", extra={"event_type": event_type})

    return {"type": event_type, "updated": updated}
