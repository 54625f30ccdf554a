"""Service provider helpers for wiring checkout with its adapters.

``get_order_service`` returns an ``OrderPlacementService`` wired with the
ORM cart reader, the ORM order repository and a payment gateway. The gateway
is the HTTP client when ``settings.USE_HTTP_ADAPTERS`` is truthy, otherwise
the process-wide in-memory stub (local development and tests).

The gateway secret key is read from settings here and handed to the service
at construction; the service never reads configuration on its own.
"""

from django.conf import settings

from apps.cart.reader import CartSnapshotReader

from .adapters import PaymentGatewayStub
from .domain import OrderPlacementService, PaymentGatewayPort
from .http_adapters import StripePaymentGateway
from .repository import OrderRepository

# Dev-only: shared so intents created by one request can be verified by the
# next. The stub bounds its own storage (see PaymentGatewayStub.max_entries).
_stub_gateway = PaymentGatewayStub()


def get_payment_gateway() -> PaymentGatewayPort:
    if getattr(settings, "USE_HTTP_ADAPTERS", True):
        return StripePaymentGateway()
    return _stub_gateway


def get_gateway_secret_key() -> str | None:
    return getattr(settings, "STRIPE_SECRET_KEY", "") or None


def get_order_service() -> OrderPlacementService:
    """Return a configured OrderPlacementService instance."""
    return OrderPlacementService(
        cart=CartSnapshotReader(),
        gateway=get_payment_gateway(),
        orders=OrderRepository(),
        gateway_secret_key=get_gateway_secret_key(),
    )
