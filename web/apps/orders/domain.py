"""Domain models, ports and the order placement service.

This module holds the dataclasses that flow through checkout, the protocol
definitions (ports) for the collaborators the placement service depends on
(cart snapshot, payment gateway, order store), and ``OrderPlacementService``,
which turns a user's cart into exactly one order while guarding against
client retries, tampered payment amounts and replayed payment intents.

Nothing here touches Django or the network; adapters live in
``adapters``, ``http_adapters``, ``repository`` and ``apps.cart.reader``.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any, List, Optional, Protocol

from .errors import (
    AmountMismatch,
    CheckoutError,
    ConfigurationError,
    DuplicateIdempotencyKey,
    DuplicateTransaction,
    EmptyCart,
    GatewayUnavailable,
    IdempotencyKeyConflict,
    IntentNotSuccessful,
    IntentOwnershipMismatch,
    OrderValidationError,
    TransactionReused,
)
from .pricing import to_minor_units

logger = logging.getLogger(__name__)


# ---- Enums ----
class PaymentMethod(str, Enum):
    """Payment methods accepted at checkout."""

    COD = "cod"
    STRIPE = "stripe"

    @property
    def requires_gateway(self) -> bool:
        return self is PaymentMethod.STRIPE


class PaymentStatus(str, Enum):
    PAID = "PAID"
    UNPAID = "UNPAID"


class OrderStatus(str, Enum):
    """Fulfilment status. Placement always creates ``NEW`` orders."""

    NEW = "NEW"
    PROCESSING = "PROCESSING"
    DELIVERED = "DELIVERED"
    CANCELLED = "CANCELLED"


# ---- Entities / DTOs ----
@dataclass(frozen=True)
class OrderLine:
    """A priced line item, either in a cart snapshot or on an order."""

    product_id: str
    title: str
    sku: str
    unit_price: Decimal
    quantity: int
    amount: Decimal
    variant_id: Optional[str] = None


@dataclass(frozen=True)
class CartSnapshot:
    """The user's cart at the moment it was read, with computed totals.

    Attributes:
        lines: Line items in the cart.
        sub_total: Sum of line amounts.
        shipping_cost: Shipping charged for this cart.
        coupon_discount: Discount applied to the cart.
        total: Amount payable, in major currency units.
        currency: ISO currency code (e.g. 'USD').
    """

    lines: List[OrderLine]
    sub_total: Decimal
    shipping_cost: Decimal
    coupon_discount: Decimal
    total: Decimal
    currency: str

    @property
    def amount_minor(self) -> int:
        """Payable total in minor units (cents for USD)."""
        return to_minor_units(self.total, self.currency)

    @property
    def quantity(self) -> int:
        return sum(line.quantity for line in self.lines)


@dataclass(frozen=True)
class ShippingDetails:
    first_name: str
    last_name: str
    email: str
    phone: str
    address1: str
    city: str
    post_code: str
    country: str
    address2: str = ""
    state: str = ""


@dataclass(frozen=True)
class PlacementRequest:
    """What the client asked for: how to pay and where to ship."""

    payment_method: PaymentMethod
    shipping: ShippingDetails
    payment_intent_id: Optional[str] = None
    notes: str = ""


@dataclass(frozen=True)
class PaymentIntent:
    """Authoritative state of a payment intent as reported by the gateway.

    Amounts are in minor units. ``amount_received`` is what was actually
    captured; it may be missing on intents that never completed.
    """

    id: str
    status: str
    amount: Optional[int] = None
    amount_received: Optional[int] = None
    currency: Optional[str] = None
    metadata: dict = field(default_factory=dict)
    client_secret: Optional[str] = None

    @property
    def succeeded(self) -> bool:
        return self.status == "succeeded"


@dataclass(frozen=True)
class NewOrder:
    """Everything the order store needs to insert an order."""

    user_id: Any
    lines: List[OrderLine]
    sub_total: Decimal
    shipping_cost: Decimal
    coupon_discount: Decimal
    total_amount: Decimal
    currency: str
    payment_method: PaymentMethod
    payment_status: PaymentStatus
    shipping: ShippingDetails
    transaction_id: Optional[str] = None
    idempotency_key: Optional[str] = None
    notes: str = ""

    @property
    def quantity(self) -> int:
        return sum(line.quantity for line in self.lines)


@dataclass
class Order:
    """A persisted order."""

    id: Any
    order_number: str
    user_id: Any
    items: List[OrderLine]
    status: OrderStatus
    payment_method: PaymentMethod
    payment_status: PaymentStatus
    sub_total: Decimal
    shipping_cost: Decimal
    coupon_discount: Decimal
    total_amount: Decimal
    currency: str
    quantity: int
    shipping: ShippingDetails
    transaction_id: Optional[str] = None
    notes: str = ""
    created_at: Optional[datetime] = None


@dataclass(frozen=True)
class PlacementResult:
    """Outcome of ``place_order``.

    ``created`` is False when an earlier order was returned for the same
    idempotency key.
    """

    order: Order
    created: bool


# ---- Ports (DIP) ----
class CartReader(Protocol):
    """Reads the current cart of a user and prices it."""

    def get_cart_total(self, user_id: Any) -> CartSnapshot:
        raise NotImplementedError()


class PaymentGatewayPort(Protocol):
    """Subset of the payment gateway API used by checkout.

    Implementations must raise ``PaymentIntentNotFound`` for unknown intents
    and ``GatewayUnavailable`` for timeouts, transport errors and responses
    they cannot interpret.
    """

    def retrieve_payment_intent(self, secret_key: str, intent_id: str) -> PaymentIntent:
        raise NotImplementedError()

    def create_payment_intent(
        self,
        secret_key: str,
        amount: int,
        currency: str,
        metadata: dict,
        idempotency_key: Optional[str] = None,
    ) -> PaymentIntent:
        raise NotImplementedError()


class OrderStore(Protocol):
    """Order persistence.

    ``create`` must be backed by unique indexes on the idempotency key and on
    the transaction id, and must raise ``DuplicateIdempotencyKey`` or
    ``DuplicateTransaction`` when an insert loses a race on either.
    """

    def find_by_idempotency_key(self, key: str, user_id: Any = None) -> Optional[Order]:
        raise NotImplementedError()

    def find_by_transaction_id(self, transaction_id: str) -> Optional[Order]:
        raise NotImplementedError()

    def create(self, new_order: NewOrder) -> Order:
        raise NotImplementedError()


# ---- Domain service ----
class OrderPlacementService:
    """Converts a user's cart into a durable order.

    The service holds no state between calls. It performs at most one write
    (the order insert) and only after every check has passed, so a rejected
    placement never leaves anything behind.
    """

    def __init__(
        self,
        cart: CartReader,
        gateway: PaymentGatewayPort,
        orders: OrderStore,
        gateway_secret_key: Optional[str] = None,
    ):
        """Initialize the service with its collaborators.

        Args:
            cart: Source of the expected payable total.
            gateway: Payment gateway used to verify card payments.
            orders: Order persistence.
            gateway_secret_key: Merchant secret for the gateway. Only needed
                for gateway payment methods.
        """
        self.cart = cart
        self.gateway = gateway
        self.orders = orders
        self.gateway_secret_key = gateway_secret_key

    def place_order(
        self,
        user_id: Any,
        request: PlacementRequest,
        idempotency_key: Optional[str] = None,
    ) -> PlacementResult:
        """Place an order for ``user_id``.

        Steps: idempotent replay lookup, fresh cart snapshot, payment
        verification for gateway methods, then a single insert.

        Args:
            user_id: Primary key of the authenticated user.
            request: Payment method, shipping details and payment intent id.
            idempotency_key: Optional client-supplied key identifying this
                logical submission.

        Returns:
            PlacementResult with ``created=True`` for a new order, or
            ``created=False`` when an order already exists for the key.

        Raises:
            EmptyCart: The cart has no lines.
            OrderValidationError: A gateway method was chosen without an
                intent id.
            ConfigurationError: No gateway secret key is configured.
            GatewayUnavailable: The gateway failed, timed out or answered
                something that cannot be trusted.
            IntentNotSuccessful: The intent is missing or not succeeded.
            AmountMismatch: Captured amount or currency differs from the cart.
            TransactionReused: The intent already backs another order.
            IntentOwnershipMismatch: The intent was created for another user.
            IdempotencyKeyConflict: The key belongs to another user's order.
        """
        if idempotency_key:
            existing = self.orders.find_by_idempotency_key(idempotency_key, user_id=user_id)
            if existing is not None:
                logger.info(
                    "order replayed for idempotency key",
                    extra={"user_id": str(user_id), "order_number": existing.order_number},
                )
                return PlacementResult(order=existing, created=False)

        cart = self.cart.get_cart_total(user_id)
        if not cart.lines:
            raise EmptyCart()

        transaction_id = None
        payment_status = PaymentStatus.UNPAID
        if request.payment_method.requires_gateway:
            intent = self._verify_payment(user_id, request.payment_intent_id, cart)
            transaction_id = intent.id
            payment_status = PaymentStatus.PAID

        new_order = NewOrder(
            user_id=user_id,
            lines=list(cart.lines),
            sub_total=cart.sub_total,
            shipping_cost=cart.shipping_cost,
            coupon_discount=cart.coupon_discount,
            total_amount=cart.total,
            currency=cart.currency,
            payment_method=request.payment_method,
            payment_status=payment_status,
            shipping=request.shipping,
            transaction_id=transaction_id,
            idempotency_key=idempotency_key or None,
            notes=request.notes,
        )
        return self._persist(new_order)

    def _verify_payment(self, user_id: Any, intent_id: Optional[str], cart: CartSnapshot) -> PaymentIntent:
        if not intent_id:
            raise OrderValidationError("paymentIntentId is required for card payments")
        if not self.gateway_secret_key:
            logger.error("gateway secret key is not configured")
            raise ConfigurationError()

        try:
            intent = self.gateway.retrieve_payment_intent(self.gateway_secret_key, intent_id)
        except CheckoutError:
            raise
        except Exception as exc:
            logger.exception("payment intent retrieval failed", extra={"payment_intent_id": intent_id})
            raise GatewayUnavailable() from exc

        if intent.id != intent_id:
            logger.warning(
                "gateway returned a different payment intent",
                extra={"payment_intent_id": intent_id, "returned_id": intent.id},
            )
            raise GatewayUnavailable()

        if not intent.succeeded:
            logger.warning(
                "payment intent not succeeded",
                extra={"payment_intent_id": intent_id, "intent_status": intent.status},
            )
            raise IntentNotSuccessful()

        self._check_amount(intent, cart)

        if self.orders.find_by_transaction_id(intent_id) is not None:
            logger.warning("payment intent replayed", extra={"payment_intent_id": intent_id, "user_id": str(user_id)})
            raise TransactionReused()

        owner = intent.metadata.get("userId")
        if owner is not None and str(owner) != str(user_id):
            logger.warning("payment intent owner mismatch", extra={"payment_intent_id": intent_id, "user_id": str(user_id)})
            raise IntentOwnershipMismatch()

        return intent

    @staticmethod
    def _check_amount(intent: PaymentIntent, cart: CartSnapshot) -> None:
        captured = intent.amount_received
        same_currency = (intent.currency or "").upper() == cart.currency.upper()
        if captured is None or not same_currency or captured != cart.amount_minor:
            logger.warning(
                "payment amount mismatch",
                extra={
                    "payment_intent_id": intent.id,
                    "amount_received": captured,
                    "intent_currency": intent.currency,
                    "expected_amount": cart.amount_minor,
                    "expected_currency": cart.currency,
                },
            )
            raise AmountMismatch()

    def _persist(self, new_order: NewOrder) -> PlacementResult:
        try:
            order = self.orders.create(new_order)
        except DuplicateIdempotencyKey:
            # Lost the race to a concurrent submission with the same key.
            winner = self.orders.find_by_idempotency_key(new_order.idempotency_key, user_id=new_order.user_id)
            if winner is None:
                raise IdempotencyKeyConflict()
            return PlacementResult(order=winner, created=False)
        except DuplicateTransaction:
            raise TransactionReused()

        logger.info(
            "order placed",
            extra={
                "order_number": order.order_number,
                "user_id": str(order.user_id),
                "payment_method": order.payment_method.value,
                "total_amount": str(order.total_amount),
            },
        )
        return PlacementResult(order=order, created=True)
