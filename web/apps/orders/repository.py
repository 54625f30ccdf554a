"""Repository layer for persisting orders.

``OrderRepository`` implements the domain ``OrderStore`` port on top of the
Django ORM and maps rows to domain ``Order`` objects so the placement
service never sees ORM types.

The unique indexes on ``idempotency_key`` and ``transaction_id`` close the
check-then-insert race: when two submissions pass the lookups concurrently,
one insert fails with ``IntegrityError`` and ``create`` reports which key
collided.
"""

import logging
from typing import Any, Optional

from django.db import IntegrityError, transaction

from .domain import (
    NewOrder,
    Order,
    OrderLine,
    OrderStatus,
    PaymentMethod,
    PaymentStatus,
    ShippingDetails,
)
from .errors import DuplicateIdempotencyKey, DuplicateTransaction
from .models import OrderLineModel, OrderModel
from .signals import order_placed

logger = logging.getLogger(__name__)


def order_from_model(obj: OrderModel) -> Order:
    """Map an ``OrderModel`` (with its lines) to a domain ``Order``."""
    items = [
        OrderLine(
            product_id=line.product_id,
            variant_id=line.variant_id,
            title=line.title,
            sku=line.sku,
            unit_price=line.unit_price,
            quantity=line.quantity,
            amount=line.amount,
        )
        for line in obj.lines.all()
    ]
    return Order(
        id=obj.id,
        order_number=obj.order_number,
        user_id=obj.user_id,
        items=items,
        status=OrderStatus(obj.status),
        payment_method=PaymentMethod(obj.payment_method),
        payment_status=PaymentStatus(obj.payment_status),
        sub_total=obj.sub_total,
        shipping_cost=obj.shipping_cost,
        coupon_discount=obj.coupon_discount,
        total_amount=obj.total_amount,
        currency=obj.currency,
        quantity=obj.quantity,
        shipping=ShippingDetails(
            first_name=obj.first_name,
            last_name=obj.last_name,
            email=obj.email,
            phone=obj.phone,
            address1=obj.address1,
            address2=obj.address2,
            city=obj.city,
            state=obj.state,
            post_code=obj.post_code,
            country=obj.country,
        ),
        transaction_id=obj.transaction_id,
        notes=obj.notes,
        created_at=obj.created_at,
    )


class OrderRepository:
    """Order persistence using the Django ORM."""

    def _first(self, **filters) -> Optional[Order]:
        obj = OrderModel.objects.filter(**filters).prefetch_related("lines").first()
        return order_from_model(obj) if obj is not None else None

    def find_by_idempotency_key(self, key: str, user_id: Any = None) -> Optional[Order]:
        """Return the order created with ``key``.

        When ``user_id`` is given the lookup is restricted to that user's
        orders, so one user cannot fetch another's order by guessing a key.
        """
        filters = {"idempotency_key": key}
        if user_id is not None:
            filters["user_id"] = user_id
        return self._first(**filters)

    def find_by_transaction_id(self, transaction_id: str) -> Optional[Order]:
        return self._first(transaction_id=transaction_id)

    def get_for_user(self, order_id, user_id) -> Optional[Order]:
        return self._first(id=order_id, user_id=user_id)

    def list_for_user(self, user_id, status: str | None = None):
        """Queryset of a user's orders, newest first."""
        qs = OrderModel.objects.filter(user_id=user_id).prefetch_related("lines").order_by("-created_at")
        if status:
            qs = qs.filter(status=status)
        return qs

    def mark_paid_by_transaction_id(self, transaction_id: str) -> int:
        """Flag orders backed by ``transaction_id`` as paid. Returns rows updated."""
        return OrderModel.objects.filter(transaction_id=transaction_id).update(
            payment_status=OrderModel.PaymentStatus.PAID
        )

    def create(self, new_order: NewOrder) -> Order:
        """Insert an order and its lines atomically.

        Args:
            new_order: Domain data for the order.

        Returns:
            Order: The persisted order.

        Raises:
            DuplicateIdempotencyKey: Another order already holds the key.
            DuplicateTransaction: Another order already holds the
                transaction id.
        """
        shipping = new_order.shipping
        try:
            # Savepoint: an IntegrityError only rolls back this block.
            with transaction.atomic():
                obj = OrderModel.objects.create(
                    user_id=new_order.user_id,
                    status=OrderModel.Status.NEW,
                    payment_method=new_order.payment_method.value,
                    payment_status=new_order.payment_status.value,
                    transaction_id=new_order.transaction_id or None,
                    idempotency_key=new_order.idempotency_key or None,
                    sub_total=new_order.sub_total,
                    shipping_cost=new_order.shipping_cost,
                    coupon_discount=new_order.coupon_discount,
                    total_amount=new_order.total_amount,
                    currency=new_order.currency,
                    quantity=new_order.quantity,
                    first_name=shipping.first_name,
                    last_name=shipping.last_name,
                    email=shipping.email,
                    phone=shipping.phone,
                    address1=shipping.address1,
                    address2=shipping.address2,
                    city=shipping.city,
                    state=shipping.state,
                    post_code=shipping.post_code,
                    country=shipping.country,
                    notes=new_order.notes,
                )
                OrderLineModel.objects.bulk_create(
                    [
                        OrderLineModel(
                            order=obj,
                            product_id=line.product_id,
                            variant_id=line.variant_id,
                            title=line.title,
                            sku=line.sku,
                            unit_price=line.unit_price,
                            quantity=line.quantity,
                            amount=line.amount,
                        )
                        for line in new_order.lines
                    ]
                )
        except IntegrityError as exc:
            key = new_order.idempotency_key
            if key and OrderModel.objects.filter(idempotency_key=key).exists():
                raise DuplicateIdempotencyKey(key) from exc
            tx = new_order.transaction_id
            if tx and OrderModel.objects.filter(transaction_id=tx).exists():
                raise DuplicateTransaction(tx) from exc
            raise

        order = order_from_model(obj)
        transaction.on_commit(lambda: order_placed.send(sender=OrderRepository, order=order))
        return order
