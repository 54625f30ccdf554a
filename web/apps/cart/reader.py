"""ORM-backed cart snapshot reader.

Implements ``CartReader`` from the orders domain. Every call re-reads the
cart rows so the total reflects the cart at verification time, never a
cached or client-supplied figure.
"""

from decimal import Decimal

from django.conf import settings

from apps.orders.domain import CartSnapshot, OrderLine
from apps.orders.pricing import calculate_cart_totals

from .models import CartItem


class CartSnapshotReader:
    """Prices a user's cart with the store's pricing settings."""

    def __init__(
        self,
        currency: str | None = None,
        free_shipping_threshold: Decimal | None = None,
        flat_shipping_cost: Decimal | None = None,
    ):
        self.currency = currency or settings.STORE_CURRENCY
        self.free_shipping_threshold = (
            free_shipping_threshold if free_shipping_threshold is not None else settings.FREE_SHIPPING_THRESHOLD
        )
        self.flat_shipping_cost = flat_shipping_cost if flat_shipping_cost is not None else settings.FLAT_SHIPPING_COST

    def get_cart_total(self, user_id) -> CartSnapshot:
        rows = CartItem.objects.filter(user_id=user_id).order_by("created_at", "id")
        lines = [
            OrderLine(
                product_id=row.product_id,
                variant_id=row.variant_id,
                title=row.title,
                sku=row.sku,
                unit_price=row.price,
                quantity=row.quantity,
                amount=row.amount,
            )
            for row in rows
        ]
        return calculate_cart_totals(
            lines,
            currency=self.currency,
            free_shipping_threshold=Decimal(self.free_shipping_threshold),
            flat_shipping_cost=Decimal(self.flat_shipping_cost),
        )
