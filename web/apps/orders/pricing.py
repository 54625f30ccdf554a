"""Cart pricing and currency unit conversion.

Amounts are ``Decimal`` in major units (dollars) throughout the app and are
only converted to integer minor units (cents) when compared with, or sent
to, the payment gateway.
"""

from decimal import ROUND_HALF_UP, Decimal
from typing import TYPE_CHECKING, Iterable

if TYPE_CHECKING:
    from .domain import CartSnapshot, OrderLine

CENT = Decimal("0.01")

# Currencies the gateway expresses without a minor unit.
ZERO_DECIMAL_CURRENCIES = {
    "BIF", "CLP", "DJF", "GNF", "JPY", "KMF", "KRW", "MGA",
    "PYG", "RWF", "UGX", "VND", "VUV", "XAF", "XOF", "XPF",
}


def round_money(value) -> Decimal:
    """Round to cents, half up."""
    return Decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


def to_minor_units(amount: Decimal, currency: str) -> int:
    """Convert a major-unit amount into the gateway's integer minor units.

    Args:
        amount: Amount in major units, e.g. ``Decimal("30.00")``.
        currency: ISO currency code.

    Returns:
        int: ``3000`` for 30.00 USD, ``30`` for 30 JPY.
    """
    exponent = 0 if currency.upper() in ZERO_DECIMAL_CURRENCIES else 2
    scaled = Decimal(amount) * (Decimal(10) ** exponent)
    return int(scaled.quantize(Decimal(1), rounding=ROUND_HALF_UP))


def calculate_cart_totals(
    lines: Iterable["OrderLine"],
    currency: str,
    free_shipping_threshold: Decimal,
    flat_shipping_cost: Decimal,
) -> "CartSnapshot":
    """Price a cart.

    Shipping is free once the subtotal reaches ``free_shipping_threshold``;
    below it the flat cost applies. An empty cart costs nothing. Coupon
    discounts are computed elsewhere and are always zero here.

    Args:
        lines: Cart lines with their amounts.
        currency: Store currency.
        free_shipping_threshold: Subtotal from which shipping is free.
        flat_shipping_cost: Shipping charged below the threshold.

    Returns:
        CartSnapshot: Lines plus subtotal, shipping, discount and total.
    """
    from .domain import CartSnapshot

    lines = list(lines)
    sub_total = round_money(sum((round_money(line.amount) for line in lines), Decimal("0")))
    if not lines or sub_total >= free_shipping_threshold:
        shipping_cost = round_money(0)
    else:
        shipping_cost = round_money(flat_shipping_cost)
    coupon_discount = round_money(0)
    total = round_money(sub_total + shipping_cost - coupon_discount)
    return CartSnapshot(
        lines=lines,
        sub_total=sub_total,
        shipping_cost=shipping_cost,
        coupon_discount=coupon_discount,
        total=total,
        currency=currency.upper(),
    )
