"""Pydantic schemas for orders.

``PlaceOrderDTO`` validates the checkout request body. The API speaks
camelCase (``paymentMethod``, ``postCode``); snake_case names are accepted
too. ``OrderReadDTO`` shapes orders for responses and deliberately omits the
idempotency key and anything gateway-internal.
"""

import re
from datetime import datetime
from decimal import Decimal
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

from .domain import Order, PaymentMethod, PlacementRequest, ShippingDetails

EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
PHONE_RE = re.compile(r"^\+?[0-9 ()-]{6,32}$")
PAYMENT_INTENT_RE = re.compile(r"^[A-Za-z0-9_]{3,255}$")


class PlaceOrderDTO(BaseModel):
    """Schema for placing an order from the current cart.

    ``payment_intent_id`` is required for gateway payment methods and
    ignored for cash on delivery.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, str_strip_whitespace=True)

    first_name: str = Field(min_length=1, max_length=100)
    last_name: str = Field(min_length=1, max_length=100)
    email: str = Field(max_length=254)
    phone: str
    address1: str = Field(min_length=1, max_length=255)
    address2: str = Field(default="", max_length=255)
    city: str = Field(min_length=1, max_length=100)
    state: str = Field(default="", max_length=100)
    post_code: str = Field(min_length=1, max_length=20)
    country: str = Field(min_length=2, max_length=56)
    payment_method: PaymentMethod
    payment_intent_id: Optional[str] = None
    notes: str = Field(default="", max_length=500)

    @field_validator("email")
    @classmethod
    def validate_email(cls, v: str) -> str:
        """Lowercase the address and check its basic shape."""
        v2 = v.lower()
        if not EMAIL_RE.match(v2):
            raise ValueError("Invalid email address")
        return v2

    @field_validator("phone")
    @classmethod
    def validate_phone(cls, v: str) -> str:
        if not PHONE_RE.match(v):
            raise ValueError("Invalid phone number")
        return v

    @field_validator("payment_intent_id")
    @classmethod
    def validate_payment_intent_id(cls, v: Optional[str]) -> Optional[str]:
        if v is None or v == "":
            return None
        if not PAYMENT_INTENT_RE.match(v):
            raise ValueError("Invalid payment intent id")
        return v

    @model_validator(mode="after")
    def check_payment_intent(self) -> "PlaceOrderDTO":
        if self.payment_method.requires_gateway:
            if not self.payment_intent_id:
                raise ValueError("paymentIntentId is required for card payments")
        else:
            self.payment_intent_id = None
        return self

    def to_request(self) -> PlacementRequest:
        return PlacementRequest(
            payment_method=self.payment_method,
            payment_intent_id=self.payment_intent_id,
            notes=self.notes,
            shipping=ShippingDetails(
                first_name=self.first_name,
                last_name=self.last_name,
                email=self.email,
                phone=self.phone,
                address1=self.address1,
                address2=self.address2,
                city=self.city,
                state=self.state,
                post_code=self.post_code,
                country=self.country,
            ),
        )


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class OrderLineOut(_CamelModel):
    product_id: str
    variant_id: Optional[str] = None
    title: str
    sku: str
    unit_price: Decimal
    quantity: int
    amount: Decimal


class ShippingOut(_CamelModel):
    first_name: str
    last_name: str
    email: str
    phone: str
    address1: str
    address2: str = ""
    city: str
    state: str = ""
    post_code: str
    country: str


class OrderReadDTO(_CamelModel):
    """Public representation of an order."""

    id: UUID
    order_number: str
    status: str
    payment_method: str
    payment_status: str
    transaction_id: Optional[str] = None
    sub_total: Decimal
    shipping_cost: Decimal
    coupon_discount: Decimal
    total_amount: Decimal
    currency: str
    quantity: int
    items: List[OrderLineOut]
    shipping: ShippingOut
    notes: str = ""
    created_at: Optional[datetime] = None

    @classmethod
    def from_domain(cls, order: Order) -> "OrderReadDTO":
        s = order.shipping
        return cls(
            id=order.id,
            order_number=order.order_number,
            status=order.status.value,
            payment_method=order.payment_method.value,
            payment_status=order.payment_status.value,
            transaction_id=order.transaction_id,
            sub_total=order.sub_total,
            shipping_cost=order.shipping_cost,
            coupon_discount=order.coupon_discount,
            total_amount=order.total_amount,
            currency=order.currency,
            quantity=order.quantity,
            items=[
                OrderLineOut(
                    product_id=i.product_id,
                    variant_id=i.variant_id,
                    title=i.title,
                    sku=i.sku,
                    unit_price=i.unit_price,
                    quantity=i.quantity,
                    amount=i.amount,
                )
                for i in order.items
            ],
            shipping=ShippingOut(
                first_name=s.first_name,
                last_name=s.last_name,
                email=s.email,
                phone=s.phone,
                address1=s.address1,
                address2=s.address2,
                city=s.city,
                state=s.state,
                post_code=s.post_code,
                country=s.country,
            ),
            notes=order.notes,
            created_at=order.created_at,
        )

    def to_json(self) -> dict:
        return self.model_dump(mode="json", by_alias=True)
