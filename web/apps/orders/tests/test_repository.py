import re
from decimal import Decimal

import pytest

from apps.orders.domain import NewOrder, OrderLine, PaymentMethod, PaymentStatus, ShippingDetails
from apps.orders.errors import DuplicateIdempotencyKey, DuplicateTransaction
from apps.orders.models import OrderModel
from apps.orders.repository import OrderRepository

SHIPPING = ShippingDetails(
    first_name="Alice",
    last_name="Doe",
    email="alice@example.com",
    phone="+15550100",
    address1="1 Main St",
    city="Springfield",
    post_code="12345",
    country="US",
)


def new_order(user_id, **overrides):
    fields = dict(
        user_id=user_id,
        lines=[
            OrderLine(
                product_id="p1", title="Mug", sku="MUG-1", unit_price=Decimal("20.00"), quantity=1,
                amount=Decimal("20.00"),
            )
        ],
        sub_total=Decimal("20.00"),
        shipping_cost=Decimal("10.00"),
        coupon_discount=Decimal("0.00"),
        total_amount=Decimal("30.00"),
        currency="USD",
        payment_method=PaymentMethod.STRIPE,
        payment_status=PaymentStatus.PAID,
        shipping=SHIPPING,
        transaction_id="pi_repo",
        idempotency_key="repo-key",
    )
    fields.update(overrides)
    return NewOrder(**fields)


@pytest.mark.django_db
def test_create_and_find(user):
    repo = OrderRepository()
    order = repo.create(new_order(user.pk))

    assert re.fullmatch(r"ORD-[0-9A-F]{8}", order.order_number)
    assert order.items[0].sku == "MUG-1"
    assert repo.find_by_transaction_id("pi_repo").id == order.id
    assert repo.find_by_idempotency_key("repo-key", user_id=user.pk).id == order.id


@pytest.mark.django_db
def test_idempotency_lookup_is_scoped_to_user(user, other_user):
    repo = OrderRepository()
    repo.create(new_order(user.pk))
    assert repo.find_by_idempotency_key("repo-key", user_id=other_user.pk) is None
    assert repo.find_by_idempotency_key("repo-key") is not None


@pytest.mark.django_db
def test_duplicate_idempotency_key(user):
    repo = OrderRepository()
    repo.create(new_order(user.pk))
    with pytest.raises(DuplicateIdempotencyKey) as exc_info:
        repo.create(new_order(user.pk, transaction_id="pi_other"))
    assert exc_info.value.key == "repo-key"
    assert OrderModel.objects.count() == 1


@pytest.mark.django_db
def test_duplicate_transaction(user):
    repo = OrderRepository()
    repo.create(new_order(user.pk))
    with pytest.raises(DuplicateTransaction):
        repo.create(new_order(user.pk, idempotency_key="another-key"))
    assert OrderModel.objects.count() == 1


@pytest.mark.django_db
def test_orders_without_key_or_transaction_can_coexist(user):
    repo = OrderRepository()
    cod = dict(
        payment_method=PaymentMethod.COD,
        payment_status=PaymentStatus.UNPAID,
        transaction_id=None,
        idempotency_key=None,
    )
    repo.create(new_order(user.pk, **cod))
    repo.create(new_order(user.pk, **cod))
    assert OrderModel.objects.filter(user=user).count() == 2


@pytest.mark.django_db
def test_mark_paid_by_transaction_id(user):
    repo = OrderRepository()
    repo.create(new_order(user.pk, payment_status=PaymentStatus.UNPAID))

    assert repo.mark_paid_by_transaction_id("pi_repo") == 1
    assert repo.find_by_transaction_id("pi_repo").payment_status is PaymentStatus.PAID
    assert repo.mark_paid_by_transaction_id("pi_unknown") == 0


@pytest.mark.django_db
def test_order_placed_signal_fires_on_commit(user, django_capture_on_commit_callbacks):
    from apps.orders.signals import order_placed

    received = []

    def receiver(sender, order, **kwargs):
        received.append(order.order_number)

    order_placed.connect(receiver)
    try:
        with django_capture_on_commit_callbacks(execute=True):
            order = OrderRepository().create(new_order(user.pk))
    finally:
        order_placed.disconnect(receiver)

    assert received == [order.order_number]
