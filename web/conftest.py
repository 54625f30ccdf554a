from decimal import Decimal

import pytest
from django.core.cache import cache


@pytest.fixture(autouse=True)
def use_stubs_for_tests(settings):
    from apps.orders.http_adapters import gateway_breaker

    settings.USE_HTTP_ADAPTERS = False
    settings.STRIPE_SECRET_KEY = "sk_test_123"
    settings.STRIPE_PUBLIC_KEY = "pk_test_123"
    settings.STRIPE_WEBHOOK_SECRET = ""
    settings.APP_ENV = "test"
    settings.HTTP_RETRY_BACKOFF_BASE = 0
    # throttle counters live in the cache
    cache.clear()
    gateway_breaker.reset()
    yield
    gateway_breaker.reset()


@pytest.fixture
def gateway(monkeypatch):
    """A fresh stub gateway used by every service built during the test."""
    from apps.orders import providers
    from apps.orders.adapters import PaymentGatewayStub

    stub = PaymentGatewayStub()
    monkeypatch.setattr(providers, "get_payment_gateway", lambda: stub)
    return stub


@pytest.fixture
def user(db, django_user_model):
    return django_user_model.objects.create_user(username="alice", password="pw-alice")


@pytest.fixture
def other_user(db, django_user_model):
    return django_user_model.objects.create_user(username="bob", password="pw-bob")


@pytest.fixture
def auth_client(client, user):
    client.force_login(user)
    return client


@pytest.fixture
def add_to_cart(db):
    from apps.cart.models import CartItem

    def _add(user, product_id="prod-1", price="20.00", quantity=1, title="T-shirt", sku=None, variant_id=None):
        return CartItem.objects.create(
            user=user,
            product_id=product_id,
            variant_id=variant_id,
            title=title,
            sku=sku or f"SKU-{product_id}",
            price=Decimal(price),
            quantity=quantity,
        )

    return _add


@pytest.fixture
def shipping_payload():
    return {
        "firstName": "Alice",
        "lastName": "Doe",
        "email": "Alice@Example.com",
        "phone": "+1 555 0100",
        "address1": "1 Main St",
        "city": "Springfield",
        "postCode": "12345",
        "country": "US",
    }
