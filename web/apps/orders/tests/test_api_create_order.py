"""API tests for placing an order.

These tests exercise ``POST /api/orders/`` end to end with the ORM cart and
order store. The payment gateway is the in-process stub from
``apps.orders.adapters`` (see the ``gateway`` fixture), seeded with the
intent each scenario needs.
"""

import pytest

from apps.cart.models import CartItem
from apps.orders.domain import PaymentIntent
from apps.orders.models import OrderModel

from .helpers import assert_no_gateway_internals

CREATE_URL = "/api/orders/"


def seeded_intent(user, intent_id="pi_test_ok", status="succeeded", amount_received=3000, currency="usd"):
    return PaymentIntent(
        id=intent_id,
        status=status,
        amount=3000,
        amount_received=amount_received,
        currency=currency,
        metadata={"userId": str(user.pk)},
        client_secret=f"{intent_id}_secret_xyz",
    )


@pytest.mark.django_db
def test_cod_order_created_from_cart(auth_client, user, add_to_cart, gateway, shipping_payload):
    add_to_cart(user, price="20.00")
    payload = {**shipping_payload, "paymentMethod": "cod", "notes": "leave at the door"}

    r = auth_client.post(CREATE_URL, data=payload, content_type="application/json")

    assert r.status_code == 201
    body = r.json()
    assert body["success"] is True
    data = body["data"]
    assert data["paymentMethod"] == "cod"
    assert data["paymentStatus"] == "UNPAID"
    assert data["status"] == "NEW"
    assert data["transactionId"] is None
    assert data["subTotal"] == "20.00"
    assert data["shippingCost"] == "10.00"
    assert data["totalAmount"] == "30.00"
    assert data["orderNumber"].startswith("ORD-")
    assert data["shipping"]["email"] == "alice@example.com"
    assert data["items"][0]["productId"] == "prod-1"
    assert "idempotencyKey" not in data
    assert gateway.calls == []


@pytest.mark.django_db
def test_card_order_created_when_intent_matches_cart(auth_client, user, add_to_cart, gateway, shipping_payload):
    add_to_cart(user, price="20.00")
    gateway.add_intent(seeded_intent(user))

    r = auth_client.post(
        CREATE_URL,
        data={**shipping_payload, "paymentMethod": "stripe", "paymentIntentId": "pi_test_ok"},
        content_type="application/json",
        HTTP_IDEMPOTENCY_KEY="card-ok-key",
    )

    assert r.status_code == 201
    data = r.json()["data"]
    assert data["paymentStatus"] == "PAID"
    assert data["transactionId"] == "pi_test_ok"
    assert_no_gateway_internals(r, idempotency_key="card-ok-key")
    assert OrderModel.objects.filter(transaction_id="pi_test_ok").count() == 1


@pytest.mark.django_db
def test_amount_mismatch_is_rejected(auth_client, user, add_to_cart, gateway, shipping_payload):
    """A $10 payment cannot buy a $30 cart."""
    add_to_cart(user, price="20.00")
    gateway.add_intent(seeded_intent(user, amount_received=1000))

    r = auth_client.post(
        CREATE_URL,
        data={**shipping_payload, "paymentMethod": "stripe", "paymentIntentId": "pi_test_ok"},
        content_type="application/json",
    )

    assert r.status_code == 409
    body = r.json()
    assert body["success"] is False
    assert body["detail"] == "PAYMENT_AMOUNT_MISMATCH"
    assert "Payment amount does not match" in body["message"]
    assert OrderModel.objects.count() == 0


@pytest.mark.django_db
def test_intent_not_succeeded_is_rejected(auth_client, user, add_to_cart, gateway, shipping_payload):
    add_to_cart(user, price="20.00")
    gateway.add_intent(seeded_intent(user, status="processing", amount_received=0))

    r = auth_client.post(
        CREATE_URL,
        data={**shipping_payload, "paymentMethod": "stripe", "paymentIntentId": "pi_test_ok"},
        content_type="application/json",
    )

    assert r.status_code == 402
    assert r.json()["detail"] == "PAYMENT_NOT_SUCCEEDED"
    assert OrderModel.objects.count() == 0


@pytest.mark.django_db
def test_unknown_intent_is_rejected(auth_client, user, add_to_cart, gateway, shipping_payload):
    add_to_cart(user)
    r = auth_client.post(
        CREATE_URL,
        data={**shipping_payload, "paymentMethod": "stripe", "paymentIntentId": "pi_nope"},
        content_type="application/json",
    )
    assert r.status_code == 402
    assert r.json()["detail"] == "PAYMENT_INTENT_NOT_FOUND"


@pytest.mark.django_db
def test_card_payment_without_intent_id_is_a_validation_error(auth_client, user, add_to_cart, shipping_payload):
    add_to_cart(user)
    r = auth_client.post(CREATE_URL, data={**shipping_payload, "paymentMethod": "stripe"}, content_type="application/json")
    assert r.status_code == 400
    body = r.json()
    assert body["detail"] == "VALIDATION_ERROR"
    assert body["errors"]


@pytest.mark.django_db
def test_invalid_payload_lists_field_errors(auth_client, user, add_to_cart, shipping_payload):
    add_to_cart(user)
    payload = {**shipping_payload, "email": "not-an-email", "paymentMethod": "bitcoin"}
    r = auth_client.post(CREATE_URL, data=payload, content_type="application/json")
    assert r.status_code == 400
    fields = {e["field"] for e in r.json()["errors"]}
    assert {"email", "paymentMethod"} <= fields


@pytest.mark.django_db
def test_empty_cart_is_rejected(auth_client, gateway, shipping_payload):
    r = auth_client.post(CREATE_URL, data={**shipping_payload, "paymentMethod": "cod"}, content_type="application/json")
    assert r.status_code == 400
    assert r.json()["detail"] == "CART_EMPTY"


@pytest.mark.django_db
def test_missing_gateway_secret_answers_generic_500(auth_client, user, add_to_cart, gateway, shipping_payload, settings):
    settings.STRIPE_SECRET_KEY = ""
    add_to_cart(user)
    gateway.add_intent(seeded_intent(user))

    r = auth_client.post(
        CREATE_URL,
        data={**shipping_payload, "paymentMethod": "stripe", "paymentIntentId": "pi_test_ok"},
        content_type="application/json",
    )

    assert r.status_code == 500
    assert r.json()["detail"] == "PAYMENTS_NOT_CONFIGURED"
    assert gateway.calls == []


@pytest.mark.django_db
def test_unauthenticated_request_is_refused(client, shipping_payload):
    r = client.post(CREATE_URL, data={**shipping_payload, "paymentMethod": "cod"}, content_type="application/json")
    assert r.status_code in (401, 403)


@pytest.mark.django_db
def test_cart_is_cleared_once_order_commits(
    auth_client, user, add_to_cart, gateway, shipping_payload, django_capture_on_commit_callbacks
):
    add_to_cart(user, price="20.00")
    add_to_cart(user, product_id="prod-2", price="5.00", quantity=2)

    with django_capture_on_commit_callbacks(execute=True):
        r = auth_client.post(
            CREATE_URL, data={**shipping_payload, "paymentMethod": "cod"}, content_type="application/json"
        )

    assert r.status_code == 201
    assert r.json()["data"]["quantity"] == 3
    assert CartItem.objects.filter(user=user).count() == 0


@pytest.mark.django_db
def test_response_carries_request_id(auth_client, user, add_to_cart, gateway, shipping_payload):
    add_to_cart(user)
    r = auth_client.post(
        CREATE_URL,
        data={**shipping_payload, "paymentMethod": "cod"},
        content_type="application/json",
        HTTP_X_REQUEST_ID="req-123",
    )
    assert r.headers["X-Request-ID"] == "req-123"


@pytest.mark.django_db
def test_ping(client):
    r = client.get("/api/orders/ping/")
    assert r.status_code == 200
    assert r.json() == {"ok": True}


@pytest.mark.django_db
def test_oversized_body_is_rejected_before_parsing(auth_client, settings, shipping_payload):
    settings.API_MAX_BYTES = 64
    r = auth_client.post(
        CREATE_URL, data={**shipping_payload, "paymentMethod": "cod", "notes": "x" * 200}, content_type="application/json"
    )
    assert r.status_code == 413
    assert r.json()["detail"] == "PAYLOAD_TOO_LARGE"
