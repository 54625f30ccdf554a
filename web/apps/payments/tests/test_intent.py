import pytest

INTENT_URL = "/api/payments/intent/"
CONFIG_URL = "/api/payments/config/"


@pytest.mark.django_db
def test_intent_created_for_cart_total(auth_client, user, add_to_cart, gateway):
    add_to_cart(user, price="20.00")

    r = auth_client.post(INTENT_URL, data={}, content_type="application/json")

    assert r.status_code == 200
    data = r.json()["data"]
    assert data["amount"] == 3000
    assert data["currency"] == "USD"
    assert data["paymentIntentId"].startswith("pi_")
    assert data["clientSecret"].startswith(data["paymentIntentId"])
    assert gateway.calls == [("create", 3000)]
    intent = gateway.intents[data["paymentIntentId"]]
    assert intent.metadata == {"userId": str(user.pk)}
    assert intent.currency == "usd"


@pytest.mark.django_db
@pytest.mark.parametrize("header", ["HTTP_IDEMPOTENCY_KEY", "HTTP_X_IDEMPOTENCY_KEY"])
def test_idempotency_key_is_forwarded(auth_client, user, add_to_cart, gateway, header):
    add_to_cart(user)
    r1 = auth_client.post(INTENT_URL, data={}, content_type="application/json", **{header: "intent-key"})
    r2 = auth_client.post(INTENT_URL, data={}, content_type="application/json", **{header: "intent-key"})
    assert r1.json()["data"]["paymentIntentId"] == r2.json()["data"]["paymentIntentId"]
    assert len(gateway.intents) == 1


@pytest.mark.django_db
def test_empty_cart_has_nothing_to_pay(auth_client, gateway):
    r = auth_client.post(INTENT_URL, data={}, content_type="application/json")
    assert r.status_code == 400
    assert r.json()["detail"] == "CART_EMPTY"
    assert gateway.calls == []


@pytest.mark.django_db
def test_missing_secret_key(auth_client, user, add_to_cart, gateway, settings):
    settings.STRIPE_SECRET_KEY = ""
    add_to_cart(user)
    r = auth_client.post(INTENT_URL, data={}, content_type="application/json")
    assert r.status_code == 500
    assert r.json()["detail"] == "PAYMENTS_NOT_CONFIGURED"


@pytest.mark.django_db
def test_intent_requires_login(client):
    assert client.post(INTENT_URL, data={}, content_type="application/json").status_code in (401, 403)


@pytest.mark.django_db
def test_intent_then_checkout(auth_client, user, add_to_cart, gateway, shipping_payload):
    add_to_cart(user, price="20.00")
    intent_id = auth_client.post(INTENT_URL, data={}, content_type="application/json").json()["data"]["paymentIntentId"]

    r = auth_client.post(
        "/api/orders/",
        data={**shipping_payload, "paymentMethod": "stripe", "paymentIntentId": intent_id},
        content_type="application/json",
    )

    assert r.status_code == 201
    assert r.json()["data"]["paymentStatus"] == "PAID"
    assert r.json()["data"]["transactionId"] == intent_id


@pytest.mark.django_db
def test_intent_cannot_be_used_by_another_user(client, user, other_user, add_to_cart, gateway, shipping_payload):
    add_to_cart(user, price="20.00")
    add_to_cart(other_user, price="20.00")
    client.force_login(user)
    intent_id = client.post(INTENT_URL, data={}, content_type="application/json").json()["data"]["paymentIntentId"]

    client.force_login(other_user)
    r = client.post(
        "/api/orders/",
        data={**shipping_payload, "paymentMethod": "stripe", "paymentIntentId": intent_id},
        content_type="application/json",
    )
    assert r.status_code == 409
    assert r.json()["detail"] == "PAYMENT_OWNER_MISMATCH"


@pytest.mark.django_db
def test_config(client, settings):
    data = client.get(CONFIG_URL).json()["data"]
    assert data == {"stripeEnabled": True, "publicKey": "pk_test_123"}

    settings.STRIPE_SECRET_KEY = ""
    assert client.get(CONFIG_URL).json()["data"]["stripeEnabled"] is False
