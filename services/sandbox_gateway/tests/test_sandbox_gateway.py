import uuid

import pytest


def create(api, auth, amount="3000", currency="usd", key=None, **metadata):
    form = {"amount": amount, "currency": currency, "automatic_payment_methods[enabled]": "true"}
    for k, v in metadata.items():
        form[f"metadata[{k}]"] = v
    headers = dict(auth)
    if key:
        headers["Idempotency-Key"] = key
    return api.post("/v1/payment_intents", data=form, headers=headers)


def test_health(api):
    assert api.get("/health").json() == {"ok": True}


def test_create_and_retrieve(api, auth):
    r = create(api, auth, userId="7")
    assert r.status_code == 200
    intent = r.json()
    assert intent["id"].startswith("pi_")
    assert intent["status"] == "succeeded"
    assert intent["amount_received"] == 3000
    assert intent["metadata"] == {"userId": "7"}
    assert intent["client_secret"].startswith(intent["id"])

    got = api.get(f"/v1/payment_intents/{intent['id']}", headers=auth)
    assert got.status_code == 200
    assert got.json()["id"] == intent["id"]
    assert r.headers["X-Request-ID"]


def test_unknown_intent_is_404(api, auth):
    r = api.get("/v1/payment_intents/pi_missing", headers=auth)
    assert r.status_code == 404
    assert r.json()["error"]["code"] == "resource_missing"


@pytest.mark.parametrize("headers", [{}, {"Authorization": "Bearer pk_test_public"}, {"Authorization": "sk_test"}])
def test_secret_key_required(api, headers):
    assert api.get("/v1/payment_intents/pi_x", headers=headers).status_code == 401


def test_invalid_amount(api, auth):
    r = create(api, auth, amount="-5")
    assert r.status_code == 400
    assert r.json()["error"]["code"] == "parameter_invalid"


def test_idempotent_create(api, auth):
    key = f"k-{uuid.uuid4()}"
    first = create(api, auth, key=key, userId="7").json()
    second = create(api, auth, key=key, userId="7").json()
    assert first["id"] == second["id"]

    clash = create(api, auth, amount="1000", key=key, userId="7")
    assert clash.status_code == 400
    assert clash.json()["error"]["type"] == "idempotency_error"


def test_confirm(api, auth, monkeypatch):
    import main

    monkeypatch.setattr(main, "AUTO_CONFIRM", False)
    intent = create(api, auth).json()
    assert intent["status"] == "requires_confirmation"
    assert intent["amount_received"] == 0

    confirmed = api.post(f"/v1/payment_intents/{intent['id']}/confirm", headers=auth).json()
    assert confirmed["status"] == "succeeded"
    assert confirmed["amount_received"] == 3000
