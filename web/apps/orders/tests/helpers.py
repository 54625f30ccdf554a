"""Assertions shared by the order API tests."""

GATEWAY_INTERNALS = (
    "sk_test_123",
    "secret",
    "clientSecret",
    "client_secret",
    "amountReceived",
    "amount_received",
    "metadata",
    "userId",
    "idempotencyKey",
)


def assert_no_gateway_internals(response, idempotency_key=None):
    """Success bodies never echo credentials, raw intent fields or the key."""
    text = response.content.decode()
    for marker in GATEWAY_INTERNALS:
        assert marker not in text, marker
    if idempotency_key:
        assert idempotency_key not in text
