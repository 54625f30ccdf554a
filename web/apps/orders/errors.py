"""Error taxonomy for checkout.

Every error a client can see derives from ``CheckoutError`` and carries a
stable machine code, the HTTP status the views answer with, and a
human-readable message. Messages never include gateway credentials or raw
gateway payloads.

``ConcurrencyConflict`` and its subclasses are raised by the order store when
a unique index rejects an insert. They never reach HTTP: the placement
service converts them into a replayed order or ``TransactionReused``.
"""


class CheckoutError(Exception):
    code = "CHECKOUT_FAILED"
    status_code = 400
    default_message = "Checkout failed"

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)


# ---- Request problems ----
class OrderValidationError(CheckoutError):
    code = "VALIDATION_ERROR"
    status_code = 400
    default_message = "Invalid order request"


class EmptyCart(OrderValidationError):
    code = "CART_EMPTY"
    default_message = "Cart is empty"


# ---- Payment verification ----
class PaymentVerificationError(CheckoutError):
    code = "PAYMENT_VERIFICATION_FAILED"
    status_code = 409
    default_message = "Payment could not be verified"


class AmountMismatch(PaymentVerificationError):
    code = "PAYMENT_AMOUNT_MISMATCH"
    status_code = 409
    default_message = "Payment amount does not match the cart total"


class IntentNotSuccessful(PaymentVerificationError):
    code = "PAYMENT_NOT_SUCCEEDED"
    status_code = 402
    default_message = "Payment has not succeeded"


class PaymentIntentNotFound(IntentNotSuccessful):
    code = "PAYMENT_INTENT_NOT_FOUND"
    default_message = "Payment was not found"


class IntentOwnershipMismatch(PaymentVerificationError):
    code = "PAYMENT_OWNER_MISMATCH"
    status_code = 409
    default_message = "Payment does not belong to this account"


class TransactionReused(PaymentVerificationError):
    code = "TRANSACTION_REUSED"
    status_code = 409
    default_message = "This payment has already been used for another order"


class GatewayUnavailable(PaymentVerificationError):
    code = "GATEWAY_UNAVAILABLE"
    status_code = 502
    default_message = "Payment gateway is unavailable, please retry"


# ---- Operator problems ----
class ConfigurationError(CheckoutError):
    code = "PAYMENTS_NOT_CONFIGURED"
    status_code = 500
    default_message = "Card payments are temporarily unavailable"


# ---- Idempotency ----
class IdempotencyKeyConflict(CheckoutError):
    code = "IDEMPOTENCY_CONFLICT"
    status_code = 409
    default_message = "Request cannot be processed with this Idempotency-Key; retry with a new key"


# ---- Storage-level conflicts ----
class ConcurrencyConflict(Exception):
    """A unique index rejected an insert."""


class DuplicateIdempotencyKey(ConcurrencyConflict):
    def __init__(self, key: str):
        self.key = key
        super().__init__(key)


class DuplicateTransaction(ConcurrencyConflict):
    def __init__(self, transaction_id: str):
        self.transaction_id = transaction_id
        super().__init__(transaction_id)
