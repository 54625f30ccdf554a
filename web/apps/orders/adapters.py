"""In-process stub adapter for the payment gateway port.

``PaymentGatewayStub`` implements ``PaymentGatewayPort`` without any network
calls. It is used for local development (``USE_HTTP_ADAPTERS=0``) and in
tests, where deterministic gateway answers are needed.
"""

import uuid
from typing import Dict, Iterable, List, Optional, Tuple

from .domain import PaymentGatewayPort, PaymentIntent
from .errors import PaymentIntentNotFound


class PaymentGatewayStub(PaymentGatewayPort):
    """Stub gateway backed by a dict of intents.

    Intents created through the stub are immediately ``succeeded`` with the
    full amount captured, which lets a local checkout complete without a
    real card. Tests seed arbitrary intents with ``add_intent``.

    The stub lives for the whole process when local development runs with
    ``USE_HTTP_ADAPTERS=0``, so it keeps at most ``max_entries`` intents
    (oldest evicted first) and the same number of call records.

    Attributes:
        intents: Known intents by id.
        calls: ``(operation, intent_id_or_amount)`` tuples, in call order.
    """

    def __init__(self, intents: Iterable[PaymentIntent] = (), max_entries: int = 1000):
        self.max_entries = max_entries
        self.intents: Dict[str, PaymentIntent] = {}
        self.calls: List[Tuple[str, object]] = []
        self._by_idempotency_key: Dict[str, str] = {}
        for intent in intents:
            self.add_intent(intent)

    def add_intent(self, intent: PaymentIntent) -> PaymentIntent:
        self.intents[intent.id] = intent
        while len(self.intents) > self.max_entries:
            evicted = next(iter(self.intents))
            del self.intents[evicted]
            self._by_idempotency_key = {k: v for k, v in self._by_idempotency_key.items() if v != evicted}
        return intent

    def _record(self, operation: str, subject) -> None:
        self.calls.append((operation, subject))
        if len(self.calls) > self.max_entries:
            del self.calls[: len(self.calls) - self.max_entries]

    def retrieve_payment_intent(self, secret_key: str, intent_id: str) -> PaymentIntent:
        """Return a known intent.

        Raises:
            PaymentIntentNotFound: When ``intent_id`` was never added or
                created.
        """
        self._record("retrieve", intent_id)
        try:
            return self.intents[intent_id]
        except KeyError:
            raise PaymentIntentNotFound() from None

    def create_payment_intent(
        self,
        secret_key: str,
        amount: int,
        currency: str,
        metadata: dict,
        idempotency_key: Optional[str] = None,
    ) -> PaymentIntent:
        """Create a succeeded intent; repeated keys return the first intent."""
        self._record("create", amount)
        if idempotency_key and idempotency_key in self._by_idempotency_key:
            return self.intents[self._by_idempotency_key[idempotency_key]]

        intent_id = f"pi_{uuid.uuid4().hex[:24]}"
        intent = PaymentIntent(
            id=intent_id,
            status="succeeded",
            amount=amount,
            amount_received=amount,
            currency=currency.lower(),
            metadata={k: str(v) for k, v in metadata.items()},
            client_secret=f"{intent_id}_secret_{uuid.uuid4().hex[:16]}",
        )
        self.add_intent(intent)
        if idempotency_key:
            self._by_idempotency_key[idempotency_key] = intent_id
        return intent
