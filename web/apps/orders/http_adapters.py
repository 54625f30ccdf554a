"""HTTP adapter for the payment gateway with retries, circuit breaker and timeouts.

``StripePaymentGateway`` implements ``PaymentGatewayPort`` over the
gateway's REST API using ``httpx``. It adds:

- A bounded timeout on every call (``HTTP_TIMEOUT_SECS``).
- Retries with exponential backoff for transport errors and 5xx. Retrieval
  is read-only and always retried; intent creation is retried only when an
  ``Idempotency-Key`` is forwarded, so a retry can never create a second
  intent.
- A circuit breaker shared by all gateway calls, so a failing gateway is
  not hammered by every checkout.
- Request correlation: ``X-Request-ID`` from the ContextVar set by the edge
  middleware.

Every failure mode that is not a definitive answer from the gateway
(timeout, transport error, open circuit, unexpected status, malformed body)
surfaces as ``GatewayUnavailable``. Callers fail closed on it.
"""

import logging
import threading
import time
from enum import Enum
from typing import Optional

import httpx
from django.conf import settings
from pydantic import BaseModel, ValidationError

from storefront.middleware import REQUEST_ID_CTX

from .domain import PaymentGatewayPort, PaymentIntent
from .errors import GatewayUnavailable, PaymentIntentNotFound

logger = logging.getLogger(__name__)


# ---------------- Circuit Breaker ---------------- #

class BreakerState(str, Enum):
    CLOSED = "CLOSED"
    OPEN = "OPEN"
    HALF_OPEN = "HALF_OPEN"


class CircuitBreaker:
    """Thread-safe circuit breaker.

    Transitions:
    - CLOSED → OPEN once consecutive failures reach ``fail_threshold``.
    - OPEN → HALF_OPEN after ``reset_timeout`` seconds.
    - HALF_OPEN lets a single trial call through; success closes the breaker,
      failure opens it again.
    """

    def __init__(self, name: str, fail_threshold: int, reset_timeout: float):
        self.name = name
        self.fail_threshold = fail_threshold
        self.reset_timeout = reset_timeout
        self._lock = threading.RLock()
        self._failures = 0
        self._state = BreakerState.CLOSED
        self._opened_at = 0.0
        self._trial_in_flight = False

    @property
    def state(self) -> BreakerState:
        with self._lock:
            if self._state is BreakerState.OPEN and (time.monotonic() - self._opened_at) >= self.reset_timeout:
                self._state = BreakerState.HALF_OPEN
                self._trial_in_flight = False
            return self._state

    def before_call(self) -> BreakerState:
        """Admit or refuse a call.

        A ``HALF_OPEN`` return value means the caller holds the single trial
        slot and must pass ``trial=True`` to ``on_finish``.

        Raises:
            GatewayUnavailable: The breaker is open, or a half-open trial call is
                already running.
        """
        with self._lock:
            st = self.state
            if st is BreakerState.OPEN:
                raise GatewayUnavailable()
            if st is BreakerState.HALF_OPEN:
                if self._trial_in_flight:
                    raise GatewayUnavailable()
                self._trial_in_flight = True
            return st

    def on_success(self):
        with self._lock:
            self._failures = 0
            self._state = BreakerState.CLOSED
            self._trial_in_flight = False

    def on_failure(self):
        with self._lock:
            self._failures += 1
            if self._state is BreakerState.HALF_OPEN or self._failures >= self.fail_threshold:
                if self._state is not BreakerState.OPEN:
                    logger.warning("circuit opened", extra={"circuit": self.name, "failures": self._failures})
                self._state = BreakerState.OPEN
                self._opened_at = time.monotonic()
                self._trial_in_flight = False

    def on_finish(self, trial: bool = False):
        """Release the half-open slot. Only the admitted trial call may do so."""
        if not trial:
            return
        with self._lock:
            if self._state is BreakerState.HALF_OPEN:
                self._trial_in_flight = False

    def reset(self):
        self.on_success()


gateway_breaker = CircuitBreaker(
    "payment-gateway",
    getattr(settings, "HTTP_CIRCUIT_FAIL_THRESHOLD", 5),
    getattr(settings, "HTTP_CIRCUIT_RESET_TIMEOUT", 30.0),
)


# ---------------- Helpers ---------------- #

def _request_headers(secret_key: str, extra: Optional[dict] = None) -> dict:
    headers = {"Authorization": f"Bearer {secret_key}"}
    rid = REQUEST_ID_CTX.get()
    if rid and rid != "-":
        headers["X-Request-ID"] = rid
    if extra:
        headers.update(extra)
    return headers


def _retry_policy():
    """Return ``(max_retries, backoff_base_seconds, max_sleep_seconds)``."""
    return (
        getattr(settings, "HTTP_RETRY_MAX", 2),
        getattr(settings, "HTTP_RETRY_BACKOFF_BASE", 0.15),
        getattr(settings, "HTTP_RETRY_MAX_SLEEP", 0.5),
    )


class _IntentPayload(BaseModel):
    """Fields of a gateway payment intent that checkout relies on."""

    id: str
    status: str
    amount: Optional[int] = None
    amount_received: Optional[int] = None
    currency: Optional[str] = None
    metadata: dict[str, str] = {}
    client_secret: Optional[str] = None


def _parse_intent(resp: httpx.Response) -> PaymentIntent:
    try:
        payload = _IntentPayload.model_validate(resp.json())
    except (ValueError, ValidationError) as exc:
        logger.error("malformed payment intent payload from gateway")
        raise GatewayUnavailable() from exc
    return PaymentIntent(
        id=payload.id,
        status=payload.status,
        amount=payload.amount,
        amount_received=payload.amount_received,
        currency=payload.currency,
        metadata=dict(payload.metadata),
        client_secret=payload.client_secret,
    )


# ---------------- Gateway Adapter ---------------- #

class StripePaymentGateway(PaymentGatewayPort):
    """Payment intents over the gateway's REST API."""

    def __init__(self, base_url: str | None = None, timeout: float | None = None):
        self.base_url = (base_url or settings.STRIPE_API_BASE).rstrip("/")
        self.timeout = timeout or settings.HTTP_TIMEOUT_SECS

    def retrieve_payment_intent(self, secret_key: str, intent_id: str) -> PaymentIntent:
        """Fetch the authoritative state of an intent.

        Business mappings:
        - 200 → parsed ``PaymentIntent``
        - 404 → ``PaymentIntentNotFound`` (not a circuit failure)
        - anything else → ``GatewayUnavailable``
        """
        resp = self._send("GET", f"/v1/payment_intents/{intent_id}", secret_key, retry=True)
        if resp.status_code == 200:
            return _parse_intent(resp)
        if resp.status_code == 404:
            raise PaymentIntentNotFound()
        logger.error("unexpected gateway status on retrieve", extra={"status_code": resp.status_code})
        raise GatewayUnavailable()

    def create_payment_intent(
        self,
        secret_key: str,
        amount: int,
        currency: str,
        metadata: dict,
        idempotency_key: Optional[str] = None,
    ) -> PaymentIntent:
        """Create an intent for ``amount`` minor units of ``currency``.

        Args:
            secret_key: Merchant secret key.
            amount: Amount in minor units, positive integer.
            currency: ISO currency code.
            metadata: String key/values attached to the intent.
            idempotency_key: Forwarded as ``Idempotency-Key``; enables
                retries.

        Raises:
            GatewayUnavailable: On any non-200 answer or transport failure.
        """
        form = {
            "amount": str(amount),
            "currency": currency.lower(),
            "automatic_payment_methods[enabled]": "true",
        }
        for key, value in metadata.items():
            form[f"metadata[{key}]"] = str(value)
        extra = {"Idempotency-Key": idempotency_key} if idempotency_key else None

        resp = self._send(
            "POST", "/v1/payment_intents", secret_key, data=form, extra_headers=extra, retry=bool(idempotency_key)
        )
        if resp.status_code == 200:
            return _parse_intent(resp)
        logger.error("unexpected gateway status on create", extra={"status_code": resp.status_code})
        raise GatewayUnavailable()

    def _send(
        self,
        method: str,
        path: str,
        secret_key: str,
        *,
        data: Optional[dict] = None,
        extra_headers: Optional[dict] = None,
        retry: bool = True,
    ) -> httpx.Response:
        """Send one logical request, retrying transport errors and 5xx.

        Returns the first response that is not a 5xx. 4xx answers are
        business outcomes and do not count against the circuit.
        """
        max_retries, backoff, max_sleep = _retry_policy()
        if not retry:
            max_retries = 0
        attempts = 0

        state = gateway_breaker.before_call()
        trial = state is BreakerState.HALF_OPEN
        headers = _request_headers(secret_key, extra_headers)
        headers["X-Circuit-State"] = state.value
        url = f"{self.base_url}{path}"

        try:
            with httpx.Client(timeout=self.timeout) as client:
                while True:
                    resp = None
                    exc = None
                    try:
                        resp = client.request(method, url, data=data, headers=headers)
                        if resp.status_code < 500:
                            gateway_breaker.on_success()
                            return resp
                    except httpx.RequestError as e:  # includes timeouts
                        exc = e

                    attempts += 1
                    if attempts > max_retries:
                        gateway_breaker.on_failure()
                        logger.error(
                            "payment gateway call failed",
                            extra={
                                "path": path,
                                "attempts": attempts,
                                "status_code": getattr(resp, "status_code", None),
                                "error": type(exc).__name__ if exc else None,
                            },
                        )
                        raise GatewayUnavailable() from exc

                    sleep_s = min(backoff * (2 ** (attempts - 1)), max_sleep)
                    if sleep_s > 0:
                        time.sleep(sleep_s)
        finally:
            gateway_breaker.on_finish(trial)
