"""Sandbox payment gateway built with FastAPI.

Emulates the payment-intent subset of the gateway REST API that the
storefront talks to, so checkout can run end to end over real HTTP without
a live account:

- ``POST /v1/payment_intents`` (form-encoded, ``Idempotency-Key`` aware)
- ``GET /v1/payment_intents/{id}``
- ``POST /v1/payment_intents/{id}/confirm``

Every ``/v1`` call must carry ``Authorization: Bearer sk_...``. Errors use
the gateway's ``{"error": {"type", "code", "message"}}`` envelope.
Persistence is delegated to ``repo.PaymentIntentsRepo``.
"""

import logging
import os
import re
import time
import uuid
from typing import Annotated, Optional

from fastapi import FastAPI, Header, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field, ValidationError, constr
from pythonjsonlogger import jsonlogger
from sqlalchemy import text

from repo import IdempotencyMismatch, PaymentIntentsRepo, engine

app = FastAPI(title="Sandbox Payment Gateway")

AUTO_CONFIRM = os.getenv("SANDBOX_AUTO_CONFIRM", "1").strip().lower() in ("1", "true", "yes", "on")

Currency = constr(pattern=r"^[a-z]{3}$")
METADATA_FIELD = re.compile(r"^metadata\[(?P<key>[^\]]{1,40})\]$")


@app.on_event("startup")
def _startup_db():
    # brief active wait until the DB accepts connections
    deadline = time.time() + 30
    while True:
        try:
            with engine.connect() as conn:
                conn.execute(text("select 1"))
            break
        except Exception:
            if time.time() > deadline:
                raise
            time.sleep(1)


logger = logging.getLogger("sandbox_gateway")
if not logger.handlers:
    h = logging.StreamHandler()
    h.setFormatter(jsonlogger.JsonFormatter("%(asctime)s %(levelname)s %(name)s %(message)s %(request_id)s"))
    logger.addHandler(h)
    logger.setLevel(logging.INFO)


class CreateIntentForm(BaseModel):
    """Validated creation parameters.

    Attributes:
        amount: Positive amount in minor units.
        currency: Lowercase three-letter ISO code.
        metadata: String key/values from ``metadata[key]`` form fields.
    """

    amount: int = Field(gt=0)
    currency: Currency
    metadata: dict[str, str] = {}


def gateway_error(status_code: int, err_type: str, code: str, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": {"type": err_type, "code": code, "message": message}})


def _authorized(authorization: Optional[str]) -> bool:
    if not authorization or not authorization.startswith("Bearer "):
        return False
    return authorization[len("Bearer "):].strip().startswith("sk_")


def _unauthorized() -> JSONResponse:
    return gateway_error(401, "invalid_request_error", "api_key_invalid", "Invalid API key provided")


def _missing(intent_id: str) -> JSONResponse:
    return gateway_error(
        404, "invalid_request_error", "resource_missing", f"No such payment_intent: '{intent_id}'"
    )


@app.get("/health")
def health():
    """Liveness check."""
    return {"ok": True}


@app.post("/v1/payment_intents")
async def create_payment_intent(
    request: Request,
    authorization: Annotated[Optional[str], Header()] = None,
    idempotency_key: Annotated[Optional[str], Header(alias="Idempotency-Key")] = None,
):
    """Create a payment intent.

    With ``SANDBOX_AUTO_CONFIRM`` on (the default) the intent is created
    ``succeeded`` with the full amount captured, standing in for a card the
    customer confirmed in the browser. A repeated ``Idempotency-Key`` returns
    the first intent; the same key with different parameters is a 400.
    """
    if not _authorized(authorization):
        return _unauthorized()

    form = await request.form()
    metadata = {}
    for name, value in form.multi_items():
        m = METADATA_FIELD.match(name)
        if m:
            metadata[m.group("key")] = str(value)
    try:
        params = CreateIntentForm(
            amount=form.get("amount"),
            currency=str(form.get("currency") or "").lower(),
            metadata=metadata,
        )
    except ValidationError as e:
        first = e.errors()[0]
        field = ".".join(str(p) for p in first["loc"])
        return gateway_error(400, "invalid_request_error", "parameter_invalid", f"Invalid {field}: {first['msg']}")

    try:
        intent = PaymentIntentsRepo().create(
            amount=params.amount,
            currency=params.currency,
            metadata=params.metadata,
            auto_confirm=AUTO_CONFIRM,
            idempotency_key=idempotency_key,
        )
    except IdempotencyMismatch:
        return gateway_error(
            400,
            "idempotency_error",
            "idempotency_key_in_use",
            "Keys for idempotent requests can only be used with the same parameters they were first used with",
        )

    logger.info(
        "payment intent created",
        extra={
            "request_id": getattr(request.state, "request_id", None),
            "payment_intent_id": intent["id"],
            "amount": intent["amount"],
        },
    )
    return intent


@app.get("/v1/payment_intents/{intent_id}")
def retrieve_payment_intent(intent_id: str, authorization: Annotated[Optional[str], Header()] = None):
    if not _authorized(authorization):
        return _unauthorized()
    intent = PaymentIntentsRepo().get(intent_id)
    if intent is None:
        return _missing(intent_id)
    return intent


@app.post("/v1/payment_intents/{intent_id}/confirm")
def confirm_payment_intent(intent_id: str, authorization: Annotated[Optional[str], Header()] = None):
    """Mark the intent succeeded with its full amount captured."""
    if not _authorized(authorization):
        return _unauthorized()
    intent = PaymentIntentsRepo().confirm(intent_id)
    if intent is None:
        return _missing(intent_id)
    return intent


@app.middleware("http")
async def add_request_id(request: Request, call_next):
    rid = request.headers.get("X-Request-ID") or str(uuid.uuid4())
    request.state.request_id = rid
    try:
        response = await call_next(request)
    finally:
        logger.info("request handled", extra={"request_id": rid, "path": request.url.path, "method": request.method})
    response.headers["X-Request-ID"] = rid
    return response
