import logging

from django.db import DatabaseError, connection
from django.http import JsonResponse

from apps.orders.http_adapters import BreakerState, gateway_breaker

logger = logging.getLogger(__name__)


def health_view(_request):
    db_ok = False
    try:
        with connection.cursor() as cur:
            cur.execute("SELECT 1;")
        db_ok = True
    except DatabaseError:
        logger.exception("health check: database unreachable")

    # An open circuit degrades card checkout but the service still serves
    circuit = gateway_breaker.state
    ok = db_ok
    code = 200 if ok else 503
    return JsonResponse(
        {
            "ok": ok,
            "components": {
                "db": {"ok": db_ok},
                "payment_gateway": {"ok": circuit is not BreakerState.OPEN, "circuit": circuit.value},
            },
        },
        status=code,
    )
