"""Edge middleware: request correlation and API payload limits.

Every request gets a request identifier. It is read from the incoming
``X-Request-ID`` header when the client (or an upstream proxy) supplies one,
otherwise a UUIDv4 is generated. The id is stored on the request, published
through ``REQUEST_ID_CTX`` so logging filters and outgoing HTTP adapters can
read it without passing it around, and echoed back on the response.

``ApiSizeLimitMiddleware`` rejects oversized bodies on ``/api/`` routes before
any view parses them.
"""

import contextvars
import uuid

from django.conf import settings
from django.http import JsonResponse

REQUEST_ID_CTX = contextvars.ContextVar("request_id", default="-")


class RequestIdMiddleware:
    """Assign a per-request id and expose it on the response.

    Attributes:
        HEADER (str): Incoming header, in ``request.META`` casing.
        RESPONSE_HEADER (str): Header written on every response.
    """

    HEADER = "HTTP_X_REQUEST_ID"
    RESPONSE_HEADER = "X-Request-ID"

    def __init__(self, get_response):
        self.get_response = get_response

    def __call__(self, request):
        rid = request.META.get(self.HEADER) or str(uuid.uuid4())
        request.request_id = rid
        token = REQUEST_ID_CTX.set(rid)
        try:
            response = self.get_response(request)
        finally:
            REQUEST_ID_CTX.reset(token)
        response[self.RESPONSE_HEADER] = rid
        return response


class ApiSizeLimitMiddleware:
    """Return 413 for ``/api/`` requests whose body exceeds ``API_MAX_BYTES``."""

    def __init__(self, get_response):
        self.get_response = get_response

    def __call__(self, request):
        if request.path.startswith("/api/"):
            limit = getattr(settings, "API_MAX_BYTES", 1024 * 1024)
            clen = request.META.get("CONTENT_LENGTH")
            if clen and clen.isdigit() and int(clen) > limit:
                return JsonResponse(
                    {"success": False, "detail": "PAYLOAD_TOO_LARGE", "message": "Request body is too large"},
                    status=413,
                )
        return self.get_response(request)
