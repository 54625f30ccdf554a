"""HTTP views for the orders app.

Views are kept small: they validate requests (via Pydantic), delegate to the
placement service obtained from ``providers.get_order_service()``, and map
domain outcomes to HTTP responses. Errors are rendered as
``{"success": false, "detail": CODE, "message": text}`` with the status code
carried by the domain error.

Idempotency: when an ``Idempotency-Key`` header is sent, a retry of a
successful placement returns the original order with HTTP 200 and the
``Idempotent-Replay: true`` header instead of creating a second order.
"""

from django.core.paginator import Paginator
from pydantic import ValidationError
from rest_framework import status
from rest_framework.permissions import AllowAny
from rest_framework.response import Response
from rest_framework.throttling import ScopedRateThrottle
from rest_framework.views import APIView

from . import providers
from .errors import CheckoutError
from .repository import OrderRepository, order_from_model
from .schemas import OrderReadDTO, PlaceOrderDTO

MAX_IDEMPOTENCY_KEY_LENGTH = 255
MAX_PAGE_SIZE = 100


def error_response(exc: CheckoutError) -> Response:
    return Response(
        {"success": False, "detail": exc.code, "message": exc.message},
        status=exc.status_code,
    )


def validation_error_response(exc: ValidationError) -> Response:
    errors = [
        {"field": ".".join(str(p) for p in err["loc"]) or "body", "message": err["msg"]}
        for err in exc.errors()
    ]
    return Response(
        {"success": False, "detail": "VALIDATION_ERROR", "message": "Invalid order request", "errors": errors},
        status=status.HTTP_400_BAD_REQUEST,
    )


def _positive_int(raw, default: int) -> int:
    try:
        value = int(raw)
    except (TypeError, ValueError):
        return default
    return value if value > 0 else default


class OrdersPingView(APIView):
    """Liveness endpoint for the orders module."""

    permission_classes = [AllowAny]

    def get(self, request):
        return Response({"ok": True})


class OrdersCollectionView(APIView):
    """List the caller's orders (GET) or place a new one from the cart (POST)."""

    throttle_classes = [ScopedRateThrottle]

    def get_throttles(self):
        # DRF evaluates throttles in initial(), before get/post
        self.throttle_scope = "orders_list" if self.request.method == "GET" else "orders_create"
        return [throttle() for throttle in self.throttle_classes]

    def get(self, request):
        qs = OrderRepository().list_for_user(request.user.pk, status=request.GET.get("status"))
        page_size = min(_positive_int(request.GET.get("page_size"), 20), MAX_PAGE_SIZE)
        p = Paginator(qs, page_size)
        page_obj = p.get_page(request.GET.get("page", 1))

        results = [OrderReadDTO.from_domain(order_from_model(o)).to_json() for o in page_obj.object_list]
        return Response(
            {
                "success": True,
                "data": {
                    "orders": results,
                    "pagination": {
                        "page": page_obj.number,
                        "page_size": page_size,
                        "total": p.count,
                        "pages": p.num_pages,
                    },
                },
            },
            status=status.HTTP_200_OK,
        )

    def post(self, request):
        """Place an order.

        Returns:
            Response: One of the following.
            - 201 with ``{success, message, data: order}`` for a new order.
            - 200 with the same shape and ``Idempotent-Replay: true`` when
              the idempotency key already produced an order.
            - 400 for invalid bodies, an empty cart or an oversized key.
            - 402 when the payment intent is missing or not succeeded.
            - 409 for amount mismatch, reused payment, foreign intent or a
              key owned by another account.
            - 500 when card payments are not configured.
            - 502 when the payment gateway cannot be reached.
        """
        idem_key = (request.headers.get("Idempotency-Key") or "").strip() or None
        if idem_key and len(idem_key) > MAX_IDEMPOTENCY_KEY_LENGTH:
            return Response(
                {"success": False, "detail": "VALIDATION_ERROR", "message": "Idempotency-Key is too long"},
                status=status.HTTP_400_BAD_REQUEST,
            )

        # 1) Pydantic validation
        try:
            dto = PlaceOrderDTO.model_validate(request.data)
        except ValidationError as e:
            return validation_error_response(e)

        # 2) Domain
        service = providers.get_order_service()
        try:
            result = service.place_order(request.user.pk, dto.to_request(), idempotency_key=idem_key)
        except CheckoutError as e:
            return error_response(e)

        # 3) Response
        data = OrderReadDTO.from_domain(result.order).to_json()
        if not result.created:
            resp = Response(
                {"success": True, "message": "Order already placed", "data": data},
                status=status.HTTP_200_OK,
            )
            resp["Idempotent-Replay"] = "true"
            return resp

        return Response(
            {"success": True, "message": "Order created successfully", "data": data},
            status=status.HTTP_201_CREATED,
        )


class RetrieveOrderView(APIView):
    throttle_classes = [ScopedRateThrottle]
    throttle_scope = "orders_detail"

    def get(self, request, oid):
        order = OrderRepository().get_for_user(oid, request.user.pk)
        if order is None:
            return Response(
                {"success": False, "detail": "NOT_FOUND", "message": "Order not found"},
                status=status.HTTP_404_NOT_FOUND,
            )
        return Response({"success": True, "data": OrderReadDTO.from_domain(order).to_json()}, status=200)
