from django.conf import settings
from rest_framework import status
from rest_framework.permissions import AllowAny
from rest_framework.response import Response
from rest_framework.throttling import ScopedRateThrottle
from rest_framework.views import APIView

from apps.orders.errors import CheckoutError
from apps.orders.views import MAX_IDEMPOTENCY_KEY_LENGTH, error_response

from . import services


class PaymentConfigView(APIView):
    """Publishable gateway settings for the storefront client."""

    permission_classes = [AllowAny]

    def get(self, request):
        public_key = getattr(settings, "STRIPE_PUBLIC_KEY", "") or None
        enabled = bool(public_key and getattr(settings, "STRIPE_SECRET_KEY", ""))
        return Response({"success": True, "data": {"stripeEnabled": enabled, "publicKey": public_key}})


class PaymentIntentView(APIView):
    """Create a payment intent for the caller's cart total."""

    throttle_classes = [ScopedRateThrottle]
    throttle_scope = "payments_intent"

    def post(self, request):
        idem_key = (
            request.headers.get("Idempotency-Key") or request.headers.get("X-Idempotency-Key") or ""
        ).strip() or None
        if idem_key and len(idem_key) > MAX_IDEMPOTENCY_KEY_LENGTH:
            return Response(
                {"success": False, "detail": "VALIDATION_ERROR", "message": "Idempotency-Key is too long"},
                status=status.HTTP_400_BAD_REQUEST,
            )

        try:
            intent, cart = services.create_intent_for_cart(request.user.pk, idempotency_key=idem_key)
        except CheckoutError as e:
            return error_response(e)

        return Response(
            {
                "success": True,
                "data": {
                    "clientSecret": intent.client_secret,
                    "paymentIntentId": intent.id,
                    "amount": cart.amount_minor,
                    "currency": cart.currency,
                },
            },
            status=status.HTTP_200_OK,
        )


class StripeWebhookView(APIView):
    """Gateway event receiver. Authenticated by signature, not by session."""

    authentication_classes = []
    permission_classes = [AllowAny]

    def post(self, request):
        # raw bytes are needed for the signature; never touch request.data here
        payload = request.body
        signature = request.headers.get("Stripe-Signature")
        try:
            result = services.handle_webhook(payload, signature)
        except CheckoutError as e:
            return error_response(e)
        return Response({"received": True, **result}, status=status.HTTP_200_OK)
