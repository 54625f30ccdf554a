from rest_framework import status
from rest_framework.response import Response
from rest_framework.views import APIView

from .reader import CartSnapshotReader


class CartSummaryView(APIView):
    """The caller's cart priced with the store's shipping rule."""

    def get(self, request):
        snap = CartSnapshotReader().get_cart_total(request.user.pk)
        return Response(
            {
                "success": True,
                "data": {
                    "items": [
                        {
                            "productId": line.product_id,
                            "variantId": line.variant_id,
                            "title": line.title,
                            "sku": line.sku,
                            "unitPrice": str(line.unit_price),
                            "quantity": line.quantity,
                            "amount": str(line.amount),
                        }
                        for line in snap.lines
                    ],
                    "quantity": snap.quantity,
                    "subTotal": str(snap.sub_total),
                    "shippingCost": str(snap.shipping_cost),
                    "couponDiscount": str(snap.coupon_discount),
                    "total": str(snap.total),
                    "currency": snap.currency,
                    "amountInCents": snap.amount_minor,
                },
            },
            status=status.HTTP_200_OK,
        )
