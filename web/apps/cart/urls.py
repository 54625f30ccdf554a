from django.urls import path

from .views import CartSummaryView

app_name = "cart"

urlpatterns = [
    path("", CartSummaryView.as_view(), name="cart-summary"),
]
