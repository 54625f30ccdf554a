from django.urls import path

from .views import PaymentConfigView, PaymentIntentView, StripeWebhookView

app_name = "payments"

urlpatterns = [
    path("config/", PaymentConfigView.as_view(), name="config"),
    path("intent/", PaymentIntentView.as_view(), name="intent"),
    path("webhook/", StripeWebhookView.as_view(), name="webhook"),
]
