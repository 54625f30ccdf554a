import uuid

from django.conf import settings
from django.db import models


def generate_order_number() -> str:
    return f"ORD-{uuid.uuid4().hex[:8].upper()}"


class OrderModel(models.Model):
    # UUID PK exposed in the API
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    order_number = models.CharField(max_length=32, unique=True, editable=False)
    user = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.PROTECT, related_name="orders")

    class Status(models.TextChoices):
        NEW = "NEW"
        PROCESSING = "PROCESSING"
        DELIVERED = "DELIVERED"
        CANCELLED = "CANCELLED"

    class PaymentMethod(models.TextChoices):
        COD = "cod"
        STRIPE = "stripe"

    class PaymentStatus(models.TextChoices):
        PAID = "PAID"
        UNPAID = "UNPAID"

    status = models.CharField(max_length=32, choices=Status.choices, default=Status.NEW)
    payment_method = models.CharField(max_length=16, choices=PaymentMethod.choices)
    payment_status = models.CharField(max_length=16, choices=PaymentStatus.choices, default=PaymentStatus.UNPAID)

    # Both keys are unique: the insert itself is the final arbiter when two
    # submissions race past the application-level lookups.
    transaction_id = models.CharField(max_length=255, unique=True, null=True, blank=True)
    idempotency_key = models.CharField(max_length=255, unique=True, null=True, blank=True)

    sub_total = models.DecimalField(max_digits=12, decimal_places=2, default=0)
    shipping_cost = models.DecimalField(max_digits=12, decimal_places=2, default=0)
    coupon_discount = models.DecimalField(max_digits=12, decimal_places=2, default=0)
    total_amount = models.DecimalField(max_digits=12, decimal_places=2, default=0)
    currency = models.CharField(max_length=3, default="USD")
    quantity = models.PositiveIntegerField(default=1)

    # Shipping
    first_name = models.CharField(max_length=100)
    last_name = models.CharField(max_length=100)
    email = models.CharField(max_length=254)
    phone = models.CharField(max_length=32)
    address1 = models.CharField(max_length=255)
    address2 = models.CharField(max_length=255, blank=True, default="")
    city = models.CharField(max_length=100)
    state = models.CharField(max_length=100, blank=True, default="")
    post_code = models.CharField(max_length=20)
    country = models.CharField(max_length=56)

    notes = models.TextField(max_length=500, blank=True, default="")
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = "orders"
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["user", "-created_at"], name="orders_user_created_idx"),
        ]

    def __str__(self):
        return self.order_number

    def save(self, *args, **kwargs):
        # Order number is assigned once, on creation
        if not self.order_number:
            self.order_number = generate_order_number()
        super().save(*args, **kwargs)


class OrderLineModel(models.Model):
    order = models.ForeignKey(OrderModel, on_delete=models.CASCADE, related_name="lines")
    product_id = models.CharField(max_length=64)
    variant_id = models.CharField(max_length=64, null=True, blank=True)
    title = models.CharField(max_length=255)
    sku = models.CharField(max_length=64)
    unit_price = models.DecimalField(max_digits=12, decimal_places=2)
    quantity = models.PositiveIntegerField()
    amount = models.DecimalField(max_digits=12, decimal_places=2)

    class Meta:
        db_table = "order_lines"
        ordering = ["id"]
