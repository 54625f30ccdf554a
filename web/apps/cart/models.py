from django.conf import settings
from django.db import models


class CartItem(models.Model):
    user = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name="cart_items")
    product_id = models.CharField(max_length=64)
    variant_id = models.CharField(max_length=64, null=True, blank=True)
    title = models.CharField(max_length=255)
    sku = models.CharField(max_length=64)
    price = models.DecimalField(max_digits=12, decimal_places=2)
    quantity = models.PositiveIntegerField(default=1)
    amount = models.DecimalField(max_digits=12, decimal_places=2, default=0)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = "cart_items"
        ordering = ["created_at", "id"]
        constraints = [
            models.UniqueConstraint(fields=["user", "product_id", "variant_id"], name="cart_items_user_product_uniq"),
            # NULL variants never collide in the index above
            models.UniqueConstraint(
                fields=["user", "product_id"],
                condition=models.Q(variant_id__isnull=True),
                name="cart_items_user_product_novariant_uniq",
            ),
        ]

    def save(self, *args, **kwargs):
        # Line amount is always derived, never trusted from input
        self.amount = self.price * self.quantity
        super().save(*args, **kwargs)
