from django.db import migrations, models


class Migration(migrations.Migration):

    dependencies = [
        ("cart", "0001_initial"),
    ]

    operations = [
        migrations.AddConstraint(
            model_name="cartitem",
            constraint=models.UniqueConstraint(
                condition=models.Q(variant_id__isnull=True),
                fields=("user", "product_id"),
                name="cart_items_user_product_novariant_uniq",
            ),
        ),
    ]
