from django.apps import AppConfig


class CartConfig(AppConfig):
    name = "apps.cart"
    label = "cart"

    def ready(self):
        from apps.orders.signals import order_placed

        from .receivers import clear_cart_on_order_placed

        order_placed.connect(clear_cart_on_order_placed, dispatch_uid="cart.clear_on_order_placed")
