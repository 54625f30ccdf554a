import logging

from .models import CartItem

logger = logging.getLogger(__name__)


def clear_cart_on_order_placed(sender, order, **kwargs):
    """Empty the buyer's cart once their order has been committed."""
    deleted, _ = CartItem.objects.filter(user_id=order.user_id).delete()
    logger.info("cart cleared after order", extra={"order_number": order.order_number, "lines_removed": deleted})
