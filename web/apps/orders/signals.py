from django.dispatch import Signal

# Sent once the transaction that inserted an order has committed.
# Receivers get ``order`` (a domain ``Order``).
order_placed = Signal()
