from enum import Enum


class OrderStatus(Enum):
    PENDING = "PENDING"          # Placed, waiting for payment / processing
    PROCESSING = "PROCESSING"    # Being prepared
    SHIPPED = "SHIPPED"          # Handed to carrier
    DELIVERED = "DELIVERED"      # Received by customer
    CANCELLED = "CANCELLED"      # Cancelled (stock returned)
    REFUNDED = "REFUNDED"        # Money returned to customer
