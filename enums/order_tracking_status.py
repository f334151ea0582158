from enum import Enum


class OrderTrackingStatus(Enum):
    ORDER_PLACED = "ORDER_PLACED"
    PROCESSING = "PROCESSING"
    SHIPPED = "SHIPPED"
    DELIVERED = "DELIVERED"
    EXCEPTION = "EXCEPTION"
