"""
Inventory ledger and stock reservation exceptions.
"""

from enums.error_category import ErrorCategory
from .base import ShopException


class InventoryException(ShopException):
    """Base exception for inventory-related errors."""
    pass


class VariantNotFoundException(InventoryException):
    """Raised when a product variant does not exist."""

    category = ErrorCategory.NOT_FOUND

    def __init__(self, variant_id: int):
        super().__init__(
            f"Variant {variant_id} not found",
            details={'variant_id': variant_id}
        )
        self.variant_id = variant_id


class InsufficientStockException(InventoryException):
    """Raised when a variant has less stock than requested."""

    def __init__(self, variant_id: int, requested: int, available: int, variant_name: str | None = None):
        label = variant_name or f"variant {variant_id}"
        super().__init__(
            f"Insufficient stock for {label}. Available: {available}, Requested: {requested}",
            details={'variant_id': variant_id, 'requested': requested, 'available': available}
        )
        self.variant_id = variant_id
        self.requested = requested
        self.available = available
        self.variant_name = variant_name


class InvalidQuantityException(InventoryException):
    """Raised for non-positive change quantities or negative absolute stock values."""

    def __init__(self, variant_id: int | None, quantity: int, reason: str = "Quantity must be greater than 0"):
        super().__init__(
            f"Invalid quantity {quantity} for variant {variant_id}: {reason}",
            details={'variant_id': variant_id, 'quantity': quantity}
        )
        self.variant_id = variant_id
        self.quantity = quantity


class ReservationNotFoundException(InventoryException):
    """Raised when a stock reservation id is unknown."""

    category = ErrorCategory.NOT_FOUND

    def __init__(self, reservation_id: str):
        super().__init__(
            f"Stock reservation {reservation_id} not found",
            details={'reservation_id': reservation_id}
        )
        self.reservation_id = reservation_id


class ReservationAlreadyResolvedException(InventoryException):
    """Raised when a reservation was already confirmed or released."""

    def __init__(self, reservation_id: str, current_status: str):
        super().__init__(
            f"Stock reservation {reservation_id} is already {current_status}",
            details={'reservation_id': reservation_id, 'current_status': current_status}
        )
        self.reservation_id = reservation_id
        self.current_status = current_status


class ReservationExpiredException(InventoryException):
    """Raised when confirming a reservation after its expiry; it must be released instead."""

    def __init__(self, reservation_id: str, expires_at):
        super().__init__(
            f"Stock reservation {reservation_id} expired at {expires_at:%Y-%m-%d %H:%M:%S}",
            details={'reservation_id': reservation_id, 'expires_at': expires_at}
        )
        self.reservation_id = reservation_id
        self.expires_at = expires_at


class ProductNotFoundException(InventoryException):
    """Raised when a product does not exist."""

    category = ErrorCategory.NOT_FOUND

    def __init__(self, product_id: int):
        super().__init__(
            f"Product {product_id} not found",
            details={'product_id': product_id}
        )
        self.product_id = product_id
