"""
Order-related exceptions.
"""

from enums.error_category import ErrorCategory
from .base import ShopException


class OrderException(ShopException):
    """Base exception for order-related errors."""
    pass


class OrderNotFoundException(OrderException):
    """Raised when order is not found in database."""

    category = ErrorCategory.NOT_FOUND

    def __init__(self, order_number: str):
        super().__init__(
            f"Order {order_number} not found",
            details={'order_number': order_number}
        )
        self.order_number = order_number


class OrderOwnershipException(OrderException):
    """Raised when user attempts to access/modify order they don't own."""

    category = ErrorCategory.FORBIDDEN

    def __init__(self, order_number: str, user_id: int):
        super().__init__(
            f"User {user_id} does not have permission to access order {order_number}",
            details={'order_number': order_number, 'user_id': user_id}
        )
        self.order_number = order_number
        self.user_id = user_id


class OrderNotCancellableException(OrderException):
    """Raised when cancelling an order outside PENDING/PROCESSING."""

    def __init__(self, order_number: str, current_state: str):
        super().__init__(
            f"Order {order_number} cannot be cancelled (status: {current_state})",
            details={'order_number': order_number, 'current_state': current_state}
        )
        self.order_number = order_number
        self.current_state = current_state


class InvalidOrderStateException(OrderException):
    """Raised when a status transition is not allowed by the order state machine."""

    def __init__(self, order_number: str, current_state: str, requested_state: str):
        super().__init__(
            f"Order {order_number} cannot move from {current_state} to {requested_state}",
            details={
                'order_number': order_number,
                'current_state': current_state,
                'requested_state': requested_state
            }
        )
        self.order_number = order_number
        self.current_state = current_state
        self.requested_state = requested_state
