"""
Payment-related exceptions.
"""

from enums.error_category import ErrorCategory
from .base import ShopException


class PaymentException(ShopException):
    """Base exception for payment-related errors."""
    pass


class PaymentNotFoundException(PaymentException):
    """Raised when an order, or a provider reference, has no payment record."""

    def __init__(self, order_number: str | None = None, reference: str | None = None):
        subject = f"order {order_number}" if order_number is not None else f"reference {reference}"
        super().__init__(
            f"No payment record found for {subject}",
            details={'order_number': order_number, 'reference': reference}
        )
        self.order_number = order_number
        self.reference = reference


class PaymentOwnershipException(PaymentException):
    """Raised when user attempts to pay for or inspect another user's payment."""

    category = ErrorCategory.FORBIDDEN

    def __init__(self, order_number: str, user_id: int):
        super().__init__(
            f"User {user_id} does not have permission to access the payment of order {order_number}",
            details={'order_number': order_number, 'user_id': user_id}
        )
        self.order_number = order_number
        self.user_id = user_id


class PaymentAlreadyProcessedException(PaymentException):
    """Raised when trying to charge an order whose payment already succeeded."""

    def __init__(self, order_number: str):
        super().__init__(
            f"Payment for order {order_number} has already been processed",
            details={'order_number': order_number}
        )
        self.order_number = order_number


class InvalidInstallmentsException(PaymentException):
    """Raised when the requested number of installments is not a positive integer."""

    def __init__(self, installments):
        super().__init__(
            f"Invalid number of installments: {installments}",
            details={'installments': installments}
        )
        self.installments = installments


class InvalidPaymentTransitionException(PaymentException):
    """Raised when a provider status update would move a payment backwards (e.g. to PENDING)."""

    def __init__(self, reference: str, current_status: str, requested_status: str):
        super().__init__(
            f"Payment {reference} cannot move from {current_status} to {requested_status}",
            details={'reference': reference, 'current_status': current_status, 'requested_status': requested_status}
        )
        self.reference = reference
        self.current_status = current_status
        self.requested_status = requested_status
