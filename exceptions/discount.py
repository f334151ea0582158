"""
Discount-related exceptions.
"""

from enums.error_category import ErrorCategory
from .base import ShopException


class DiscountException(ShopException):
    """Base exception for discount-related errors."""

    def __init__(self, code: str, message: str):
        super().__init__(message, details={'code': code})
        self.code = code


class DiscountNotFoundException(DiscountException):
    category = ErrorCategory.NOT_FOUND

    def __init__(self, code: str | None = None, discount_id: int | None = None):
        subject = f"code {code}" if code is not None else f"with ID {discount_id}"
        super().__init__(code, f"Discount {subject} not found")
        self.discount_id = discount_id


class DiscountNotActiveException(DiscountException):
    def __init__(self, code: str):
        super().__init__(code, f"Discount code {code} is not active")


class DiscountNotYetActiveException(DiscountException):
    def __init__(self, code: str):
        super().__init__(code, f"Discount code {code} is not yet active")


class DiscountExpiredException(DiscountException):
    def __init__(self, code: str):
        super().__init__(code, f"Discount code {code} has expired")


class DiscountUsageLimitReachedException(DiscountException):
    def __init__(self, code: str):
        super().__init__(code, f"Discount code {code} has reached its usage limit")


class InvalidDiscountException(DiscountException):
    """Raised when creating a discount with inconsistent data."""

    def __init__(self, code: str, reason: str):
        super().__init__(code, f"Invalid discount {code}: {reason}")
        self.reason = reason
