"""
Address-related exceptions.
"""

from .base import ShopException


class AddressException(ShopException):
    """Base exception for address-related errors."""
    pass


class InvalidAddressException(AddressException):
    """Raised when a shipping/billing address is missing or belongs to another user."""

    def __init__(self, user_id: int, address_ids: list[int]):
        super().__init__(
            "Invalid address provided",
            details={'user_id': user_id, 'address_ids': address_ids}
        )
        self.user_id = user_id
        self.address_ids = address_ids
