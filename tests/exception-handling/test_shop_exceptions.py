"""
Tests for the exception hierarchy in exceptions/

Every business error carries a stable category; only conflicts are retryable.
"""

import pytest

from enums.error_category import ErrorCategory
from exceptions import (
    ConcurrencyConflictException,
    DiscountExpiredException,
    DiscountNotFoundException,
    DiscountUsageLimitReachedException,
    EmptyCartException,
    InsufficientStockException,
    InvalidAddressException,
    InvalidOrderStateException,
    InvalidPaymentTransitionException,
    InvalidQuantityException,
    OrderNotCancellableException,
    OrderNotFoundException,
    OrderOwnershipException,
    PaymentOwnershipException,
    ReservationAlreadyResolvedException,
    ReservationNotFoundException,
    ShopException,
    VariantNotFoundException,
)


class TestCategories:

    @pytest.mark.parametrize("exc,category", [
        (VariantNotFoundException(1), ErrorCategory.NOT_FOUND),
        (OrderNotFoundException("ORD-2026-ABC234"), ErrorCategory.NOT_FOUND),
        (DiscountNotFoundException("NOPE"), ErrorCategory.NOT_FOUND),
        (ReservationNotFoundException("abc"), ErrorCategory.NOT_FOUND),
        (InsufficientStockException(1, 5, 2), ErrorCategory.BAD_REQUEST),
        (InvalidQuantityException(1, 0), ErrorCategory.BAD_REQUEST),
        (EmptyCartException(1), ErrorCategory.BAD_REQUEST),
        (InvalidAddressException(1, [2, 3]), ErrorCategory.BAD_REQUEST),
        (DiscountExpiredException("OLD"), ErrorCategory.BAD_REQUEST),
        (DiscountUsageLimitReachedException("ONCE"), ErrorCategory.BAD_REQUEST),
        (OrderNotCancellableException("ORD-2026-ABC234", "SHIPPED"), ErrorCategory.BAD_REQUEST),
        (InvalidOrderStateException("ORD-2026-ABC234", "PENDING", "DELIVERED"), ErrorCategory.BAD_REQUEST),
        (ReservationAlreadyResolvedException("abc", "RELEASED"), ErrorCategory.BAD_REQUEST),
        (OrderOwnershipException("ORD-2026-ABC234", 2), ErrorCategory.FORBIDDEN),
        (PaymentOwnershipException("ORD-2026-ABC234", 2), ErrorCategory.FORBIDDEN),
        (InvalidPaymentTransitionException("RP-0001", "FAILED", "PENDING"), ErrorCategory.BAD_REQUEST),
        (ConcurrencyConflictException("place_order", "database is locked"), ErrorCategory.CONFLICT),
    ])
    def test_category(self, exc, category):
        assert isinstance(exc, ShopException)
        assert exc.category == category
        assert exc.retryable == (category == ErrorCategory.CONFLICT)


class TestMessagesAndDetails:

    def test_insufficient_stock_names_variant(self):
        exc = InsufficientStockException(42, requested=3, available=1, variant_name="Remera Azul L")

        assert str(exc) == "Insufficient stock for Remera Azul L. Available: 1, Requested: 3"
        assert exc.details == {'variant_id': 42, 'requested': 3, 'available': 1}

    def test_insufficient_stock_without_name(self):
        assert "variant 42" in str(InsufficientStockException(42, 3, 1))

    def test_invalid_address_message(self):
        assert str(InvalidAddressException(1, [5, 6])) == "Invalid address provided"

    def test_repr_includes_details(self):
        exc = OrderNotFoundException("ORD-2026-ABC234")
        assert repr(exc) == "OrderNotFoundException('Order ORD-2026-ABC234 not found', order_number=ORD-2026-ABC234)"

    def test_single_handler_catches_everything(self):
        with pytest.raises(ShopException):
            raise OrderOwnershipException("ORD-2026-ABC234", 9)
