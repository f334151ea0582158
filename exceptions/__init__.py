"""
Custom exceptions for the order and inventory core.

This module provides a hierarchy of custom exceptions for consistent error handling
throughout the application. Every exception carries a stable ``category``
(enums.error_category.ErrorCategory) so callers can tell "retry won't help"
(NOT_FOUND / BAD_REQUEST / FORBIDDEN) from "retry might help" (CONFLICT).

Exception Hierarchy:
--------------------
ShopException (base)
├── ConcurrencyConflictException            CONFLICT
├── InventoryException
│   ├── ProductNotFoundException            NOT_FOUND
│   ├── VariantNotFoundException            NOT_FOUND
│   ├── InsufficientStockException          BAD_REQUEST
│   ├── InvalidQuantityException            BAD_REQUEST
│   ├── ReservationNotFoundException        NOT_FOUND
│   ├── ReservationAlreadyResolvedException BAD_REQUEST
│   └── ReservationExpiredException         BAD_REQUEST
├── OrderException
│   ├── OrderNotFoundException              NOT_FOUND
│   ├── OrderOwnershipException             FORBIDDEN
│   ├── OrderNotCancellableException        BAD_REQUEST
│   └── InvalidOrderStateException          BAD_REQUEST
├── CartException
│   ├── EmptyCartException                  BAD_REQUEST
│   └── CartItemNotFoundException           NOT_FOUND
├── AddressException
│   └── InvalidAddressException             BAD_REQUEST
├── DiscountException
│   ├── DiscountNotFoundException           NOT_FOUND
│   ├── DiscountNotActiveException          BAD_REQUEST
│   ├── DiscountNotYetActiveException       BAD_REQUEST
│   ├── DiscountExpiredException            BAD_REQUEST
│   ├── DiscountUsageLimitReachedException  BAD_REQUEST
│   └── InvalidDiscountException            BAD_REQUEST
└── PaymentException
    ├── PaymentNotFoundException            BAD_REQUEST
    ├── PaymentOwnershipException           FORBIDDEN
    ├── PaymentAlreadyProcessedException    BAD_REQUEST
    ├── InvalidInstallmentsException        BAD_REQUEST
    └── InvalidPaymentTransitionException   BAD_REQUEST

Usage:
------
Services raise specific exceptions:
    raise OrderNotFoundException(order_number="ORD-2026-ABC234")

Request handlers map them by category:
    try:
        await OrderService.cancel_order(user_id, order_number)
    except ShopException as e:
        return error_response(e.category, str(e))
"""

from .base import ShopException, ConcurrencyConflictException
from .address import AddressException, InvalidAddressException
from .cart import CartException, EmptyCartException, CartItemNotFoundException
from .discount import (
    DiscountException,
    DiscountNotFoundException,
    DiscountNotActiveException,
    DiscountNotYetActiveException,
    DiscountExpiredException,
    DiscountUsageLimitReachedException,
    InvalidDiscountException
)
from .inventory import (
    InventoryException,
    ProductNotFoundException,
    VariantNotFoundException,
    InsufficientStockException,
    InvalidQuantityException,
    ReservationNotFoundException,
    ReservationAlreadyResolvedException,
    ReservationExpiredException
)
from .order import (
    OrderException,
    OrderNotFoundException,
    OrderOwnershipException,
    OrderNotCancellableException,
    InvalidOrderStateException
)
from .payment import (
    PaymentException,
    PaymentNotFoundException,
    PaymentOwnershipException,
    PaymentAlreadyProcessedException,
    InvalidInstallmentsException,
    InvalidPaymentTransitionException
)

__all__ = [
    # Base
    'ShopException',
    'ConcurrencyConflictException',

    # Address
    'AddressException',
    'InvalidAddressException',

    # Cart
    'CartException',
    'EmptyCartException',
    'CartItemNotFoundException',

    # Discount
    'DiscountException',
    'DiscountNotFoundException',
    'DiscountNotActiveException',
    'DiscountNotYetActiveException',
    'DiscountExpiredException',
    'DiscountUsageLimitReachedException',
    'InvalidDiscountException',

    # Inventory
    'InventoryException',
    'ProductNotFoundException',
    'VariantNotFoundException',
    'InsufficientStockException',
    'InvalidQuantityException',
    'ReservationNotFoundException',
    'ReservationAlreadyResolvedException',
    'ReservationExpiredException',

    # Order
    'OrderException',
    'OrderNotFoundException',
    'OrderOwnershipException',
    'OrderNotCancellableException',
    'InvalidOrderStateException',

    # Payment
    'PaymentException',
    'PaymentNotFoundException',
    'PaymentOwnershipException',
    'PaymentAlreadyProcessedException',
    'InvalidInstallmentsException',
    'InvalidPaymentTransitionException',
]
