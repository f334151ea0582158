"""
Models Package

This file ensures all SQLAlchemy models are imported and registered,
which is required for relationships to work correctly.
"""

from models.base import Base
from models.product import Product
from models.product_variant import ProductVariant
from models.inventory_log import InventoryLog
from models.reservedStock import StockReservation
from models.cart import Cart
from models.cartItem import CartItem
from models.address import Address
from models.discount import Discount
from models.orderItem import OrderItem
from models.payment import Payment
from models.order_tracking import OrderTracking
from models.order import Order

__all__ = [
    'Base',
    'Product',
    'ProductVariant',
    'InventoryLog',
    'StockReservation',
    'Cart',
    'CartItem',
    'Address',
    'Discount',
    'OrderItem',
    'Payment',
    'OrderTracking',
    'Order',
]
