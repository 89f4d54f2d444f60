"""
Models Package

This file ensures all SQLAlchemy models are imported and registered,
which is required for relationships to work correctly.
"""

from models.base import Base
from models.cart_line import CartItem, CartLine
from models.order import Order
from models.orderItem import OrderItem

__all__ = [
    'Base',
    'CartItem',
    'CartLine',
    'Order',
    'OrderItem',
]
