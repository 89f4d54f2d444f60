"""
Cart-related exceptions.
"""

from .base import BookingException


class CartException(BookingException):
    """Base exception for cart-related errors."""
    pass


class EmptyCartException(CartException):
    """Raised when trying to start checkout with an empty cart."""

    def __init__(self, user_id: str | None = None):
        super().__init__(
            f"Cart is empty for user {user_id}" if user_id else "Cart is empty",
            details={'user_id': user_id}
        )
        self.user_id = user_id
