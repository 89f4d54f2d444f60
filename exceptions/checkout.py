"""
Checkout-related exceptions.
"""

from .base import BookingException


class CheckoutException(BookingException):
    """Base exception for checkout-related errors."""
    pass


class InvalidCheckoutStateException(CheckoutException):
    """Raised when the checkout gate is in the wrong state for the requested operation."""

    def __init__(self, checkout_id: str, current_state: str, required_state: str):
        super().__init__(
            f"Checkout {checkout_id} is in state '{current_state}', required '{required_state}'",
            details={'checkout_id': checkout_id, 'current_state': current_state, 'required_state': required_state}
        )
        self.checkout_id = checkout_id
        self.current_state = current_state
        self.required_state = required_state
