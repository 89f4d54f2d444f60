"""
Payment-related exceptions.
"""

from .base import BookingException


class PaymentException(BookingException):
    """Base exception for payment-related errors."""
    pass


class UnverifiedPaymentException(PaymentException):
    """
    Raised when an order is about to be written without a verified payment.

    Expected control flow: the caller sends the user back to payment
    selection. No persistence call has been issued when this is raised.
    """

    def __init__(self, checkout_id: str, state: str):
        super().__init__(
            f"Payment for checkout {checkout_id} is not verified (state '{state}')",
            details={'checkout_id': checkout_id, 'state': state}
        )
        self.checkout_id = checkout_id
        self.state = state
        self.redirect_to_payment = True


class PaymentMethodNotSelectedException(PaymentException):
    """Raised when a payment signal arrives before a method was chosen."""

    def __init__(self, checkout_id: str):
        super().__init__(
            f"Payment method not selected for checkout {checkout_id}",
            details={'checkout_id': checkout_id}
        )
        self.checkout_id = checkout_id


class CheckoutNotFoundException(PaymentException):
    """Raised when a payment confirmation references an unknown checkout attempt."""

    def __init__(self, checkout_id: str):
        super().__init__(
            f"Checkout {checkout_id} is not awaiting payment confirmation",
            details={'checkout_id': checkout_id}
        )
        self.checkout_id = checkout_id
