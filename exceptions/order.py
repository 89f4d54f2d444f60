"""
Order-related exceptions.

The two write failures are separate types. A failed header
write leaves nothing behind and can be retried from scratch, a failed
items write leaves a header without items that must be completed against
the existing order id.
"""

from .base import BookingException


class OrderException(BookingException):
    """Base exception for order-related errors."""
    pass


class OrderHeaderWriteException(OrderException):
    """Raised when the order header could not be persisted. No order exists yet."""

    def __init__(self, checkout_id: str, reason: str):
        super().__init__(
            f"Failed to create order for checkout {checkout_id}: {reason}",
            details={'checkout_id': checkout_id, 'reason': reason}
        )
        self.checkout_id = checkout_id
        self.reason = reason
        self.retryable = True


class OrderItemsWriteException(OrderException):
    """Raised when the header exists but its line items could not be persisted."""

    def __init__(self, checkout_id: str, order_id: str, reason: str):
        super().__init__(
            f"Order {order_id} was created without its items (checkout {checkout_id}): {reason}",
            details={'checkout_id': checkout_id, 'order_id': order_id, 'reason': reason}
        )
        self.checkout_id = checkout_id
        self.order_id = order_id
        self.reason = reason
        self.retryable = False
