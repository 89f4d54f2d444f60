"""
Custom exceptions for the booking core.

Exception Hierarchy:
--------------------
BookingException (base)
├── CartException
│   └── EmptyCartException
├── PaymentException
│   ├── UnverifiedPaymentException
│   ├── PaymentMethodNotSelectedException
│   └── CheckoutNotFoundException
├── CheckoutException
│   └── InvalidCheckoutStateException
└── OrderException
    ├── OrderHeaderWriteException
    └── OrderItemsWriteException

Provider conflicts in the cart are not exceptions: CartStore.add_item
returns them as a PendingConflict for the caller to resolve.

Usage:
------
Services raise specific exceptions:
    raise UnverifiedPaymentException(checkout_id=gate.checkout_id, state=gate.state.value)

Callers pick the recovery path from the type:
    try:
        result = await finalizer.finalize()
    except OrderItemsWriteException as e:
        await alert_support(e.order_id)
"""

from .base import BookingException
from .cart import CartException, EmptyCartException
from .checkout import CheckoutException, InvalidCheckoutStateException
from .order import OrderException, OrderHeaderWriteException, OrderItemsWriteException
from .payment import (
    PaymentException,
    UnverifiedPaymentException,
    PaymentMethodNotSelectedException,
    CheckoutNotFoundException
)

__all__ = [
    # Base
    'BookingException',

    # Cart
    'CartException',
    'EmptyCartException',

    # Checkout
    'CheckoutException',
    'InvalidCheckoutStateException',

    # Order
    'OrderException',
    'OrderHeaderWriteException',
    'OrderItemsWriteException',

    # Payment
    'PaymentException',
    'UnverifiedPaymentException',
    'PaymentMethodNotSelectedException',
    'CheckoutNotFoundException',
]
