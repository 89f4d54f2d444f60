from enum import Enum


class OrderStatus(str, Enum):
    PENDING = "pending"        # Header written before payment was confirmed (never by the finalizer)
    CONFIRMED = "confirmed"    # Payment verified, booking accepted
