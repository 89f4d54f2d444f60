from enum import Enum


class PaymentMethod(str, Enum):
    """
    Payment methods offered at checkout.

    CASH is settled on sample collection and is trusted immediately.
    Every other method needs an external confirmation signal before
    an order may be written.
    """
    CASH = "cash"
    UPI = "upi"
    CARD = "card"
    WALLET = "wallet"

    def requires_verification(self) -> bool:
        return self is not PaymentMethod.CASH
