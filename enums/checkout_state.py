from enum import Enum


class CheckoutState(str, Enum):
    AWAITING_METHOD = "awaiting_method"            # Checkout started, no payment method yet
    METHOD_SELECTED = "method_selected"            # Method chosen, gate deciding trust
    PENDING_VERIFICATION = "pending_verification"  # Online payment, waiting for provider signal
    VERIFIED = "verified"                          # Terminal: order may be written
