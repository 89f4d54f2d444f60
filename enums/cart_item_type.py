from enum import Enum


class CartItemType(str, Enum):
    TEST = "test"
    PACKAGE = "package"
    SERVICE = "service"  # Provider-agnostic bookings (ECG, physio, consultations)
