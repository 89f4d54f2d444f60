from uuid import uuid4

from pydantic import BaseModel, Field

from enums.payment_method import PaymentMethod
from models.cart_line import CartLine


class CheckoutContext(BaseModel):
    """
    Everything one checkout attempt carries from the cart to the order.

    cart_snapshot is a deep copy taken when checkout starts, later cart
    mutations never reach an in-flight order. Address and schedule fields
    are opaque here and copied to the order header unchanged.
    """
    checkout_id: str = Field(default_factory=lambda: uuid4().hex)
    user_id: str | None = None
    cart_snapshot: list[CartLine]
    address_id: str | None = None
    scheduled_date: str | None = None
    scheduled_time_slot: str | None = None
    coupon_code: str | None = None
    payment_method: PaymentMethod | None = None
    payment_verified: bool = False
    payment_reference: str | None = None


class OrderTotalsDTO(BaseModel):
    subtotal: int
    discount: int = 0
    total: int
    coupon_code: str | None = None  # Only set when the code was accepted
