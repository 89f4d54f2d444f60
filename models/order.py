from datetime import datetime

from pydantic import BaseModel
from sqlalchemy import Column, Integer, DateTime, String, func, CheckConstraint, Enum as SQLEnum
from sqlalchemy.orm import relationship

from enums.currency import Currency
from enums.order_status import OrderStatus
from enums.payment_method import PaymentMethod
from enums.payment_status import PaymentStatus
from models.base import Base


class Order(Base):
    __tablename__ = 'orders'

    id = Column(String(32), primary_key=True)
    order_number = Column(String(32), nullable=False, unique=True)
    # One order per checkout attempt
    checkout_id = Column(String(32), nullable=False, unique=True)
    user_id = Column(String(64), nullable=True, index=True)
    status = Column(SQLEnum(OrderStatus), nullable=False, default=OrderStatus.PENDING)
    payment_status = Column(SQLEnum(PaymentStatus), nullable=False, default=PaymentStatus.PENDING)
    payment_method = Column(SQLEnum(PaymentMethod), nullable=True)
    payment_reference = Column(String(255), nullable=True)

    # Totals in integer units of currency
    currency = Column(SQLEnum(Currency), nullable=False, default=Currency.INR)
    subtotal = Column(Integer, nullable=False)
    discount = Column(Integer, nullable=False, default=0)
    total = Column(Integer, nullable=False)
    coupon_code = Column(String(64), nullable=True)

    # Fulfilment metadata, copied from the checkout unchanged
    address_id = Column(String(64), nullable=True)
    scheduled_date = Column(String(32), nullable=True)
    scheduled_time_slot = Column(String(64), nullable=True)

    created_at = Column(DateTime, default=func.now())

    items = relationship('OrderItem', back_populates='order', cascade='all, delete-orphan')

    __table_args__ = (
        CheckConstraint('subtotal >= 0', name='check_order_subtotal_non_negative'),
        CheckConstraint('total >= 0', name='check_order_total_non_negative'),
    )


class OrderDTO(BaseModel):
    id: str | None = None
    order_number: str | None = None
    checkout_id: str | None = None
    user_id: str | None = None
    status: OrderStatus | None = None
    payment_status: PaymentStatus | None = None
    payment_method: PaymentMethod | None = None
    payment_reference: str | None = None
    currency: Currency | None = None
    subtotal: int | None = None
    discount: int | None = 0
    total: int | None = None
    coupon_code: str | None = None
    address_id: str | None = None
    scheduled_date: str | None = None
    scheduled_time_slot: str | None = None
    created_at: datetime | None = None


class OrderResultDTO(BaseModel):
    """What the finalizer hands back, and hands back again on every repeated call."""
    order_id: str
    order_number: str
    item_count: int
    total: int
