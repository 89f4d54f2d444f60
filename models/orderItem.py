from datetime import datetime

from pydantic import BaseModel
from sqlalchemy import Column, Integer, DateTime, String, func, ForeignKey, CheckConstraint, Index
from sqlalchemy.orm import relationship

from models.base import Base


class OrderItem(Base):
    __tablename__ = 'order_items'

    __table_args__ = (
        CheckConstraint('quantity > 0', name='ck_order_item_positive_quantity'),
        CheckConstraint('price >= 0', name='ck_order_item_non_negative_price'),
        # Exactly one catalog reference for tests/packages, none for services
        CheckConstraint('NOT (test_id IS NOT NULL AND package_id IS NOT NULL)', name='ck_order_item_single_reference'),

        Index('ix_order_items_order_id', 'order_id'),
    )

    id = Column(Integer, primary_key=True)
    order_id = Column(String(32), ForeignKey('orders.id', ondelete='CASCADE'), nullable=False)
    test_id = Column(String(255), nullable=True)
    package_id = Column(String(255), nullable=True)
    name = Column(String(255), nullable=False)
    quantity = Column(Integer, nullable=False, default=1)
    # Unit price frozen from the cart snapshot, never re-fetched from the catalog
    price = Column(Integer, nullable=False)
    family_member_id = Column(String(64), nullable=True)
    created_at = Column(DateTime, default=func.now(), nullable=False)

    order = relationship("Order", back_populates="items")


class OrderItemDTO(BaseModel):
    id: int | None = None
    order_id: str | None = None
    test_id: str | None = None
    package_id: str | None = None
    name: str | None = None
    quantity: int | None = None
    price: int | None = None
    family_member_id: str | None = None
    created_at: datetime | None = None
