# A cart line is one priced entry in the session cart: a diagnostic test,
# a package, or a provider-agnostic service booking. Lines live in memory
# inside CartStore; the cart_items table only mirrors them per user so a
# cart survives across devices and sessions.
#
# Prices are integer currency units and are frozen into the order at
# submission time, so the persisted copy is never re-read during checkout.
from pydantic import BaseModel, Field, model_validator
from sqlalchemy import Column, Integer, String, CheckConstraint, Enum as SQLEnum

from enums.cart_item_type import CartItemType
from models.base import Base


class CartItem(Base):
    __tablename__ = "cart_items"

    id = Column(Integer, primary_key=True)
    user_id = Column(String(64), nullable=False, index=True)
    line_id = Column(String(255), nullable=False)
    catalog_id = Column(String(255), nullable=True)
    name = Column(String(255), nullable=False)
    price = Column(Integer, nullable=False)
    quantity = Column(Integer, nullable=False, default=1)
    item_type = Column(SQLEnum(CartItemType), nullable=False, default=CartItemType.TEST)
    lab_id = Column(String(255), nullable=True)
    lab_name = Column(String(255), nullable=True)
    family_member_id = Column(String(64), nullable=True)
    position = Column(Integer, nullable=False, default=0)

    __table_args__ = (
        CheckConstraint('quantity > 0', name='check_cart_item_quantity_positive'),
        CheckConstraint('price >= 0', name='check_cart_item_price_non_negative'),
    )


class CartLine(BaseModel):
    id: str
    catalog_id: str | None = None
    name: str
    unit_price: int
    quantity: int = Field(default=1, ge=1)
    provider_id: str | None = None
    provider_name: str | None = None
    item_type: CartItemType = CartItemType.TEST
    family_member_id: str | None = None

    @model_validator(mode="after")
    def _fill_catalog_id(self) -> "CartLine":
        if self.catalog_id is None:
            self.catalog_id = self.id
        return self

    @property
    def is_package(self) -> bool:
        return self.item_type == CartItemType.PACKAGE

    @property
    def line_total(self) -> int:
        return self.unit_price * self.quantity
