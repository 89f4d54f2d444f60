from pydantic import BaseModel

from enums.cart_item_type import CartItemType


class CatalogSelectionDTO(BaseModel):
    """What the catalog/provider lookup hands over when the user taps "add"."""
    id: str
    name: str
    price: float
    provider_id: str | None = None
    provider_name: str | None = None
    item_type: CartItemType = CartItemType.TEST
    family_member_id: str | None = None
