from pydantic import BaseModel

from models.cart_line import CartLine


class PendingConflict(BaseModel):
    """
    An add-to-cart request that would mix two providers in one cart.

    Held by the ConflictResolver until the user either replaces the
    current provider's lines or cancels the add.
    """
    incoming_line: CartLine
    existing_provider_id: str
    existing_provider_name: str | None = None

    @property
    def existing_provider_label(self) -> str:
        return self.existing_provider_name or self.existing_provider_id


class AddItemResult(BaseModel):
    admitted: bool
    conflict: PendingConflict | None = None
    already_in_cart: bool = False  # Package re-added, nothing changed
    rejected: bool = False         # Invalid candidate (no name or no price), nothing changed
