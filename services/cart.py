from uuid import uuid4
import logging

from models.cart_line import CartLine
from models.conflict import AddItemResult, PendingConflict
from services.conflict import ConflictResolver
from services.pricing import PricingService

logger = logging.getLogger(__name__)


class CartStore:
    """
    Single source of truth for the active cart of one session.

    All mutation goes through add_item / update_quantity / remove_item / clear.
    Lines handed out are copies, a collaborator cannot change the cart
    behind the store's back.

    Single-provider rule: every line that carries a provider_id carries the
    same one. Lines without a provider (services such as ECG or physio
    bookings) are exempt and coexist with any provider. The binding is
    derived from the current lines, so an emptied cart binds to whichever
    provider is added next.
    """

    def __init__(self, lines: list[CartLine] | None = None):
        self._lines: list[CartLine] = []
        # Identifies this store instance to persistence, never reused
        self.token = uuid4().hex
        # Bumped on every mutation, lets persistence skip unchanged carts
        self.revision = 0
        self.conflicts = ConflictResolver(self)
        if lines:
            self.load(lines)

    # ------------------------------------------------------------------
    # Derived state
    # ------------------------------------------------------------------

    @property
    def lines(self) -> list[CartLine]:
        return [line.model_copy() for line in self._lines]

    @property
    def item_count(self) -> int:
        return sum(line.quantity for line in self._lines)

    @property
    def subtotal(self) -> int:
        return PricingService.calculate_subtotal(self._lines)

    @property
    def is_empty(self) -> bool:
        return not self._lines

    @property
    def bound_provider_id(self) -> str | None:
        for line in self._lines:
            if line.provider_id:
                return line.provider_id
        return None

    @property
    def bound_provider_name(self) -> str | None:
        for line in self._lines:
            if line.provider_id:
                return line.provider_name
        return None

    def get(self, line_id: str) -> CartLine | None:
        line = self._find(line_id)
        return line.model_copy() if line else None

    def snapshot(self) -> list[CartLine]:
        """Deep copy of the lines, decoupled from any later mutation."""
        return [line.model_copy(deep=True) for line in self._lines]

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def add_item(self, candidate: CartLine) -> AddItemResult:
        """
        Admit a line or report a provider conflict.

        - Empty cart, provider-agnostic candidate, or same provider: admitted.
          A known id increments that line's quantity, except for packages
          which are never incremented (already_in_cart, nothing changes).
        - Different provider: nothing changes. The conflict is parked on
          self.conflicts and returned for the caller to surface.
        - Empty name or non-positive price: rejected as a no-op. Only an
          upstream programming error produces such a line.
        """
        if not candidate.name or not candidate.name.strip() or candidate.unit_price <= 0:
            logger.warning(
                f"Rejected invalid cart line '{candidate.id}' (name={candidate.name!r}, price={candidate.unit_price})"
            )
            return AddItemResult(admitted=False, rejected=True)

        bound_provider_id = self.bound_provider_id
        if candidate.provider_id and bound_provider_id and candidate.provider_id != bound_provider_id:
            conflict = PendingConflict(
                incoming_line=candidate.model_copy(deep=True),
                existing_provider_id=bound_provider_id,
                existing_provider_name=self.bound_provider_name
            )
            self.conflicts.hold(conflict)
            return AddItemResult(admitted=False, conflict=conflict)

        return self._admit(candidate)

    def update_quantity(self, line_id: str, delta: int) -> bool:
        """
        Change a line's quantity by delta, never going below 1.

        Removal only happens through remove_item. Packages stay at 1 and
        unknown ids are ignored.

        Returns:
            True if the quantity changed
        """
        line = self._find(line_id)
        if line is None:
            logger.debug(f"update_quantity ignored, '{line_id}' not in cart")
            return False
        if line.is_package:
            return False

        new_quantity = max(1, line.quantity + delta)
        if new_quantity == line.quantity:
            return False
        line.quantity = new_quantity
        self._touch()
        return True

    def remove_item(self, line_id: str) -> bool:
        line = self._find(line_id)
        if line is None:
            return False
        self._lines.remove(line)
        self._touch()
        if not self._lines:
            logger.debug("Cart emptied, provider binding released")
        return True

    def clear(self) -> None:
        """Empty the cart unconditionally. Used after an order is finalized."""
        self.conflicts.cancel_replace()
        self._lines = []
        self._touch()

    def load(self, lines: list[CartLine]) -> None:
        """
        Replace the cart with previously persisted lines.

        Lines go through the normal admission rules. A stored cart that
        mixes providers keeps the first provider's lines and drops the rest.
        """
        self._lines = []
        for line in lines:
            result = self.add_item(line)
            if result.conflict is not None:
                self.conflicts.cancel_replace()
                logger.warning(f"Dropped stored cart line '{line.id}': provider {line.provider_id} conflicts with cart")
        self.revision = 0

    # ------------------------------------------------------------------
    # Internal, shared with ConflictResolver
    # ------------------------------------------------------------------

    def _find(self, line_id: str) -> CartLine | None:
        for line in self._lines:
            if line.id == line_id:
                return line
        return None

    def _touch(self) -> None:
        self.revision += 1

    def _admit(self, candidate: CartLine) -> AddItemResult:
        existing = self._find(candidate.id)
        if existing is not None:
            if existing.is_package:
                return AddItemResult(admitted=True, already_in_cart=True)
            existing.quantity += candidate.quantity
            self._touch()
            return AddItemResult(admitted=True)

        line = candidate.model_copy(deep=True)
        if line.is_package:
            line.quantity = 1
        self._lines.append(line)
        self._touch()
        return AddItemResult(admitted=True)

    def _evict_providers_other_than(self, provider_id: str | None) -> int:
        kept = [line for line in self._lines if not line.provider_id or line.provider_id == provider_id]
        evicted = len(self._lines) - len(kept)
        if evicted:
            self._lines = kept
            self._touch()
        return evicted
