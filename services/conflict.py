import logging

from models.conflict import PendingConflict

logger = logging.getLogger(__name__)


class ConflictResolver:
    """
    Two-phase confirmation for add-to-cart requests that cross providers.

    The conflicting add never touches the cart. It parks the candidate here
    and the user decides:

    - confirm_replace(): drop the current provider's lines, admit the candidate
    - cancel_replace(): forget the candidate, cart stays as it was

    Only one conflict is held at a time. A newer conflicting add replaces
    the parked candidate, the latest intent wins.
    """

    def __init__(self, store: "CartStore"):
        self._store = store
        self._pending: PendingConflict | None = None

    @property
    def pending(self) -> PendingConflict | None:
        return self._pending

    @property
    def has_pending(self) -> bool:
        return self._pending is not None

    def hold(self, conflict: PendingConflict) -> None:
        if self._pending is not None:
            logger.info(
                f"Replacing pending conflict for '{self._pending.incoming_line.id}' "
                f"with '{conflict.incoming_line.id}'"
            )
        self._pending = conflict
        logger.info(
            f"Cart conflict: '{conflict.incoming_line.id}' from provider {conflict.incoming_line.provider_id} "
            f"while cart is bound to {conflict.existing_provider_id}"
        )

    def confirm_replace(self) -> bool:
        """
        Evict the lines of the provider currently occupying the cart and admit
        the parked candidate. Provider-agnostic lines are kept.

        Returns:
            True if a conflict was resolved, False if nothing was pending
        """
        conflict = self._pending
        if conflict is None:
            logger.warning("confirm_replace called without a pending conflict")
            return False

        self._pending = None
        evicted = self._store._evict_providers_other_than(conflict.incoming_line.provider_id)
        self._store._admit(conflict.incoming_line)
        logger.info(
            f"Cart replaced: evicted {evicted} line(s) of {conflict.existing_provider_id}, "
            f"admitted '{conflict.incoming_line.id}' from {conflict.incoming_line.provider_id}"
        )
        return True

    def cancel_replace(self) -> bool:
        """
        Discard the parked candidate. The cart is not touched.

        Returns:
            True if a conflict was discarded, False if nothing was pending
        """
        if self._pending is None:
            return False
        logger.info(f"Cart conflict cancelled, '{self._pending.incoming_line.id}' discarded")
        self._pending = None
        return True
