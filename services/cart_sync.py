import logging

from sqlalchemy.ext.asyncio import AsyncSession

from repositories.cart import CartRepository
from services.cart import CartStore

logger = logging.getLogger(__name__)


class CartSyncService:
    """
    Mirrors a session's CartStore into the cart_items table of its user.

    The store stays the source of truth while the session lives. The table
    only lets the cart survive a new device or a fresh session.
    """

    # user_id -> (store token, revision) last written
    _synced_revisions: dict[str, tuple[str, int]] = {}

    @staticmethod
    async def load(store: CartStore, user_id: str, session: AsyncSession) -> int:
        """
        Fill the store from the user's stored cart.

        Returns:
            Number of lines in the store after loading
        """
        lines = await CartRepository.get_by_user_id(user_id, session)
        store.load(lines)
        CartSyncService._synced_revisions[user_id] = (store.token, store.revision)
        logger.info(f"Loaded cart for user {user_id}: {len(store.lines)} line(s)")
        return len(store.lines)

    @staticmethod
    async def save(store: CartStore, user_id: str, session: AsyncSession) -> bool:
        """
        Write the store to the user's stored cart if it changed since the last sync.

        An empty store (removed lines, finalized order) deletes the stored cart.

        Returns:
            True if the stored cart was rewritten
        """
        if CartSyncService._synced_revisions.get(user_id) == (store.token, store.revision):
            return False

        if store.is_empty:
            await CartRepository.delete_by_user_id(user_id, session)
            logger.debug(f"Deleted stored cart of user {user_id}")
        else:
            await CartRepository.replace_for_user(user_id, store.lines, session)
            logger.debug(f"Synced cart for user {user_id} at revision {store.revision}")
        CartSyncService._synced_revisions[user_id] = (store.token, store.revision)
        return True
