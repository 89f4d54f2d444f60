from sqlalchemy import select, delete
from sqlalchemy.ext.asyncio import AsyncSession

from db import session_commit, session_execute
from models.cart_line import CartItem, CartLine


class CartRepository:
    @staticmethod
    async def get_by_user_id(user_id: str, session: AsyncSession) -> list[CartLine]:
        stmt = select(CartItem).where(CartItem.user_id == user_id).order_by(CartItem.position, CartItem.id)
        cart_items = await session_execute(stmt, session)
        return [
            CartLine(
                id=cart_item.line_id,
                catalog_id=cart_item.catalog_id,
                name=cart_item.name,
                unit_price=cart_item.price,
                quantity=cart_item.quantity,
                provider_id=cart_item.lab_id,
                provider_name=cart_item.lab_name,
                item_type=cart_item.item_type,
                family_member_id=cart_item.family_member_id
            )
            for cart_item in cart_items.scalars().all()
        ]

    @staticmethod
    async def replace_for_user(user_id: str, lines: list[CartLine], session: AsyncSession) -> None:
        """
        Replace the stored cart of a user with the given lines.

        Delete and insert run in one commit, a reader never sees a half-synced cart.
        """
        await session_execute(delete(CartItem).where(CartItem.user_id == user_id), session)
        for position, line in enumerate(lines):
            session.add(CartItem(
                user_id=user_id,
                line_id=line.id,
                catalog_id=line.catalog_id,
                name=line.name,
                price=line.unit_price,
                quantity=line.quantity,
                item_type=line.item_type,
                lab_id=line.provider_id,
                lab_name=line.provider_name,
                family_member_id=line.family_member_id,
                position=position
            ))
        await session_commit(session)

    @staticmethod
    async def delete_by_user_id(user_id: str, session: AsyncSession) -> None:
        await session_execute(delete(CartItem).where(CartItem.user_id == user_id), session)
        await session_commit(session)
