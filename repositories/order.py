from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from db import session_commit, session_execute, session_refresh
from models.order import Order, OrderDTO


class OrderRepository:
    @staticmethod
    async def create(order_dto: OrderDTO, session: AsyncSession) -> str:
        order = Order(**order_dto.model_dump(exclude_none=True))
        session.add(order)
        await session_commit(session)
        await session_refresh(session, order)
        return order.id

    @staticmethod
    async def get_by_id(order_id: str, session: AsyncSession) -> OrderDTO | None:
        stmt = select(Order).where(Order.id == order_id)
        order = await session_execute(stmt, session)
        order = order.scalar()
        if order is not None:
            return OrderDTO.model_validate(order, from_attributes=True)
        else:
            return None

    @staticmethod
    async def get_by_checkout_id(checkout_id: str, session: AsyncSession) -> OrderDTO | None:
        stmt = select(Order).where(Order.checkout_id == checkout_id)
        order = await session_execute(stmt, session)
        order = order.scalar()
        if order is not None:
            return OrderDTO.model_validate(order, from_attributes=True)
        else:
            return None
