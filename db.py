from pathlib import Path
from typing import Any
import logging

from sqlalchemy import event, Engine, Result, CursorResult
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession

import config
from models.base import Base

"""
Imports of these models are needed to correctly create tables in the database.
For more information see https://stackoverflow.com/questions/7478403/sqlalchemy-classes-across-files
"""
from models.cart_line import CartItem
from models.order import Order
from models.orderItem import OrderItem

logger = logging.getLogger(__name__)

# SQL echo stays off, statements would drown the booking audit lines
sql_echo = False

url = config.DB_URL
if "///data/" in url:
    data_folder = Path("data")
    if data_folder.exists() is False:
        data_folder.mkdir()

engine = create_async_engine(url, echo=sql_echo)


async def session_execute(stmt, session: AsyncSession) -> Result[Any] | CursorResult[Any]:
    return await session.execute(stmt)


async def session_commit(session: AsyncSession) -> None:
    await session.commit()


async def session_rollback(session: AsyncSession) -> None:
    await session.rollback()


async def session_refresh(session: AsyncSession, instance) -> None:
    await session.refresh(instance)


@event.listens_for(Engine, "connect")
def set_sqlite_pragma(dbapi_connection, connection_record):
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


async def create_db_and_tables():
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info(f"Database ready ({len(Base.metadata.tables)} tables)")
