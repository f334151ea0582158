from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any, AsyncGenerator
import logging

from sqlalchemy import event, Result, CursorResult
from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker, AsyncSession, AsyncEngine

import config
from models.base import Base

"""
Imports of these models are needed to correctly create tables in the database.
For more information see https://stackoverflow.com/questions/7478403/sqlalchemy-classes-across-files
"""
from models.product import Product
from models.product_variant import ProductVariant
from models.inventory_log import InventoryLog
from models.reservedStock import StockReservation
from models.cart import Cart
from models.cartItem import CartItem
from models.address import Address
from models.discount import Discount
from models.order import Order
from models.orderItem import OrderItem
from models.payment import Payment
from models.order_tracking import OrderTracking

logger = logging.getLogger(__name__)

engine: AsyncEngine | None = None
session_maker: async_sessionmaker[AsyncSession] | None = None


def configure_engine(url: str) -> AsyncEngine:
    """
    (Re)create the module level engine and session factory.

    Called once at import time with config.DB_URL. Test suites call it again
    with a throw-away database url.
    """
    global engine, session_maker

    url_obj = make_url(url)
    connect_args = {}
    if url_obj.get_backend_name() == "sqlite":
        # Writers wait for the database lock instead of failing immediately
        connect_args["timeout"] = config.DB_BUSY_TIMEOUT_SECONDS
        if url_obj.database and url_obj.database != ":memory:":
            Path(url_obj.database).parent.mkdir(parents=True, exist_ok=True)

    engine = create_async_engine(url, echo=config.DB_ECHO, connect_args=connect_args)
    if url_obj.get_backend_name() == "sqlite":
        event.listen(engine.sync_engine, "connect", set_sqlite_pragma)
    session_maker = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    logger.debug(f"Database engine configured for backend {url_obj.get_backend_name()}")
    return engine


def set_sqlite_pragma(dbapi_connection, connection_record):
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


configure_engine(config.DB_URL)


@asynccontextmanager
async def get_db_session() -> AsyncGenerator[AsyncSession, None]:
    async with session_maker() as session:
        yield session


async def session_execute(stmt, session: AsyncSession) -> Result[Any] | CursorResult[Any]:
    return await session.execute(stmt)


async def session_flush(session: AsyncSession) -> None:
    await session.flush()


async def session_commit(session: AsyncSession) -> None:
    await session.commit()


async def session_rollback(session: AsyncSession) -> None:
    await session.rollback()



async def create_db_and_tables():
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
