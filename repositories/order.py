import logging
import random
from datetime import datetime

from sqlalchemy import select, update, func
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from db import session_execute, session_flush
from enums.order_status import OrderStatus
from models.order import Order, OrderDTO

logger = logging.getLogger(__name__)

# Columns an order listing may be sorted by
SORTABLE_COLUMNS = {
    "created_at": Order.created_at,
    "updated_at": Order.updated_at,
    "total_amount": Order.total_amount,
    "status": Order.status,
    "order_number": Order.order_number,
}

# No 0/O/1/I, so order numbers can be read out over the phone
ORDER_NUMBER_ALPHABET = '23456789ABCDEFGHJKLMNPQRSTUVWXYZ'


class OrderRepository:
    @staticmethod
    def _with_relations(stmt):
        return stmt.options(
            selectinload(Order.items),
            selectinload(Order.payment),
            selectinload(Order.tracking),
        ).execution_options(populate_existing=True)

    @staticmethod
    async def create(order_dto: OrderDTO, session: AsyncSession) -> int:
        order = Order(**order_dto.model_dump(exclude_none=True, exclude={'id', 'items', 'payment', 'tracking'}))
        session.add(order)
        await session_flush(session)
        return order.id

    @staticmethod
    async def get_by_id(order_id: int, session: AsyncSession) -> OrderDTO | None:
        stmt = OrderRepository._with_relations(select(Order).where(Order.id == order_id))
        result = await session_execute(stmt, session)
        order = result.scalar_one_or_none()
        if order is None:
            return None
        return OrderDTO.model_validate(order, from_attributes=True)

    @staticmethod
    async def get_by_order_number(order_number: str, session: AsyncSession) -> OrderDTO | None:
        stmt = OrderRepository._with_relations(select(Order).where(Order.order_number == order_number))
        result = await session_execute(stmt, session)
        order = result.scalar_one_or_none()
        if order is None:
            return None
        return OrderDTO.model_validate(order, from_attributes=True)

    @staticmethod
    async def get_paginated(session: AsyncSession, user_id: int | None = None, page: int = 1, limit: int = 10,
                            sort_by: str = "created_at", sort_order: str = "desc") -> list[OrderDTO]:
        """
        One page of orders, optionally restricted to one user.

        Unknown ``sort_by`` columns fall back to created_at.
        """
        column = SORTABLE_COLUMNS.get(sort_by)
        if column is None:
            logger.warning(f"Unsupported order sort column '{sort_by}', using created_at")
            column = Order.created_at
        ordering = column.asc() if sort_order.lower() == "asc" else column.desc()

        stmt = select(Order)
        if user_id is not None:
            stmt = stmt.where(Order.user_id == user_id)
        stmt = (OrderRepository._with_relations(stmt)
                .order_by(ordering, Order.id.desc() if sort_order.lower() != "asc" else Order.id.asc())
                .offset((page - 1) * limit)
                .limit(limit))
        result = await session_execute(stmt, session)
        return [OrderDTO.model_validate(order, from_attributes=True) for order in result.scalars().all()]

    @staticmethod
    async def count(session: AsyncSession, user_id: int | None = None) -> int:
        stmt = select(func.count(Order.id))
        if user_id is not None:
            stmt = stmt.where(Order.user_id == user_id)
        result = await session_execute(stmt, session)
        return result.scalar_one()

    @staticmethod
    async def update_status(order_id: int, status: OrderStatus, session: AsyncSession) -> None:
        stmt = (update(Order)
                .where(Order.id == order_id)
                .values(status=status, updated_at=datetime.now())
                .execution_options(synchronize_session=False))
        await session_execute(stmt, session)

    @staticmethod
    async def update_status_if(order_id: int, expected: list[OrderStatus], status: OrderStatus,
                               session: AsyncSession) -> bool:
        """
        Change the status only while the order is still in one of ``expected``.

        Returns False when a concurrent caller moved the order first.
        """
        stmt = (update(Order)
                .where(Order.id == order_id, Order.status.in_(expected))
                .values(status=status, updated_at=datetime.now())
                .execution_options(synchronize_session=False))
        result = await session_execute(stmt, session)
        return result.rowcount == 1

    @staticmethod
    async def generate_order_number(session: AsyncSession) -> str:
        """
        Generate a unique order number in the format ORD-YYYY-XXXXXX.
        Example: ORD-2026-AX7D8K
        """
        year = datetime.now().year

        for _ in range(10):
            code = ''.join(random.choices(ORDER_NUMBER_ALPHABET, k=6))
            order_number = f"ORD-{year}-{code}"

            stmt = select(Order.order_number).where(Order.order_number == order_number)
            result = await session_execute(stmt, session)
            if result.scalar_one_or_none() is None:
                return order_number

        # 32^6 combinations per year, this should never happen
        raise RuntimeError("Could not generate unique order number after 10 attempts")
