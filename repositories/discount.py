from sqlalchemy import select, update, delete, or_
from sqlalchemy.ext.asyncio import AsyncSession

from db import session_execute, session_flush
from models.discount import Discount, DiscountDTO


class DiscountRepository:
    @staticmethod
    async def get_by_code(code: str, session: AsyncSession) -> DiscountDTO | None:
        stmt = select(Discount).where(Discount.code == code).execution_options(populate_existing=True)
        result = await session_execute(stmt, session)
        discount = result.scalar_one_or_none()
        if discount is None:
            return None
        return DiscountDTO.model_validate(discount, from_attributes=True)

    @staticmethod
    async def get_by_id(discount_id: int, session: AsyncSession) -> DiscountDTO | None:
        stmt = select(Discount).where(Discount.id == discount_id).execution_options(populate_existing=True)
        result = await session_execute(stmt, session)
        discount = result.scalar_one_or_none()
        if discount is None:
            return None
        return DiscountDTO.model_validate(discount, from_attributes=True)

    @staticmethod
    async def create(discount_dto: DiscountDTO, session: AsyncSession) -> DiscountDTO:
        discount = Discount(**discount_dto.model_dump(exclude_none=True, exclude={'id'}))
        session.add(discount)
        await session_flush(session)
        return DiscountDTO.model_validate(discount, from_attributes=True)

    @staticmethod
    async def increment_usage_if_available(discount_id: int, session: AsyncSession) -> bool:
        """
        Compare-and-increment of times_used.

        Returns False when the usage limit has been reached, in which case the
        counter is left untouched.
        """
        stmt = (update(Discount)
                .where(Discount.id == discount_id,
                       or_(Discount.usage_limit.is_(None),
                           Discount.times_used < Discount.usage_limit))
                .values(times_used=Discount.times_used + 1)
                .execution_options(synchronize_session=False))
        result = await session_execute(stmt, session)
        return result.rowcount == 1

    @staticmethod
    async def get_all(session: AsyncSession) -> list[DiscountDTO]:
        stmt = select(Discount).order_by(Discount.created_at.desc(), Discount.id.desc())
        result = await session_execute(stmt, session)
        return [DiscountDTO.model_validate(d, from_attributes=True) for d in result.scalars().all()]

    @staticmethod
    async def update(discount_id: int, values: dict, session: AsyncSession) -> None:
        stmt = (update(Discount)
                .where(Discount.id == discount_id)
                .values(**values)
                .execution_options(synchronize_session=False))
        await session_execute(stmt, session)

    @staticmethod
    async def delete(discount_id: int, session: AsyncSession) -> bool:
        stmt = delete(Discount).where(Discount.id == discount_id).execution_options(synchronize_session=False)
        result = await session_execute(stmt, session)
        return result.rowcount == 1
