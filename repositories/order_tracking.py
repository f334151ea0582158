from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from db import session_execute, session_flush
from enums.order_tracking_status import OrderTrackingStatus
from models.order_tracking import OrderTracking, OrderTrackingDTO


class OrderTrackingRepository:
    @staticmethod
    async def create(order_id: int, status: OrderTrackingStatus, message: str, session: AsyncSession) -> OrderTrackingDTO:
        entry = OrderTracking(order_id=order_id, status=status, message=message)
        session.add(entry)
        await session_flush(session)
        return OrderTrackingDTO.model_validate(entry, from_attributes=True)

    @staticmethod
    async def get_by_order_id(order_id: int, session: AsyncSession) -> list[OrderTrackingDTO]:
        """Tracking history, newest first."""
        stmt = (select(OrderTracking)
                .where(OrderTracking.order_id == order_id)
                .order_by(OrderTracking.timestamp.desc(), OrderTracking.id.desc()))
        result = await session_execute(stmt, session)
        return [OrderTrackingDTO.model_validate(entry, from_attributes=True) for entry in result.scalars().all()]
