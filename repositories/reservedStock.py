from datetime import datetime

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from db import session_execute, session_flush
from enums.reservation_status import ReservationStatus
from models.reservedStock import StockReservation, StockReservationLineDTO


class StockReservationRepository:
    @staticmethod
    async def create_lines(lines: list[StockReservationLineDTO], session: AsyncSession) -> list[StockReservationLineDTO]:
        rows = []
        for line_dto in lines:
            row = StockReservation(**line_dto.model_dump(exclude_none=True))
            session.add(row)
            rows.append(row)
        await session_flush(session)
        return [StockReservationLineDTO.model_validate(row, from_attributes=True) for row in rows]

    @staticmethod
    async def get_by_reservation_id(reservation_id: str, session: AsyncSession) -> list[StockReservationLineDTO]:
        stmt = (select(StockReservation)
                .where(StockReservation.reservation_id == reservation_id)
                .order_by(StockReservation.id)
                .execution_options(populate_existing=True))
        result = await session_execute(stmt, session)
        return [StockReservationLineDTO.model_validate(row, from_attributes=True) for row in result.scalars().all()]

    @staticmethod
    async def resolve(reservation_id: str, new_status: ReservationStatus, resolved_at: datetime,
                      session: AsyncSession) -> int:
        """
        Move every ACTIVE line of a reservation to ``new_status``.

        Returns the number of lines that changed; zero means another caller
        already resolved the reservation.
        """
        stmt = (update(StockReservation)
                .where(StockReservation.reservation_id == reservation_id,
                       StockReservation.status == ReservationStatus.ACTIVE)
                .values(status=new_status, resolved_at=resolved_at)
                .execution_options(synchronize_session=False))
        result = await session_execute(stmt, session)
        return result.rowcount

    @staticmethod
    async def get_expired_reservation_ids(now: datetime, session: AsyncSession) -> list[str]:
        stmt = (select(StockReservation.reservation_id)
                .where(StockReservation.status == ReservationStatus.ACTIVE,
                       StockReservation.expires_at <= now)
                .distinct()
                .order_by(StockReservation.reservation_id))
        result = await session_execute(stmt, session)
        return list(result.scalars().all())
