from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from db import session_execute, session_flush
from enums.inventory_change_type import InventoryChangeType
from models.inventory_log import InventoryLog, InventoryLogDTO


class InventoryLogRepository:
    @staticmethod
    async def create(variant_id: int, change_type: InventoryChangeType, quantity: int, reason: str | None,
                     session: AsyncSession) -> InventoryLogDTO:
        entry = InventoryLog(variant_id=variant_id, change_type=change_type, quantity=quantity, reason=reason)
        session.add(entry)
        await session_flush(session)
        return InventoryLogDTO.model_validate(entry, from_attributes=True)

    @staticmethod
    async def get_by_variant_id(variant_id: int, session: AsyncSession, limit: int = 50) -> list[InventoryLogDTO]:
        stmt = (select(InventoryLog)
                .where(InventoryLog.variant_id == variant_id)
                .order_by(InventoryLog.created_at.desc(), InventoryLog.id.desc())
                .limit(limit))
        result = await session_execute(stmt, session)
        return [InventoryLogDTO.model_validate(entry, from_attributes=True) for entry in result.scalars().all()]
