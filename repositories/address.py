from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from db import session_execute, session_flush
from models.address import Address, AddressDTO


class AddressRepository:
    @staticmethod
    async def find(address_id: int, user_id: int, session: AsyncSession) -> AddressDTO | None:
        """Address by id, only if it belongs to ``user_id``."""
        stmt = select(Address).where(Address.id == address_id, Address.user_id == user_id)
        result = await session_execute(stmt, session)
        address = result.scalar_one_or_none()
        if address is None:
            return None
        return AddressDTO.model_validate(address, from_attributes=True)

    @staticmethod
    async def create(address_dto: AddressDTO, session: AsyncSession) -> AddressDTO:
        address = Address(**address_dto.model_dump(exclude_none=True))
        session.add(address)
        await session_flush(session)
        return AddressDTO.model_validate(address, from_attributes=True)
