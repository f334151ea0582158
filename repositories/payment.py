from datetime import datetime

from sqlalchemy import select, update, or_
from sqlalchemy.ext.asyncio import AsyncSession

from db import session_execute, session_flush
from enums.payment_status import PaymentStatus
from models.payment import Payment, PaymentDTO, PaymentOutcome


class PaymentRepository:
    @staticmethod
    async def create(payment_dto: PaymentDTO, session: AsyncSession) -> PaymentDTO:
        payment = Payment(**payment_dto.model_dump(exclude_none=True, exclude={'id'}))
        session.add(payment)
        await session_flush(session)
        return PaymentDTO.model_validate(payment, from_attributes=True)

    @staticmethod
    async def get_by_order_id(order_id: int, session: AsyncSession) -> PaymentDTO | None:
        stmt = select(Payment).where(Payment.order_id == order_id).execution_options(populate_existing=True)
        result = await session_execute(stmt, session)
        payment = result.scalar_one_or_none()
        if payment is None:
            return None
        return PaymentDTO.model_validate(payment, from_attributes=True)

    @staticmethod
    async def get_by_reference(reference: str, session: AsyncSession) -> PaymentDTO | None:
        """Payment whose gateway transaction id or provider reference is ``reference``."""
        stmt = (select(Payment)
                .where(or_(Payment.transaction_id == reference, Payment.provider_reference == reference))
                .execution_options(populate_existing=True))
        result = await session_execute(stmt, session)
        payment = result.scalars().first()
        if payment is None:
            return None
        return PaymentDTO.model_validate(payment, from_attributes=True)

    @staticmethod
    async def update_status_if(payment_id: int, expected: PaymentStatus, status: PaymentStatus,
                               session: AsyncSession, payment_date: datetime | None = None) -> bool:
        values = {"status": status}
        if payment_date is not None:
            values["payment_date"] = payment_date
        stmt = (update(Payment)
                .where(Payment.id == payment_id, Payment.status == expected)
                .values(**values)
                .execution_options(synchronize_session=False))
        result = await session_execute(stmt, session)
        return result.rowcount == 1

    @staticmethod
    async def record_outcome(payment_id: int, outcome: PaymentOutcome, session: AsyncSession) -> None:
        values = {
            "status": outcome.status,
            "transaction_id": outcome.transaction_id,
            "provider_reference": outcome.provider_reference,
        }
        if outcome.installments is not None:
            values["installments"] = outcome.installments
        if outcome.installment_amount is not None:
            values["installment_amount"] = outcome.installment_amount
        if outcome.status == PaymentStatus.SUCCESSFUL:
            values["payment_date"] = datetime.now()
        stmt = (update(Payment)
                .where(Payment.id == payment_id)
                .values(**values)
                .execution_options(synchronize_session=False))
        await session_execute(stmt, session)
