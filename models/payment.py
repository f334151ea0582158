from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel
from sqlalchemy import Column, Integer, String, Numeric, DateTime, ForeignKey, Enum as SQLEnum
from sqlalchemy.orm import relationship

from enums.currency import Currency
from enums.payment_method import PaymentMethod
from enums.payment_status import PaymentStatus
from models.base import Base


# Created PENDING together with its order. Later transitions come from the
# payment gateway outcome (see services/payment.py).
class Payment(Base):
    __tablename__ = 'payments'

    id = Column(Integer, primary_key=True, unique=True)
    order_id = Column(Integer, ForeignKey('orders.id', ondelete='CASCADE'), nullable=False, unique=True)
    amount = Column(Numeric(12, 2), nullable=False)
    currency = Column(SQLEnum(Currency), nullable=False)
    status = Column(SQLEnum(PaymentStatus), nullable=False, default=PaymentStatus.PENDING)
    payment_method = Column(SQLEnum(PaymentMethod), nullable=False)
    installments = Column(Integer, nullable=True)
    installment_amount = Column(Numeric(12, 2), nullable=True)
    transaction_id = Column(String, nullable=True)
    provider_reference = Column(String, nullable=True)
    payment_date = Column(DateTime, nullable=True)
    created_at = Column(DateTime, nullable=False, default=datetime.now)

    order = relationship('Order', back_populates='payment')


class PaymentDTO(BaseModel):
    id: int | None = None
    order_id: int | None = None
    amount: Decimal | None = None
    currency: Currency | None = None
    status: PaymentStatus | None = None
    payment_method: PaymentMethod | None = None
    installments: int | None = None
    installment_amount: Decimal | None = None
    transaction_id: str | None = None
    provider_reference: str | None = None
    payment_date: datetime | None = None


class PaymentOutcome(BaseModel):
    """What a payment gateway reports back for a charge attempt."""
    status: PaymentStatus
    transaction_id: str | None = None
    provider_reference: str | None = None
    installments: int | None = None
    installment_amount: Decimal | None = None
    message: str | None = None


class PaymentResultDTO(BaseModel):
    success: bool
    payment: PaymentDTO
    message: str
