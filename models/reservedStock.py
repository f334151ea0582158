from datetime import datetime

from pydantic import BaseModel
from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, CheckConstraint, Index, Enum as SQLEnum

from enums.reservation_status import ReservationStatus
from models.base import Base


# One row per (reservation, variant) line. The stock itself is held by the
# ADJUSTMENT ledger entries; this table only tracks how each hold was resolved.
class StockReservation(Base):
    __tablename__ = 'stock_reservations'

    __table_args__ = (
        CheckConstraint('quantity > 0', name='ck_stock_reservation_positive_quantity'),
        CheckConstraint('expires_at > reserved_at', name='ck_stock_reservation_valid_expiry'),
        Index('ix_stock_reservations_reservation_id', 'reservation_id'),
        Index('ix_stock_reservations_status_expires', 'status', 'expires_at'),
        Index('ix_stock_reservations_unique', 'reservation_id', 'variant_id', unique=True),
    )

    id = Column(Integer, primary_key=True)
    reservation_id = Column(String(32), nullable=False)
    variant_id = Column(Integer, ForeignKey('product_variants.id', ondelete='CASCADE'), nullable=False)
    quantity = Column(Integer, nullable=False)
    status = Column(SQLEnum(ReservationStatus), nullable=False, default=ReservationStatus.ACTIVE)
    reserved_at = Column(DateTime, nullable=False, default=datetime.now)
    expires_at = Column(DateTime, nullable=False)
    resolved_at = Column(DateTime, nullable=True)


class StockReservationLineDTO(BaseModel):
    id: int | None = None
    reservation_id: str | None = None
    variant_id: int
    quantity: int
    status: ReservationStatus | None = None
    reserved_at: datetime | None = None
    expires_at: datetime | None = None
    resolved_at: datetime | None = None


class StockReservationDTO(BaseModel):
    reservation_id: str
    status: ReservationStatus
    reserved_at: datetime
    expires_at: datetime
    lines: list[StockReservationLineDTO]
