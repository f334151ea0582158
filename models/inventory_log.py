from datetime import datetime

from pydantic import BaseModel, ConfigDict
from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, Enum as SQLEnum, Index

from enums.inventory_change_type import InventoryChangeType
from models.base import Base


# Append-only ledger. Every stock_quantity mutation writes exactly one row in
# the same transaction; quantity is signed (negative = stock leaving).
class InventoryLog(Base):
    __tablename__ = 'inventory_logs'

    id = Column(Integer, primary_key=True)
    variant_id = Column(Integer, ForeignKey('product_variants.id', ondelete='CASCADE'), nullable=False)
    change_type = Column(SQLEnum(InventoryChangeType), nullable=False)
    quantity = Column(Integer, nullable=False)
    reason = Column(String, nullable=True)
    created_at = Column(DateTime, nullable=False, default=datetime.now)

    __table_args__ = (
        Index('ix_inventory_logs_variant_created', 'variant_id', 'created_at'),
    )


class InventoryLogDTO(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: int | None = None
    variant_id: int
    change_type: InventoryChangeType
    quantity: int
    reason: str | None = None
    created_at: datetime | None = None


class StockChangeDTO(BaseModel):
    """One line of a stock mutation batch (sale, restock, return or absolute adjustment)."""
    variant_id: int
    quantity: int
    reason: str | None = None


class ReservationEntryDTO(BaseModel):
    """One line of a reserve/release batch; reservation_id ties the hold to its release."""
    variant_id: int
    quantity: int
    reservation_id: str
