from decimal import Decimal

from pydantic import BaseModel, ConfigDict
from sqlalchemy import Column, Integer, Numeric, ForeignKey, CheckConstraint, Index
from sqlalchemy.orm import relationship

from models.base import Base


class OrderItem(Base):
    __tablename__ = 'order_items'

    __table_args__ = (
        CheckConstraint('quantity > 0', name='ck_order_item_positive_quantity'),
        CheckConstraint('price_at_purchase >= 0', name='ck_order_item_non_negative_price'),
        Index('ix_order_items_order_id', 'order_id'),
        Index('ix_order_items_unique', 'order_id', 'variant_id', unique=True),
    )

    id = Column(Integer, primary_key=True)
    order_id = Column(Integer, ForeignKey('orders.id', ondelete='CASCADE'), nullable=False)
    variant_id = Column(Integer, ForeignKey('product_variants.id'), nullable=False)
    quantity = Column(Integer, nullable=False)
    # Copied from the cart's price_at_addition; never re-derived from the variant
    price_at_purchase = Column(Numeric(12, 2), nullable=False)

    order = relationship("Order", back_populates="items")


class OrderItemDTO(BaseModel):
    """Immutable purchase snapshot (unlike CartItemDTO, which is working state)."""
    model_config = ConfigDict(frozen=True)

    id: int | None = None
    order_id: int | None = None
    variant_id: int
    quantity: int
    price_at_purchase: Decimal
