from decimal import Decimal

from pydantic import BaseModel
from sqlalchemy import Column, Integer, ForeignKey, CheckConstraint, Numeric, UniqueConstraint
from sqlalchemy.orm import relationship

from models.base import Base


class CartItem(Base):
    __tablename__ = "cart_items"

    id = Column(Integer, primary_key=True)
    cart_id = Column(Integer, ForeignKey("carts.id", ondelete="CASCADE"), nullable=False)
    variant_id = Column(Integer, ForeignKey("product_variants.id"), nullable=False)
    quantity = Column(Integer, nullable=False)
    # Price frozen when the variant was first added; checkout totals use this,
    # never the variant's current price
    price_at_addition = Column(Numeric(12, 2), nullable=False)

    cart = relationship("Cart", back_populates="items")

    __table_args__ = (
        CheckConstraint('quantity > 0', name='check_quantity_positive'),
        UniqueConstraint('cart_id', 'variant_id', name='uq_cart_items_cart_variant'),
    )


class CartItemDTO(BaseModel):
    id: int | None = None
    cart_id: int | None = None
    variant_id: int | None = None
    quantity: int | None = None
    price_at_addition: Decimal | None = None
