from decimal import Decimal

from pydantic import BaseModel
from sqlalchemy import Column, Integer, String, Numeric, ForeignKey, CheckConstraint, Index
from sqlalchemy.orm import relationship

from models.base import Base


# A purchasable SKU of a product. stock_quantity is the single source of truth
# for availability and is only ever changed through InventoryService.
class ProductVariant(Base):
    __tablename__ = 'product_variants'

    id = Column(Integer, primary_key=True, unique=True)
    product_id = Column(Integer, ForeignKey('products.id', ondelete='CASCADE'), nullable=False)
    sku = Column(String(64), nullable=False, unique=True)
    name = Column(String, nullable=False)
    price = Column(Numeric(12, 2), nullable=False)
    stock_quantity = Column(Integer, nullable=False, default=0)

    product = relationship("Product", back_populates="variants")

    __table_args__ = (
        CheckConstraint('stock_quantity >= 0', name='ck_product_variant_stock_non_negative'),
        CheckConstraint('price >= 0', name='ck_product_variant_price_non_negative'),
        Index('ix_product_variants_stock_quantity', 'stock_quantity'),
    )


class ProductVariantDTO(BaseModel):
    id: int | None = None
    product_id: int | None = None
    sku: str | None = None
    name: str | None = None
    price: Decimal | None = None
    stock_quantity: int | None = None


class LowStockAlertDTO(BaseModel):
    variant_id: int
    sku: str
    variant_name: str
    product_id: int
    product_name: str | None = None
    stock_quantity: int


class ProductInventoryDTO(BaseModel):
    product_id: int
    total_variants: int
    total_stock: int
    low_stock_variants: int
    out_of_stock_variants: int
    variants: list[ProductVariantDTO] = []
