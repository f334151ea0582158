from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from db import session_execute, session_flush
from models.product import Product, ProductDTO
from models.product_variant import ProductVariant, ProductVariantDTO, LowStockAlertDTO


class ProductVariantRepository:

    @staticmethod
    async def get_by_id(variant_id: int, session: AsyncSession, for_update: bool = False) -> ProductVariantDTO | None:
        """
        Read a variant from the database, bypassing the identity map so that a
        value changed by a conditional UPDATE earlier in the transaction is seen.
        """
        stmt = (select(ProductVariant)
                .where(ProductVariant.id == variant_id)
                .execution_options(populate_existing=True))
        if for_update:
            stmt = stmt.with_for_update()
        result = await session_execute(stmt, session)
        variant = result.scalar_one_or_none()
        if variant is None:
            return None
        return ProductVariantDTO.model_validate(variant, from_attributes=True)

    @staticmethod
    async def get_by_product_id(product_id: int, session: AsyncSession) -> list[ProductVariantDTO]:
        stmt = (select(ProductVariant)
                .where(ProductVariant.product_id == product_id)
                .order_by(ProductVariant.id)
                .execution_options(populate_existing=True))
        result = await session_execute(stmt, session)
        return [ProductVariantDTO.model_validate(v, from_attributes=True) for v in result.scalars().all()]

    @staticmethod
    async def decrement_if_available(variant_id: int, quantity: int, session: AsyncSession) -> bool:
        """
        Atomic conditional decrement.

        Returns False when the row does not hold at least ``quantity`` units
        (or does not exist); the stock is left untouched in that case.
        """
        stmt = (update(ProductVariant)
                .where(ProductVariant.id == variant_id,
                       ProductVariant.stock_quantity >= quantity)
                .values(stock_quantity=ProductVariant.stock_quantity - quantity)
                .execution_options(synchronize_session=False))
        result = await session_execute(stmt, session)
        return result.rowcount == 1

    @staticmethod
    async def increment(variant_id: int, quantity: int, session: AsyncSession) -> bool:
        stmt = (update(ProductVariant)
                .where(ProductVariant.id == variant_id)
                .values(stock_quantity=ProductVariant.stock_quantity + quantity)
                .execution_options(synchronize_session=False))
        result = await session_execute(stmt, session)
        return result.rowcount == 1

    @staticmethod
    async def set_quantity(variant_id: int, quantity: int, session: AsyncSession) -> None:
        stmt = (update(ProductVariant)
                .where(ProductVariant.id == variant_id)
                .values(stock_quantity=quantity)
                .execution_options(synchronize_session=False))
        await session_execute(stmt, session)

    @staticmethod
    async def get_low_stock(threshold: int, session: AsyncSession) -> list[LowStockAlertDTO]:
        """Variants that still have stock but no more than ``threshold`` units, lowest first."""
        stmt = (select(ProductVariant, Product.name)
                .join(Product, Product.id == ProductVariant.product_id)
                .where(ProductVariant.stock_quantity > 0,
                       ProductVariant.stock_quantity <= threshold)
                .order_by(ProductVariant.stock_quantity.asc(), ProductVariant.id.asc()))
        result = await session_execute(stmt, session)
        return [
            LowStockAlertDTO(
                variant_id=variant.id,
                sku=variant.sku,
                variant_name=variant.name,
                product_id=variant.product_id,
                product_name=product_name,
                stock_quantity=variant.stock_quantity,
            )
            for variant, product_name in result.all()
        ]

    @staticmethod
    async def create(variant_dto: ProductVariantDTO, session: AsyncSession) -> ProductVariantDTO:
        variant = ProductVariant(**variant_dto.model_dump(exclude_none=True))
        session.add(variant)
        await session_flush(session)
        return ProductVariantDTO.model_validate(variant, from_attributes=True)


class ProductRepository:

    @staticmethod
    async def get_by_id(product_id: int, session: AsyncSession) -> ProductDTO | None:
        stmt = select(Product).where(Product.id == product_id)
        result = await session_execute(stmt, session)
        product = result.scalar_one_or_none()
        if product is None:
            return None
        return ProductDTO.model_validate(product, from_attributes=True)

    @staticmethod
    async def create(product_dto: ProductDTO, session: AsyncSession) -> ProductDTO:
        product = Product(**product_dto.model_dump(exclude_none=True))
        session.add(product)
        await session_flush(session)
        return ProductDTO.model_validate(product, from_attributes=True)
