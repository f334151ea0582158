from sqlalchemy import select, update, delete
from sqlalchemy.ext.asyncio import AsyncSession

from db import session_execute, session_flush
from models.cartItem import CartItem, CartItemDTO


class CartItemRepository:

    @staticmethod
    async def create(cart_item: CartItemDTO, session: AsyncSession) -> CartItemDTO:
        item = CartItem(**cart_item.model_dump(exclude_none=True))
        session.add(item)
        await session_flush(session)
        return CartItemDTO.model_validate(item, from_attributes=True)

    @staticmethod
    async def get_by_id(cart_item_id: int, session: AsyncSession) -> CartItemDTO | None:
        stmt = select(CartItem).where(CartItem.id == cart_item_id).execution_options(populate_existing=True)
        result = await session_execute(stmt, session)
        item = result.scalar_one_or_none()
        if item is None:
            return None
        return CartItemDTO.model_validate(item, from_attributes=True)

    @staticmethod
    async def get_by_cart_and_variant(cart_id: int, variant_id: int, session: AsyncSession) -> CartItemDTO | None:
        stmt = (select(CartItem)
                .where(CartItem.cart_id == cart_id, CartItem.variant_id == variant_id)
                .execution_options(populate_existing=True))
        result = await session_execute(stmt, session)
        item = result.scalar_one_or_none()
        if item is None:
            return None
        return CartItemDTO.model_validate(item, from_attributes=True)

    @staticmethod
    async def get_by_cart_id(cart_id: int, session: AsyncSession) -> list[CartItemDTO]:
        stmt = (select(CartItem)
                .where(CartItem.cart_id == cart_id)
                .order_by(CartItem.id)
                .execution_options(populate_existing=True))
        result = await session_execute(stmt, session)
        return [CartItemDTO.model_validate(item, from_attributes=True) for item in result.scalars().all()]

    @staticmethod
    async def update_quantity(cart_item_id: int, quantity: int, session: AsyncSession) -> None:
        stmt = (update(CartItem)
                .where(CartItem.id == cart_item_id)
                .values(quantity=quantity)
                .execution_options(synchronize_session=False))
        await session_execute(stmt, session)

    @staticmethod
    async def remove_from_cart(cart_item_id: int, session: AsyncSession) -> None:
        stmt = delete(CartItem).where(CartItem.id == cart_item_id).execution_options(synchronize_session=False)
        await session_execute(stmt, session)
