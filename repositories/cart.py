from sqlalchemy import select, delete
from sqlalchemy.ext.asyncio import AsyncSession

from db import session_execute, session_flush
from models.cart import Cart, CartDTO
from models.cartItem import CartItem
from repositories.cartItem import CartItemRepository


class CartRepository:
    @staticmethod
    async def get_or_create(user_id: int, session: AsyncSession) -> CartDTO:
        stmt = select(Cart).where(Cart.user_id == user_id)
        cart = await session_execute(stmt, session)
        cart = cart.scalar()
        if cart is None:
            cart = Cart(user_id=user_id)
            session.add(cart)
            await session_flush(session)
        return CartDTO(id=cart.id, user_id=cart.user_id,
                       items=await CartItemRepository.get_by_cart_id(cart.id, session))

    @staticmethod
    async def get_with_items(user_id: int, session: AsyncSession) -> CartDTO | None:
        """The user's cart with its items in insertion order, or None if the user never had one."""
        stmt = select(Cart).where(Cart.user_id == user_id)
        cart = await session_execute(stmt, session)
        cart = cart.scalar()
        if cart is None:
            return None
        return CartDTO(id=cart.id, user_id=cart.user_id,
                       items=await CartItemRepository.get_by_cart_id(cart.id, session))

    @staticmethod
    async def clear_items(cart_id: int, session: AsyncSession, item_ids: list[int] | None = None) -> int:
        """
        Delete the cart's items and return how many rows went.

        With ``item_ids`` only those lines are deleted, so a caller that read
        the cart earlier can tell from the count whether someone else drained
        it in the meantime.
        """
        stmt = delete(CartItem).where(CartItem.cart_id == cart_id)
        if item_ids is not None:
            stmt = stmt.where(CartItem.id.in_(item_ids))
        result = await session_execute(stmt.execution_options(synchronize_session=False), session)
        return result.rowcount
