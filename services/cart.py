import logging

from exceptions.cart import CartItemNotFoundException
from exceptions.inventory import VariantNotFoundException, InsufficientStockException, InvalidQuantityException
from models.cart import CartDTO
from models.cartItem import CartItemDTO
from repositories.cart import CartRepository
from repositories.cartItem import CartItemRepository
from repositories.product_variant import ProductVariantRepository
from utils.transaction_manager import TransactionManager

logger = logging.getLogger(__name__)


class CartService:
    """
    The user's working basket. Nothing here holds stock: availability is only
    checked as a courtesy and again, authoritatively, when the order is placed.
    """

    @staticmethod
    def _validate_quantity(variant_id: int | None, quantity: int) -> None:
        if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity <= 0:
            raise InvalidQuantityException(variant_id, quantity)

    @staticmethod
    async def get_cart(user_id: int) -> CartDTO:
        async with TransactionManager.atomic_transaction() as session:
            return await CartRepository.get_or_create(user_id, session)

    @staticmethod
    async def add_to_cart(user_id: int, variant_id: int, quantity: int) -> CartDTO:
        """
        Add a variant to the cart, merging with an existing line.

        The price is frozen on the first add; merging keeps the original price.
        """
        CartService._validate_quantity(variant_id, quantity)
        async with TransactionManager.atomic_transaction() as session:
            variant = await ProductVariantRepository.get_by_id(variant_id, session)
            if variant is None:
                raise VariantNotFoundException(variant_id)

            cart = await CartRepository.get_or_create(user_id, session)
            existing = await CartItemRepository.get_by_cart_and_variant(cart.id, variant_id, session)
            new_quantity = quantity + (existing.quantity if existing else 0)
            if new_quantity > variant.stock_quantity:
                raise InsufficientStockException(variant_id, new_quantity, variant.stock_quantity, variant.name)

            if existing is None:
                await CartItemRepository.create(CartItemDTO(
                    cart_id=cart.id,
                    variant_id=variant_id,
                    quantity=quantity,
                    price_at_addition=variant.price,
                ), session)
            else:
                await CartItemRepository.update_quantity(existing.id, new_quantity, session)
            logger.info(f"User {user_id} added {quantity}x variant {variant_id} to cart")
            return await CartRepository.get_or_create(user_id, session)

    @staticmethod
    async def update_cart_item(user_id: int, cart_item_id: int, quantity: int) -> CartDTO:
        async with TransactionManager.atomic_transaction() as session:
            cart = await CartRepository.get_or_create(user_id, session)
            item = await CartItemRepository.get_by_id(cart_item_id, session)
            if item is None or item.cart_id != cart.id:
                raise CartItemNotFoundException(cart_item_id)
            CartService._validate_quantity(item.variant_id, quantity)

            variant = await ProductVariantRepository.get_by_id(item.variant_id, session)
            if variant is None:
                raise VariantNotFoundException(item.variant_id)
            if quantity > variant.stock_quantity:
                raise InsufficientStockException(variant.id, quantity, variant.stock_quantity, variant.name)

            await CartItemRepository.update_quantity(cart_item_id, quantity, session)
            return await CartRepository.get_or_create(user_id, session)

    @staticmethod
    async def remove_from_cart(user_id: int, cart_item_id: int) -> CartDTO:
        async with TransactionManager.atomic_transaction() as session:
            cart = await CartRepository.get_or_create(user_id, session)
            item = await CartItemRepository.get_by_id(cart_item_id, session)
            if item is None or item.cart_id != cart.id:
                raise CartItemNotFoundException(cart_item_id)
            await CartItemRepository.remove_from_cart(cart_item_id, session)
            logger.info(f"User {user_id} removed cart item {cart_item_id}")
            return await CartRepository.get_or_create(user_id, session)

    @staticmethod
    async def clear_cart(user_id: int) -> CartDTO:
        """Remove every line; the cart itself is kept for the next purchase."""
        async with TransactionManager.atomic_transaction() as session:
            cart = await CartRepository.get_or_create(user_id, session)
            removed = await CartRepository.clear_items(cart.id, session)
            logger.info(f"User {user_id} cleared cart ({removed} line(s) removed)")
            return await CartRepository.get_or_create(user_id, session)
