import logging
import math
from decimal import Decimal, ROUND_HALF_UP

import config
from enums.currency import Currency
from enums.invalid_discount_policy import InvalidDiscountPolicy
from enums.order_status import OrderStatus
from enums.order_tracking_status import OrderTrackingStatus
from enums.payment_method import PaymentMethod
from enums.payment_status import PaymentStatus
from exceptions.address import InvalidAddressException
from exceptions.base import ConcurrencyConflictException
from exceptions.cart import EmptyCartException
from exceptions.discount import DiscountException
from exceptions.inventory import VariantNotFoundException, InsufficientStockException
from exceptions.order import (
    OrderNotFoundException,
    OrderOwnershipException,
    OrderNotCancellableException,
    InvalidOrderStateException,
)
from exceptions.payment import InvalidInstallmentsException
from models.inventory_log import StockChangeDTO
from models.order import OrderDTO
from models.orderItem import OrderItemDTO
from models.payment import PaymentDTO
from repositories.address import AddressRepository
from repositories.cart import CartRepository
from repositories.order import OrderRepository
from repositories.orderItem import OrderItemRepository
from repositories.order_tracking import OrderTrackingRepository
from repositories.payment import PaymentRepository
from repositories.product_variant import ProductVariantRepository
from services.discount import DiscountService
from services.inventory import InventoryService
from utils.order_state_machine import OrderStateMachine
from utils.transaction_manager import TransactionManager

logger = logging.getLogger(__name__)

CENT = Decimal("0.01")


class OrderService:

    @staticmethod
    @TransactionManager.with_retry(unique_columns=("orders.order_number",))
    async def place_order(
        user_id: int,
        shipping_address_id: int,
        billing_address_id: int,
        payment_method: PaymentMethod,
        discount_code: str | None = None,
        currency: Currency | None = None,
        notes: str | None = None,
        installments: int | None = None,
    ) -> OrderDTO:
        """
        Turn the user's cart into an order.

        Flow (one transaction, any failure rolls back every step):
        1. Both addresses must belong to the user
        2. Cart must have items
        3. Every line must be in stock (first short variant is reported)
        4. Total from the prices frozen in the cart
        5. Discount, governed by config.ON_INVALID_DISCOUNT
        6. Order + items + PENDING payment
        7. SALE ledger entry per line
        8. Cart drained
        9. ORDER_PLACED tracking entry

        Lock timeouts, order number collisions and a cart drained by a
        concurrent checkout retry the whole flow (the retry then finds the
        cart empty).

        Raises:
            InvalidAddressException: address missing or owned by another user
            EmptyCartException: no cart or no items
            InsufficientStockException: a line asks for more than is in stock
            DiscountException: invalid code with the reject policy
        """
        if installments is not None and (isinstance(installments, bool) or installments <= 0):
            raise InvalidInstallmentsException(installments)

        async with TransactionManager.atomic_transaction() as session:
            # 1. Addresses
            shipping_address = await AddressRepository.find(shipping_address_id, user_id, session)
            billing_address = await AddressRepository.find(billing_address_id, user_id, session)
            if shipping_address is None or billing_address is None:
                logger.warning(f"Order rejected for user {user_id}: invalid address "
                               f"(shipping={shipping_address_id}, billing={billing_address_id})")
                raise InvalidAddressException(user_id, [shipping_address_id, billing_address_id])

            # 2. Cart
            cart = await CartRepository.get_with_items(user_id, session)
            if cart is None or not cart.items:
                raise EmptyCartException(user_id)

            # 3. Stock, first failure wins
            for cart_item in cart.items:
                variant = await ProductVariantRepository.get_by_id(cart_item.variant_id, session, for_update=True)
                if variant is None:
                    raise VariantNotFoundException(cart_item.variant_id)
                if cart_item.quantity > variant.stock_quantity:
                    logger.warning(f"Order rejected for user {user_id}: insufficient stock for variant {variant.id}")
                    raise InsufficientStockException(variant.id, cart_item.quantity, variant.stock_quantity, variant.name)

            # 4. Total from frozen cart prices
            total_amount = sum((Decimal(item.price_at_addition) * item.quantity for item in cart.items), Decimal(0))

            # 5. Discount
            applied_discount_id = None
            if discount_code:
                try:
                    discount = await DiscountService.get_valid_discount(discount_code, session)
                    await DiscountService.redeem(discount, session)
                    total_amount = DiscountService.apply_discount(total_amount, discount)
                    applied_discount_id = discount.id
                except DiscountException as e:
                    if config.ON_INVALID_DISCOUNT == InvalidDiscountPolicy.REJECT:
                        logger.warning(f"Order rejected for user {user_id}: {e}")
                        raise
                    logger.warning(f"Discount ignored for user {user_id}, placing order without it: {e}")

            total_amount = total_amount.quantize(CENT, rounding=ROUND_HALF_UP)
            currency = currency or config.CURRENCY

            # 6. Order aggregate
            order_number = await OrderRepository.generate_order_number(session)
            order_id = await OrderRepository.create(OrderDTO(
                order_number=order_number,
                user_id=user_id,
                status=OrderStatus.PENDING,
                total_amount=total_amount,
                currency=currency,
                notes=notes,
                shipping_address_id=shipping_address_id,
                billing_address_id=billing_address_id,
                applied_discount_id=applied_discount_id,
            ), session)

            await OrderItemRepository.create_many([
                OrderItemDTO(
                    order_id=order_id,
                    variant_id=item.variant_id,
                    quantity=item.quantity,
                    price_at_purchase=item.price_at_addition,
                )
                for item in cart.items
            ], session)

            installment_amount = None
            if installments:
                installment_amount = (total_amount / installments).quantize(CENT, rounding=ROUND_HALF_UP)
            await PaymentRepository.create(PaymentDTO(
                order_id=order_id,
                amount=total_amount,
                currency=currency,
                status=PaymentStatus.PENDING,
                payment_method=payment_method,
                installments=installments,
                installment_amount=installment_amount,
            ), session)

            # 7. Stock leaves the warehouse
            await InventoryService.confirm_stock_reduction([
                StockChangeDTO(variant_id=item.variant_id, quantity=item.quantity, reason=f"Order {order_number}")
                for item in cart.items
            ], session)

            # 8. Drain the cart, the cart row stays. Fewer rows than we read means
            #    a concurrent checkout of the same cart got there first.
            drained = await CartRepository.clear_items(cart.id, session, [item.id for item in cart.items])
            if drained != len(cart.items):
                logger.warning(f"Cart {cart.id} of user {user_id} changed during checkout "
                               f"({drained} of {len(cart.items)} line(s) left)")
                raise ConcurrencyConflictException("order placement", f"cart {cart.id} was modified concurrently")

            # 9. Tracking
            await OrderTrackingRepository.create(order_id, OrderTrackingStatus.ORDER_PLACED,
                                                 "Order has been placed successfully", session)

            order = await OrderRepository.get_by_id(order_id, session)

        logger.info(f"✅ Order {order.order_number} placed by user {user_id} "
                    f"({len(order.items)} item(s), total {order.total_amount} {order.currency.value})")
        return order

    @staticmethod
    async def find_user_orders(user_id: int, page: int = 1, limit: int = 10,
                               sort_by: str = "created_at", sort_order: str = "desc") -> dict:
        return await OrderService._paginate(user_id, page, limit, sort_by, sort_order)

    @staticmethod
    async def find_all_orders(page: int = 1, limit: int = 10,
                              sort_by: str = "created_at", sort_order: str = "desc") -> dict:
        """Admin listing over every user's orders."""
        return await OrderService._paginate(None, page, limit, sort_by, sort_order)

    @staticmethod
    async def _paginate(user_id: int | None, page: int, limit: int, sort_by: str, sort_order: str) -> dict:
        page = max(1, page)
        limit = max(1, limit)
        async with TransactionManager.atomic_transaction() as session:
            orders = await OrderRepository.get_paginated(session, user_id=user_id, page=page, limit=limit,
                                                         sort_by=sort_by, sort_order=sort_order)
            total = await OrderRepository.count(session, user_id=user_id)
        return {
            "data": orders,
            "meta": {
                "total": total,
                "page": page,
                "limit": limit,
                "total_pages": math.ceil(total / limit),
            },
        }

    @staticmethod
    async def find_order_by_number(user_id: int, order_number: str, is_admin: bool = False) -> OrderDTO:
        """
        Raises:
            OrderNotFoundException: unknown order number
            OrderOwnershipException: caller is neither the owner nor an admin
        """
        async with TransactionManager.atomic_transaction() as session:
            order = await OrderRepository.get_by_order_number(order_number, session)
        if order is None:
            raise OrderNotFoundException(order_number)
        if order.user_id != user_id and not is_admin:
            raise OrderOwnershipException(order_number, user_id)
        return order

    @staticmethod
    async def update_order_status(order_number: str, new_status: OrderStatus | str) -> OrderDTO:
        """
        Move an order to ``new_status`` and append the matching tracking entry.

        Transition legality follows config.ORDER_TRANSITION_POLICY.
        """
        async with TransactionManager.atomic_transaction() as session:
            order = await OrderRepository.get_by_order_number(order_number, session)
            if order is None:
                raise OrderNotFoundException(order_number)

            try:
                new_status = OrderStatus(new_status)
            except ValueError:
                raise InvalidOrderStateException(order_number, order.status.value, str(new_status)) from None

            OrderStateMachine.validate_transition(order_number, order.status, new_status)

            await OrderRepository.update_status(order.id, new_status, session)
            await OrderTrackingRepository.create(
                order.id,
                OrderStateMachine.tracking_status_for(new_status),
                f"Order status updated to {new_status.value}",
                session,
            )
            return await OrderRepository.get_by_id(order.id, session)

    @staticmethod
    async def cancel_order(user_id: int, order_number: str) -> dict:
        """
        Customer cancellation: reverses the stock taken by the order.

        Flow (one transaction):
        1. Order must exist, belong to the user and be PENDING or PROCESSING
        2. Status -> CANCELLED (conditional, so a concurrent cancel cannot
           return the stock twice)
        3. RETURN ledger entry per item
        4. EXCEPTION tracking entry
        5. A still PENDING payment is marked FAILED

        Raises:
            OrderNotFoundException, OrderOwnershipException, OrderNotCancellableException
        """
        async with TransactionManager.atomic_transaction() as session:
            order = await OrderRepository.get_by_order_number(order_number, session)
            if order is None:
                raise OrderNotFoundException(order_number)
            if order.user_id != user_id:
                raise OrderOwnershipException(order_number, user_id)
            if not OrderStateMachine.is_cancellable(order.status):
                logger.warning(f"Cancellation of order {order_number} rejected (status: {order.status.value})")
                raise OrderNotCancellableException(order_number, order.status.value)

            cancelled = await OrderRepository.update_status_if(
                order.id, list(OrderStateMachine.CANCELLABLE_STATUSES), OrderStatus.CANCELLED, session
            )
            if not cancelled:
                current = await OrderRepository.get_by_id(order.id, session)
                raise OrderNotCancellableException(order_number, current.status.value)

            await InventoryService.return_stock([
                StockChangeDTO(variant_id=item.variant_id, quantity=item.quantity,
                               reason=f"Order {order_number} cancelled")
                for item in order.items
            ], session)

            await OrderTrackingRepository.create(order.id, OrderTrackingStatus.EXCEPTION,
                                                 "Order has been cancelled by customer", session)

            if order.payment is not None and order.payment.status == PaymentStatus.PENDING:
                await PaymentRepository.update_status_if(order.payment.id, PaymentStatus.PENDING,
                                                         PaymentStatus.FAILED, session)

        logger.info(f"Order {order_number} cancelled by user {user_id}")
        return {"message": "Order cancelled successfully"}
