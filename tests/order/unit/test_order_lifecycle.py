"""
Unit Tests for the order lifecycle after placement:
customer cancellation, admin status updates and order lookups.
"""

from unittest.mock import patch

import pytest

import config
from enums.error_category import ErrorCategory
from enums.inventory_change_type import InventoryChangeType
from enums.order_status import OrderStatus
from enums.order_tracking_status import OrderTrackingStatus
from enums.order_transition_policy import OrderTransitionPolicy
from enums.payment_method import PaymentMethod
from enums.payment_status import PaymentStatus
from exceptions import (
    InvalidOrderStateException,
    OrderNotCancellableException,
    OrderNotFoundException,
    OrderOwnershipException,
)
from services.order import OrderService

OWNER = 7
STRANGER = 8


@pytest.fixture
def place(seed):
    """Place an order for ``user_id`` buying ``quantity`` units of a fresh variant."""

    async def _place(user_id: int = OWNER, quantity: int = 3, stock: int = 10):
        variant = await seed.variant(stock=stock, price="250.00")
        await seed.cart_item(user_id, variant, quantity)
        address = await seed.address(user_id)
        order = await OrderService.place_order(user_id, address.id, address.id, PaymentMethod.PAGO_FACIL)
        return order, variant

    return _place


class TestCancelOrder:

    @pytest.mark.asyncio
    async def test_cancel_returns_stock(self, seed, place):
        order, variant = await place(quantity=3)
        assert await seed.stock_of(variant.id) == 7

        result = await OrderService.cancel_order(OWNER, order.order_number)

        assert result == {"message": "Order cancelled successfully"}
        assert await seed.stock_of(variant.id) == 10

        ledger = await seed.ledger(variant.id)
        assert [(e.change_type, e.quantity) for e in ledger] == [
            (InventoryChangeType.SALE, -3),
            (InventoryChangeType.RETURN, 3),
        ]
        assert ledger[1].reason == f"Order {order.order_number} cancelled"

        cancelled = await OrderService.find_order_by_number(OWNER, order.order_number)
        assert cancelled.status == OrderStatus.CANCELLED
        assert cancelled.tracking[0].status == OrderTrackingStatus.EXCEPTION
        assert cancelled.tracking[0].message == "Order has been cancelled by customer"
        assert cancelled.payment.status == PaymentStatus.FAILED

    @pytest.mark.asyncio
    async def test_cancel_processing_order(self, seed, place):
        order, variant = await place(quantity=2)
        await OrderService.update_order_status(order.order_number, OrderStatus.PROCESSING)

        await OrderService.cancel_order(OWNER, order.order_number)

        assert await seed.stock_of(variant.id) == 10

    @pytest.mark.asyncio
    async def test_cancel_twice_returns_stock_once(self, seed, place):
        order, variant = await place(quantity=3)
        await OrderService.cancel_order(OWNER, order.order_number)

        with pytest.raises(OrderNotCancellableException):
            await OrderService.cancel_order(OWNER, order.order_number)

        assert await seed.stock_of(variant.id) == 10

    @pytest.mark.asyncio
    async def test_cancel_shipped_order_changes_nothing(self, seed, place):
        order, variant = await place(quantity=3)
        await OrderService.update_order_status(order.order_number, OrderStatus.PROCESSING)
        await OrderService.update_order_status(order.order_number, OrderStatus.SHIPPED)

        with pytest.raises(OrderNotCancellableException) as exc_info:
            await OrderService.cancel_order(OWNER, order.order_number)

        assert exc_info.value.current_state == "SHIPPED"
        assert exc_info.value.category == ErrorCategory.BAD_REQUEST
        assert await seed.stock_of(variant.id) == 7
        unchanged = await OrderService.find_order_by_number(OWNER, order.order_number)
        assert unchanged.status == OrderStatus.SHIPPED

    @pytest.mark.asyncio
    async def test_cancel_foreign_order_forbidden(self, seed, place):
        order, variant = await place()

        with pytest.raises(OrderOwnershipException) as exc_info:
            await OrderService.cancel_order(STRANGER, order.order_number)

        assert exc_info.value.category == ErrorCategory.FORBIDDEN
        assert await seed.stock_of(variant.id) == 7

    @pytest.mark.asyncio
    async def test_cancel_unknown_order(self, seed):
        with pytest.raises(OrderNotFoundException):
            await OrderService.cancel_order(OWNER, "ORD-2026-ZZZZZZ")


class TestUpdateOrderStatus:

    @pytest.mark.asyncio
    async def test_happy_path_tracking(self, seed, place):
        order, _ = await place()

        for status in (OrderStatus.PROCESSING, OrderStatus.SHIPPED, OrderStatus.DELIVERED):
            updated = await OrderService.update_order_status(order.order_number, status)
            assert updated.status == status

        assert [t.status for t in updated.tracking] == [
            OrderTrackingStatus.DELIVERED,
            OrderTrackingStatus.SHIPPED,
            OrderTrackingStatus.PROCESSING,
            OrderTrackingStatus.ORDER_PLACED,
        ]
        assert updated.tracking[0].message == "Order status updated to DELIVERED"

    @pytest.mark.asyncio
    async def test_accepts_status_string(self, seed, place):
        order, _ = await place()
        updated = await OrderService.update_order_status(order.order_number, "PROCESSING")
        assert updated.status == OrderStatus.PROCESSING

    @pytest.mark.asyncio
    async def test_unknown_status_rejected(self, seed, place):
        order, _ = await place()
        with pytest.raises(InvalidOrderStateException):
            await OrderService.update_order_status(order.order_number, "LOST")

    @pytest.mark.asyncio
    async def test_permissive_policy_allows_jump(self, seed, place):
        order, _ = await place()

        updated = await OrderService.update_order_status(order.order_number, OrderStatus.DELIVERED)

        assert updated.status == OrderStatus.DELIVERED
        assert updated.tracking[0].status == OrderTrackingStatus.DELIVERED

    @pytest.mark.asyncio
    async def test_strict_policy_rejects_jump(self, seed, place):
        order, _ = await place()

        with patch.object(config, 'ORDER_TRANSITION_POLICY', OrderTransitionPolicy.STRICT):
            with pytest.raises(InvalidOrderStateException) as exc_info:
                await OrderService.update_order_status(order.order_number, OrderStatus.DELIVERED)

        assert exc_info.value.current_state == "PENDING"
        assert exc_info.value.requested_state == "DELIVERED"
        unchanged = await OrderService.find_order_by_number(OWNER, order.order_number)
        assert unchanged.status == OrderStatus.PENDING
        assert len(unchanged.tracking) == 1

    @pytest.mark.asyncio
    async def test_status_update_does_not_touch_stock(self, seed, place):
        order, variant = await place(quantity=3)
        await OrderService.update_order_status(order.order_number, OrderStatus.REFUNDED)
        assert await seed.stock_of(variant.id) == 7

    @pytest.mark.asyncio
    async def test_unknown_order(self, seed):
        with pytest.raises(OrderNotFoundException):
            await OrderService.update_order_status("ORD-2026-ZZZZZZ", OrderStatus.SHIPPED)


class TestOrderLookup:

    @pytest.mark.asyncio
    async def test_find_user_orders_paginates_newest_first(self, seed, place):
        numbers = [(await place(quantity=1))[0].order_number for _ in range(3)]
        await place(user_id=STRANGER, quantity=1)

        first = await OrderService.find_user_orders(OWNER, page=1, limit=2)
        second = await OrderService.find_user_orders(OWNER, page=2, limit=2)

        assert first["meta"] == {"total": 3, "page": 1, "limit": 2, "total_pages": 2}
        assert [o.order_number for o in first["data"] + second["data"]] == list(reversed(numbers))

    @pytest.mark.asyncio
    async def test_find_user_orders_unknown_sort_column(self, seed, place):
        await place(quantity=1)
        result = await OrderService.find_user_orders(OWNER, sort_by="nonsense")
        assert result["meta"]["total"] == 1

    @pytest.mark.asyncio
    async def test_find_user_orders_empty(self, seed):
        result = await OrderService.find_user_orders(OWNER)
        assert result == {"data": [], "meta": {"total": 0, "page": 1, "limit": 10, "total_pages": 0}}

    @pytest.mark.asyncio
    async def test_find_all_orders(self, seed, place):
        await place(quantity=1)
        await place(user_id=STRANGER, quantity=1)
        result = await OrderService.find_all_orders()
        assert result["meta"]["total"] == 2

    @pytest.mark.asyncio
    async def test_find_order_by_number_ownership(self, seed, place):
        order, _ = await place()

        assert (await OrderService.find_order_by_number(OWNER, order.order_number)).id == order.id
        with pytest.raises(OrderOwnershipException):
            await OrderService.find_order_by_number(STRANGER, order.order_number)
        admin_view = await OrderService.find_order_by_number(STRANGER, order.order_number, is_admin=True)
        assert admin_view.id == order.id

    @pytest.mark.asyncio
    async def test_find_order_by_number_unknown(self, seed):
        with pytest.raises(OrderNotFoundException) as exc_info:
            await OrderService.find_order_by_number(OWNER, "ORD-2026-ZZZZZZ")
        assert exc_info.value.category == ErrorCategory.NOT_FOUND
