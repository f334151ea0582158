"""
Unit Tests for DiscountService

Validation order, discount math and the race-free usage counter.
"""

import asyncio
from datetime import datetime, timedelta
from decimal import Decimal

import pytest
from sqlalchemy import select, func

from enums.discount_type import DiscountType
from enums.error_category import ErrorCategory
from enums.payment_method import PaymentMethod
from exceptions import (
    ConcurrencyConflictException,
    DiscountExpiredException,
    DiscountNotActiveException,
    DiscountNotFoundException,
    DiscountNotYetActiveException,
    DiscountUsageLimitReachedException,
    InvalidDiscountException,
)
from models.discount import DiscountDTO
from models.order import Order
from services.discount import DiscountService
from services.order import OrderService
from utils.transaction_manager import TransactionManager


def make_discount(type: DiscountType, value: str) -> DiscountDTO:
    return DiscountDTO(id=1, code="TEST", type=type, value=Decimal(value), is_active=True, times_used=0)


class TestApplyDiscount:
    """Test apply_discount() math."""

    def test_percentage(self):
        assert DiscountService.apply_discount(Decimal("100"), make_discount(DiscountType.PERCENTAGE, "10")) == Decimal("90")

    def test_fixed(self):
        assert DiscountService.apply_discount(Decimal("100"), make_discount(DiscountType.FIXED, "30")) == Decimal("70")

    def test_fixed_floors_at_zero(self):
        assert DiscountService.apply_discount(Decimal("20"), make_discount(DiscountType.FIXED, "30")) == Decimal("0")

    def test_full_percentage(self):
        assert DiscountService.apply_discount(Decimal("59.99"), make_discount(DiscountType.PERCENTAGE, "100")) == Decimal("0")

    def test_rounds_half_up_to_cents(self):
        # 10.05 * 0.85 = 8.5425
        assert DiscountService.apply_discount(Decimal("10.05"), make_discount(DiscountType.PERCENTAGE, "15")) == Decimal("8.54")
        # 0.05 * 0.5 = 0.025
        assert DiscountService.apply_discount(Decimal("0.05"), make_discount(DiscountType.PERCENTAGE, "50")) == Decimal("0.03")


class TestValidateDiscountCode:
    """Test validate_discount_code() checks in order."""

    @pytest.mark.asyncio
    async def test_valid_code_case_insensitive(self, seed):
        await seed.discount(code="VERANO25", value="25")

        discount = await DiscountService.validate_discount_code("  verano25 ")

        assert discount.code == "VERANO25"
        assert discount.value == Decimal("25.00")
        assert "times_used" not in discount.model_dump()

    @pytest.mark.asyncio
    async def test_unknown_code(self, seed):
        with pytest.raises(DiscountNotFoundException) as exc_info:
            await DiscountService.validate_discount_code("NOPE")
        assert exc_info.value.category == ErrorCategory.NOT_FOUND

    @pytest.mark.asyncio
    async def test_inactive(self, seed):
        await seed.discount(code="OFF", is_active=False)
        with pytest.raises(DiscountNotActiveException):
            await DiscountService.validate_discount_code("OFF")

    @pytest.mark.asyncio
    async def test_not_yet_active(self, seed, tomorrow):
        await seed.discount(code="SOON", start_date=tomorrow)
        with pytest.raises(DiscountNotYetActiveException):
            await DiscountService.validate_discount_code("SOON")

    @pytest.mark.asyncio
    async def test_expired(self, seed, yesterday):
        await seed.discount(code="OLD", end_date=yesterday)
        with pytest.raises(DiscountExpiredException) as exc_info:
            await DiscountService.validate_discount_code("OLD")
        assert exc_info.value.category == ErrorCategory.BAD_REQUEST

    @pytest.mark.asyncio
    async def test_usage_limit_reached(self, seed):
        await seed.discount(code="ONCE", usage_limit=1, times_used=1)
        with pytest.raises(DiscountUsageLimitReachedException):
            await DiscountService.validate_discount_code("ONCE")

    @pytest.mark.asyncio
    async def test_inactive_checked_before_expiry(self, seed, yesterday):
        await seed.discount(code="BOTH", is_active=False, end_date=yesterday)
        with pytest.raises(DiscountNotActiveException):
            await DiscountService.validate_discount_code("BOTH")


class TestRedeem:
    """Test redeem() compare-and-increment."""

    @pytest.mark.asyncio
    async def test_redeem_stops_at_limit(self, seed):
        created = await seed.discount(code="TWICE", usage_limit=2)

        for _ in range(2):
            async with TransactionManager.atomic_transaction() as session:
                await DiscountService.redeem(created, session)

        with pytest.raises(DiscountUsageLimitReachedException):
            async with TransactionManager.atomic_transaction() as session:
                await DiscountService.redeem(created, session)

        assert (await seed.discount_by_code("TWICE")).times_used == 2

    @pytest.mark.asyncio
    async def test_redeem_unlimited(self, seed):
        created = await seed.discount(code="ALWAYS")
        for _ in range(3):
            async with TransactionManager.atomic_transaction() as session:
                await DiscountService.redeem(created, session)
        assert (await seed.discount_by_code("ALWAYS")).times_used == 3


class TestCreateDiscount:
    """Test create_discount() validation."""

    @pytest.mark.asyncio
    async def test_create_uppercases_code(self, seed):
        created = await DiscountService.create_discount(DiscountDTO(
            code="bienvenida", type=DiscountType.FIXED, value=Decimal("500")
        ))
        assert created.code == "BIENVENIDA"
        assert created.times_used == 0

    @pytest.mark.asyncio
    @pytest.mark.parametrize("type,value", [
        (DiscountType.PERCENTAGE, "0"),
        (DiscountType.PERCENTAGE, "100.01"),
        (DiscountType.FIXED, "-5"),
    ])
    async def test_create_rejects_out_of_range_values(self, seed, type, value):
        with pytest.raises(InvalidDiscountException):
            await DiscountService.create_discount(DiscountDTO(code="BAD", type=type, value=Decimal(value)))

    @pytest.mark.asyncio
    async def test_create_rejects_inverted_dates(self, seed):
        now = datetime.now()
        with pytest.raises(InvalidDiscountException):
            await DiscountService.create_discount(DiscountDTO(
                code="DATES", type=DiscountType.FIXED, value=Decimal("10"),
                start_date=now, end_date=now - timedelta(days=1)
            ))

    @pytest.mark.asyncio
    async def test_create_rejects_duplicate_code(self, seed):
        await seed.discount(code="DUP")
        with pytest.raises(InvalidDiscountException):
            await DiscountService.create_discount(DiscountDTO(code="dup", type=DiscountType.FIXED, value=Decimal("1")))


class TestConcurrentRedemption:

    @pytest.mark.asyncio
    async def test_last_use_taken_once(self, seed):
        """Two checkouts race for the last use: one order gets the discount, the counter stops at the limit."""
        await seed.discount(code="LAST", value="10", usage_limit=1)
        variant = await seed.variant(stock=10, price="100.00")
        buyers = {}
        for user_id in (21, 22):
            await seed.cart_item(user_id, variant, 1)
            buyers[user_id] = await seed.address(user_id)

        results = await asyncio.gather(
            *(OrderService.place_order(user_id, address.id, address.id, PaymentMethod.MERCADO_PAGO,
                                       discount_code="LAST")
              for user_id, address in buyers.items()),
            return_exceptions=True,
        )

        orders = [r for r in results if not isinstance(r, Exception)]
        assert orders, results
        assert (await seed.discount_by_code("LAST")).times_used == 1
        assert len([o for o in orders if o.applied_discount_id is not None]) == 1

        async with TransactionManager.atomic_transaction() as session:
            result = await session.execute(
                select(func.count()).select_from(Order).where(Order.applied_discount_id.is_not(None))
            )
            assert result.scalar_one() == 1

    @pytest.mark.asyncio
    async def test_concurrent_redeem_transactions(self, seed):
        discount = await seed.discount(code="DUEL", usage_limit=1)

        async def redeem_once():
            async with TransactionManager.atomic_transaction() as session:
                await DiscountService.redeem(discount, session)

        results = await asyncio.gather(redeem_once(), redeem_once(), return_exceptions=True)

        assert results.count(None) == 1
        assert isinstance([r for r in results if r is not None][0],
                          (DiscountUsageLimitReachedException, ConcurrencyConflictException))
        assert (await seed.discount_by_code("DUEL")).times_used == 1


class TestDiscountAdmin:

    @pytest.mark.asyncio
    async def test_find_all_newest_first(self, seed):
        first = await seed.discount(code="FIRST")
        second = await seed.discount(code="SECOND")

        discounts = await DiscountService.find_all_discounts()

        assert [d.id for d in discounts] == [second.id, first.id]

    @pytest.mark.asyncio
    async def test_find_discount(self, seed):
        created = await seed.discount(code="FINDME")
        assert (await DiscountService.find_discount(created.id)).code == "FINDME"

        with pytest.raises(DiscountNotFoundException) as exc_info:
            await DiscountService.find_discount(created.id + 100)
        assert exc_info.value.category == ErrorCategory.NOT_FOUND
        assert str(exc_info.value) == f"Discount with ID {created.id + 100} not found"

    @pytest.mark.asyncio
    async def test_update_only_given_fields(self, seed, tomorrow):
        created = await seed.discount(code="EDIT", value="10", usage_limit=5)

        updated = await DiscountService.update_discount(created.id, DiscountDTO(value=Decimal("15"), end_date=tomorrow))

        assert updated.value == Decimal("15.00")
        assert updated.end_date == tomorrow
        assert updated.code == "EDIT"
        assert updated.usage_limit == 5
        assert updated.type == DiscountType.PERCENTAGE

    @pytest.mark.asyncio
    async def test_update_cannot_touch_usage_counter(self, seed):
        created = await seed.discount(code="COUNTED", times_used=2)

        updated = await DiscountService.update_discount(created.id, DiscountDTO(times_used=0, code="counted2"))

        assert updated.code == "COUNTED2"
        assert updated.times_used == 2

    @pytest.mark.asyncio
    async def test_update_validates_merged_values(self, seed):
        created = await seed.discount(code="PCT", type=DiscountType.PERCENTAGE, value="10")

        with pytest.raises(InvalidDiscountException):
            await DiscountService.update_discount(created.id, DiscountDTO(value=Decimal("150")))

        assert (await seed.discount_by_code("PCT")).value == Decimal("10.00")

    @pytest.mark.asyncio
    async def test_update_limit_below_uses(self, seed):
        created = await seed.discount(code="BUSY", usage_limit=10, times_used=4)
        with pytest.raises(InvalidDiscountException):
            await DiscountService.update_discount(created.id, DiscountDTO(usage_limit=3))

    @pytest.mark.asyncio
    async def test_update_to_taken_code(self, seed):
        await seed.discount(code="TAKEN")
        created = await seed.discount(code="MINE")
        with pytest.raises(InvalidDiscountException):
            await DiscountService.update_discount(created.id, DiscountDTO(code="taken"))

    @pytest.mark.asyncio
    async def test_update_unknown(self, seed):
        with pytest.raises(DiscountNotFoundException):
            await DiscountService.update_discount(999, DiscountDTO(value=Decimal("5")))

    @pytest.mark.asyncio
    async def test_remove_keeps_orders(self, seed):
        created = await seed.discount(code="BYE", value="10")
        variant = await seed.variant(stock=5, price="100.00")
        await seed.cart_item(21, variant, 1)
        address = await seed.address(21)
        order = await OrderService.place_order(21, address.id, address.id, PaymentMethod.MERCADO_PAGO,
                                               discount_code="BYE")
        assert order.applied_discount_id == created.id

        removed = await DiscountService.remove_discount(created.id)

        assert removed.code == "BYE"
        assert await seed.discount_by_code("BYE") is None
        kept = await OrderService.find_order_by_number(21, order.order_number)
        assert kept.applied_discount_id is None
        assert kept.total_amount == Decimal("90.00")

        with pytest.raises(DiscountNotFoundException):
            await DiscountService.remove_discount(created.id)
