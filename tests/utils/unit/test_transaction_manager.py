"""
Unit Tests for TransactionManager

Tests commit/rollback of atomic_transaction, session joining and the retry decorator.
"""

from unittest.mock import AsyncMock

import pytest
from sqlalchemy.exc import IntegrityError, OperationalError

from exceptions import ConcurrencyConflictException, InsufficientStockException
from models.product import ProductDTO
from repositories.product_variant import ProductRepository
from utils.transaction_manager import TransactionManager, is_concurrency_error, is_unique_violation


class TestIsConcurrencyError:

    def test_sqlite_locked(self):
        error = OperationalError("UPDATE product_variants ...", {}, Exception("database is locked"))
        assert is_concurrency_error(error)

    def test_postgres_serialization_failure(self):
        orig = Exception("could not serialize access")
        orig.sqlstate = "40001"
        assert is_concurrency_error(OperationalError("UPDATE ...", {}, orig))

    def test_integrity_error_is_not_a_conflict(self):
        assert not is_concurrency_error(IntegrityError("INSERT ...", {}, Exception("UNIQUE constraint failed")))

    def test_plain_exception(self):
        assert not is_concurrency_error(RuntimeError("database is locked"))


class TestIsUniqueViolation:

    def test_sqlite_column(self):
        error = IntegrityError("INSERT ...", {}, Exception("UNIQUE constraint failed: orders.order_number"))
        assert is_unique_violation(error, "orders.order_number")
        assert not is_unique_violation(error, "discounts.code")

    def test_postgres_constraint_name(self):
        orig = Exception('duplicate key value violates unique constraint "orders_order_number_key"')
        orig.sqlstate = "23505"
        assert is_unique_violation(IntegrityError("INSERT ...", {}, orig), "orders.order_number")

    def test_check_violation(self):
        orig = Exception('new row for relation "orders" violates check constraint on order_number')
        orig.sqlstate = "23514"
        assert not is_unique_violation(IntegrityError("INSERT ...", {}, orig), "orders.order_number")


class TestAtomicTransaction:

    @pytest.mark.asyncio
    async def test_commits_on_success(self, database):
        async with TransactionManager.atomic_transaction() as session:
            product = await ProductRepository.create(ProductDTO(name="Mate", slug="mate"), session)

        async with TransactionManager.atomic_transaction() as session:
            assert await ProductRepository.get_by_id(product.id, session) is not None

    @pytest.mark.asyncio
    async def test_rolls_back_on_error(self, database):
        created = {}
        with pytest.raises(InsufficientStockException):
            async with TransactionManager.atomic_transaction() as session:
                created['product'] = await ProductRepository.create(ProductDTO(name="Bombilla", slug="bombilla"), session)
                raise InsufficientStockException(1, 2, 0)

        async with TransactionManager.atomic_transaction() as session:
            assert await ProductRepository.get_by_id(created['product'].id, session) is None

    @pytest.mark.asyncio
    async def test_join_or_begin_reuses_session(self, database):
        async with TransactionManager.atomic_transaction() as outer:
            async with TransactionManager.join_or_begin(outer) as inner:
                assert inner is outer


class TestWithRetry:

    @pytest.mark.asyncio
    async def test_retries_conflicts_then_succeeds(self):
        func = AsyncMock(side_effect=[ConcurrencyConflictException("test", "locked"), "ok"])
        func.__name__ = "func"

        result = await TransactionManager.with_retry(max_retries=2, delay_base=0.001)(func)()

        assert result == "ok"
        assert func.await_count == 2

    @pytest.mark.asyncio
    async def test_retries_order_number_collisions(self):
        collision = IntegrityError("INSERT INTO orders ...", {}, Exception("UNIQUE constraint failed: orders.order_number"))
        func = AsyncMock(side_effect=[collision, "ok"])
        func.__name__ = "func"

        retrying = TransactionManager.with_retry(max_retries=1, delay_base=0.001, unique_columns=("orders.order_number",))
        assert await retrying(func)() == "ok"
        assert func.await_count == 2

    @pytest.mark.asyncio
    async def test_other_integrity_errors_not_retried(self):
        violation = IntegrityError("INSERT INTO orders ...", {}, Exception("FOREIGN KEY constraint failed"))
        func = AsyncMock(side_effect=violation)
        func.__name__ = "func"

        retrying = TransactionManager.with_retry(max_retries=3, delay_base=0.001, unique_columns=("orders.order_number",))
        with pytest.raises(IntegrityError):
            await retrying(func)()

        assert func.await_count == 1

    @pytest.mark.asyncio
    async def test_unique_violation_without_unique_columns_not_retried(self):
        collision = IntegrityError("INSERT INTO orders ...", {}, Exception("UNIQUE constraint failed: orders.order_number"))
        func = AsyncMock(side_effect=collision)
        func.__name__ = "func"

        with pytest.raises(IntegrityError):
            await TransactionManager.with_retry(max_retries=3, delay_base=0.001)(func)()

        assert func.await_count == 1

    @pytest.mark.asyncio
    async def test_gives_up_after_max_retries(self):
        func = AsyncMock(side_effect=ConcurrencyConflictException("test", "locked"))
        func.__name__ = "func"

        with pytest.raises(ConcurrencyConflictException):
            await TransactionManager.with_retry(max_retries=2, delay_base=0.001)(func)()

        assert func.await_count == 3

    @pytest.mark.asyncio
    async def test_business_errors_not_retried(self):
        func = AsyncMock(side_effect=InsufficientStockException(1, 2, 0))
        func.__name__ = "func"

        with pytest.raises(InsufficientStockException):
            await TransactionManager.with_retry(max_retries=3, delay_base=0.001)(func)()

        assert func.await_count == 1
