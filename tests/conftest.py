"""
Pytest configuration and fixtures for tests.

This file is automatically loaded by pytest and provides shared fixtures
and configuration for all tests.

Database tests run against a throw-away SQLite file per test (not
:memory:), so concurrent sessions in one test really share state.
"""

import os
import sys
import tempfile
from datetime import datetime, timedelta
from decimal import Decimal

import pytest
import pytest_asyncio

# Set required environment variables before importing app modules
os.environ.setdefault('RUNTIME_ENVIRONMENT', 'TEST')
os.environ.setdefault('DB_URL', 'sqlite+aiosqlite:///:memory:')
os.environ.setdefault('DB_BUSY_TIMEOUT_SECONDS', '5')
os.environ.setdefault('TRANSACTION_RETRY_DELAY_BASE', '0.01')
os.environ.setdefault('LOG_DIR', os.path.join(tempfile.gettempdir(), 'shop-test-logs'))
os.environ.setdefault('CURRENCY', 'ARS')

# Add parent directory to Python path so tests can import modules
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

import db
from enums.discount_type import DiscountType
from models.address import AddressDTO
from models.cartItem import CartItemDTO
from models.discount import DiscountDTO
from models.inventory_log import InventoryLogDTO
from models.product import ProductDTO
from models.product_variant import ProductVariantDTO
from repositories.address import AddressRepository
from repositories.cart import CartRepository
from repositories.cartItem import CartItemRepository
from repositories.discount import DiscountRepository
from repositories.inventory_log import InventoryLogRepository
from repositories.product_variant import ProductRepository, ProductVariantRepository
from utils.transaction_manager import TransactionManager


# ============================================================================
# Database Fixtures
# ============================================================================

@pytest_asyncio.fixture
async def database(tmp_path):
    """Fresh file-backed SQLite database with all tables."""
    engine = db.configure_engine(f"sqlite+aiosqlite:///{tmp_path / 'shop.db'}")
    await db.create_db_and_tables()

    yield engine

    # Cleanup
    await engine.dispose()


class ShopSeeder:
    """Creates test data, each call in its own committed transaction."""

    def __init__(self):
        self._counter = 0

    def _next(self) -> int:
        self._counter += 1
        return self._counter

    async def variant(self, stock: int = 10, price: str | Decimal = "100.00", name: str | None = None) -> ProductVariantDTO:
        n = self._next()
        async with TransactionManager.atomic_transaction() as session:
            product = await ProductRepository.create(ProductDTO(name=f"Product {n}", slug=f"product-{n}"), session)
            return await ProductVariantRepository.create(ProductVariantDTO(
                product_id=product.id,
                sku=f"SKU-{n:04d}",
                name=name or f"Variant {n}",
                price=Decimal(price),
                stock_quantity=stock,
            ), session)

    async def address(self, user_id: int) -> AddressDTO:
        async with TransactionManager.atomic_transaction() as session:
            return await AddressRepository.create(AddressDTO(
                user_id=user_id,
                street="Av. Corrientes",
                street_number="1234",
                city="Buenos Aires",
                state="CABA",
                postal_code="C1043",
                country="AR",
            ), session)

    async def cart_item(self, user_id: int, variant: ProductVariantDTO, quantity: int,
                        price: str | Decimal | None = None) -> CartItemDTO:
        """Put a line straight into the cart (bypasses the cart stock check)."""
        async with TransactionManager.atomic_transaction() as session:
            cart = await CartRepository.get_or_create(user_id, session)
            return await CartItemRepository.create(CartItemDTO(
                cart_id=cart.id,
                variant_id=variant.id,
                quantity=quantity,
                price_at_addition=Decimal(price) if price is not None else variant.price,
            ), session)

    async def discount(self, code: str = "SAVE10", type: DiscountType = DiscountType.PERCENTAGE,
                       value: str = "10", **kwargs) -> DiscountDTO:
        async with TransactionManager.atomic_transaction() as session:
            return await DiscountRepository.create(DiscountDTO(
                code=code, type=type, value=Decimal(value), times_used=kwargs.pop('times_used', 0), **kwargs
            ), session)

    async def stock_of(self, variant_id: int) -> int:
        async with TransactionManager.atomic_transaction() as session:
            variant = await ProductVariantRepository.get_by_id(variant_id, session)
            return variant.stock_quantity

    async def ledger(self, variant_id: int) -> list[InventoryLogDTO]:
        """Ledger entries of a variant, oldest first."""
        async with TransactionManager.atomic_transaction() as session:
            entries = await InventoryLogRepository.get_by_variant_id(variant_id, session, limit=1000)
        return list(reversed(entries))

    async def discount_by_code(self, code: str) -> DiscountDTO:
        async with TransactionManager.atomic_transaction() as session:
            return await DiscountRepository.get_by_code(code, session)


@pytest_asyncio.fixture
async def seed(database):
    """Seeder bound to the per-test database."""
    return ShopSeeder()


@pytest.fixture
def yesterday():
    return datetime.now() - timedelta(days=1)


@pytest.fixture
def tomorrow():
    return datetime.now() + timedelta(days=1)
