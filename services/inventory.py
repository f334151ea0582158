import logging

from sqlalchemy.ext.asyncio import AsyncSession

import config
from enums.inventory_change_type import InventoryChangeType
from exceptions.inventory import (
    VariantNotFoundException,
    InsufficientStockException,
    InvalidQuantityException,
    ProductNotFoundException,
)
from models.inventory_log import InventoryLogDTO, StockChangeDTO, ReservationEntryDTO
from models.product_variant import ProductVariantDTO, LowStockAlertDTO, ProductInventoryDTO
from repositories.inventory_log import InventoryLogRepository
from repositories.product_variant import ProductVariantRepository, ProductRepository
from utils.transaction_manager import TransactionManager

logger = logging.getLogger(__name__)


class InventoryService:
    """
    Inventory ledger: per-variant stock counters plus the append-only change log.

    Every stock mutation writes exactly one InventoryLog row with the signed
    delta, in the same transaction. Each operation takes an optional
    ``session``: when given, the work joins the caller's transaction (order
    placement, cancellation, reservations); otherwise it runs in its own
    atomic transaction. A batch either applies completely or not at all.
    """

    @staticmethod
    def _validate_quantity(variant_id: int, quantity: int) -> None:
        if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity <= 0:
            raise InvalidQuantityException(variant_id, quantity)

    @staticmethod
    async def _get_variant(variant_id: int, session: AsyncSession) -> ProductVariantDTO:
        variant = await ProductVariantRepository.get_by_id(variant_id, session, for_update=True)
        if variant is None:
            raise VariantNotFoundException(variant_id)
        return variant

    @staticmethod
    async def _decrement(variant_id: int, quantity: int, change_type: InventoryChangeType, reason: str,
                         session: AsyncSession) -> InventoryLogDTO:
        """Re-read, conditionally decrement and log. Raises InsufficientStock when short."""
        InventoryService._validate_quantity(variant_id, quantity)
        variant = await InventoryService._get_variant(variant_id, session)
        if quantity > variant.stock_quantity:
            raise InsufficientStockException(variant_id, quantity, variant.stock_quantity, variant.name)

        if not await ProductVariantRepository.decrement_if_available(variant_id, quantity, session):
            # Another writer took the stock between the read and the update
            current = await ProductVariantRepository.get_by_id(variant_id, session)
            available = current.stock_quantity if current else 0
            raise InsufficientStockException(variant_id, quantity, available, variant.name)

        return await InventoryLogRepository.create(variant_id, change_type, -quantity, reason, session)

    @staticmethod
    async def _increment(variant_id: int, quantity: int, change_type: InventoryChangeType, reason: str,
                         session: AsyncSession) -> InventoryLogDTO:
        InventoryService._validate_quantity(variant_id, quantity)
        await InventoryService._get_variant(variant_id, session)
        await ProductVariantRepository.increment(variant_id, quantity, session)
        return await InventoryLogRepository.create(variant_id, change_type, quantity, reason, session)

    @staticmethod
    async def check_stock(variant_id: int, quantity: int, session: AsyncSession | None = None) -> bool:
        """True if the variant currently holds at least ``quantity`` units. Read only; 0 is always available."""
        if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity < 0:
            raise InvalidQuantityException(variant_id, quantity, "Quantity must not be negative")
        async with TransactionManager.join_or_begin(session) as session:
            variant = await ProductVariantRepository.get_by_id(variant_id, session)
            if variant is None:
                raise VariantNotFoundException(variant_id)
            return quantity <= variant.stock_quantity

    @staticmethod
    async def reserve_stock(reservations: list[ReservationEntryDTO],
                            session: AsyncSession | None = None) -> list[InventoryLogDTO]:
        """
        Hold stock for a checkout in progress.

        Each line is decremented and logged as a negative ADJUSTMENT that
        references its reservation id.

        Raises:
            VariantNotFoundException: unknown variant
            InsufficientStockException: a line asks for more than is in stock
        """
        async with TransactionManager.join_or_begin(session) as session:
            entries = []
            for reservation in reservations:
                entries.append(await InventoryService._decrement(
                    reservation.variant_id,
                    reservation.quantity,
                    InventoryChangeType.ADJUSTMENT,
                    f"Stock reserved for checkout (ID: {reservation.reservation_id})",
                    session,
                ))
            logger.info(f"Reserved stock for {len(entries)} line(s): "
                        f"{', '.join(f'{r.variant_id}x{r.quantity}' for r in reservations)}")
            return entries

    @staticmethod
    async def release_stock(reservations: list[ReservationEntryDTO],
                            session: AsyncSession | None = None) -> list[InventoryLogDTO]:
        """
        Give held stock back (positive ADJUSTMENT per line).

        This does not know whether the reservation was released before; calling
        it twice credits the stock twice. StockReservationService.release is
        the exactly-once entry point.
        """
        async with TransactionManager.join_or_begin(session) as session:
            entries = []
            for reservation in reservations:
                entries.append(await InventoryService._increment(
                    reservation.variant_id,
                    reservation.quantity,
                    InventoryChangeType.ADJUSTMENT,
                    f"Stock reservation released (ID: {reservation.reservation_id})",
                    session,
                ))
            logger.info(f"Released stock for {len(entries)} line(s)")
            return entries

    @staticmethod
    async def confirm_stock_reduction(updates: list[StockChangeDTO],
                                      session: AsyncSession | None = None) -> list[InventoryLogDTO]:
        """Final sale: re-verify, decrement and write a SALE entry per line."""
        async with TransactionManager.join_or_begin(session) as session:
            entries = []
            for update in updates:
                entries.append(await InventoryService._decrement(
                    update.variant_id,
                    update.quantity,
                    InventoryChangeType.SALE,
                    update.reason or "Order fulfilled",
                    session,
                ))
            return entries

    @staticmethod
    async def restock(updates: list[StockChangeDTO], session: AsyncSession | None = None) -> list[InventoryLogDTO]:
        async with TransactionManager.join_or_begin(session) as session:
            entries = []
            for update in updates:
                entries.append(await InventoryService._increment(
                    update.variant_id,
                    update.quantity,
                    InventoryChangeType.RESTOCK,
                    update.reason or "Inventory restocked",
                    session,
                ))
            logger.info(f"Restocked {len(entries)} variant(s)")
            return entries

    @staticmethod
    async def return_stock(updates: list[StockChangeDTO], session: AsyncSession | None = None) -> list[InventoryLogDTO]:
        """Stock coming back from a cancelled or returned order (RETURN entries)."""
        async with TransactionManager.join_or_begin(session) as session:
            entries = []
            for update in updates:
                entries.append(await InventoryService._increment(
                    update.variant_id,
                    update.quantity,
                    InventoryChangeType.RETURN,
                    update.reason or "Order cancelled",
                    session,
                ))
            return entries

    @staticmethod
    async def adjust_stock(updates: list[StockChangeDTO], session: AsyncSession | None = None) -> list[InventoryLogDTO]:
        """
        Administrative override: set the stock to an absolute value.

        ``quantity`` is the new stock level, not a delta. The ledger entry
        records ``new - old``.
        """
        async with TransactionManager.join_or_begin(session) as session:
            entries = []
            for update in updates:
                if isinstance(update.quantity, bool) or update.quantity < 0:
                    raise InvalidQuantityException(update.variant_id, update.quantity,
                                                   "Stock quantity cannot be negative")
                variant = await InventoryService._get_variant(update.variant_id, session)
                old_quantity = variant.stock_quantity
                await ProductVariantRepository.set_quantity(update.variant_id, update.quantity, session)
                entries.append(await InventoryLogRepository.create(
                    update.variant_id,
                    InventoryChangeType.ADJUSTMENT,
                    update.quantity - old_quantity,
                    update.reason or "Manual stock adjustment",
                    session,
                ))
                logger.info(f"Stock of variant {update.variant_id} adjusted {old_quantity} -> {update.quantity}")
            return entries

    @staticmethod
    async def get_low_stock_alerts(threshold: int | None = None,
                                   session: AsyncSession | None = None) -> list[LowStockAlertDTO]:
        threshold = threshold if threshold is not None else config.LOW_STOCK_THRESHOLD
        async with TransactionManager.join_or_begin(session) as session:
            return await ProductVariantRepository.get_low_stock(threshold, session)

    @staticmethod
    async def get_inventory_logs(variant_id: int, limit: int = 50,
                                 session: AsyncSession | None = None) -> list[InventoryLogDTO]:
        """Ledger of one variant, newest first."""
        async with TransactionManager.join_or_begin(session) as session:
            if await ProductVariantRepository.get_by_id(variant_id, session) is None:
                raise VariantNotFoundException(variant_id)
            return await InventoryLogRepository.get_by_variant_id(variant_id, session, limit)

    @staticmethod
    async def get_product_inventory(product_id: int, session: AsyncSession | None = None) -> ProductInventoryDTO:
        async with TransactionManager.join_or_begin(session) as session:
            if await ProductRepository.get_by_id(product_id, session) is None:
                raise ProductNotFoundException(product_id)
            variants = await ProductVariantRepository.get_by_product_id(product_id, session)
            threshold = config.LOW_STOCK_THRESHOLD
            return ProductInventoryDTO(
                product_id=product_id,
                total_variants=len(variants),
                total_stock=sum(v.stock_quantity for v in variants),
                low_stock_variants=len([v for v in variants if 0 < v.stock_quantity <= threshold]),
                out_of_stock_variants=len([v for v in variants if v.stock_quantity == 0]),
                variants=variants,
            )
