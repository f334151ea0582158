import logging
import uuid
from datetime import datetime, timedelta

from sqlalchemy.ext.asyncio import AsyncSession

import config
from enums.reservation_status import ReservationStatus
from exceptions.inventory import (
    InvalidQuantityException,
    ReservationNotFoundException,
    ReservationAlreadyResolvedException,
    ReservationExpiredException,
)
from models.inventory_log import ReservationEntryDTO, StockChangeDTO
from models.reservedStock import StockReservationDTO, StockReservationLineDTO
from repositories.reservedStock import StockReservationRepository
from services.inventory import InventoryService
from utils.transaction_manager import TransactionManager

logger = logging.getLogger(__name__)


class StockReservationService:
    """
    Short-lived stock holds between "checkout started" and "payment confirmed".

    The stock itself is moved by the inventory ledger; the stock_reservations
    rows only record each hold and how it was resolved, so that every
    reservation is confirmed or released exactly once.
    """

    @staticmethod
    def _to_dto(lines: list[StockReservationLineDTO]) -> StockReservationDTO:
        first = lines[0]
        return StockReservationDTO(
            reservation_id=first.reservation_id,
            status=first.status,
            reserved_at=first.reserved_at,
            expires_at=first.expires_at,
            lines=lines,
        )

    @staticmethod
    async def _load(reservation_id: str, session: AsyncSession) -> list[StockReservationLineDTO]:
        lines = await StockReservationRepository.get_by_reservation_id(reservation_id, session)
        if not lines:
            raise ReservationNotFoundException(reservation_id)
        return lines

    @staticmethod
    async def _resolve(reservation_id: str, lines: list[StockReservationLineDTO], new_status: ReservationStatus,
                       session: AsyncSession) -> None:
        """ACTIVE -> new_status, or ReservationAlreadyResolved if someone else got there first."""
        if lines[0].status != ReservationStatus.ACTIVE:
            raise ReservationAlreadyResolvedException(reservation_id, lines[0].status.value)
        changed = await StockReservationRepository.resolve(reservation_id, new_status, datetime.now(), session)
        if changed == 0:
            current = await StockReservationRepository.get_by_reservation_id(reservation_id, session)
            raise ReservationAlreadyResolvedException(reservation_id, current[0].status.value)

    @staticmethod
    async def reserve(items: list[StockChangeDTO], ttl_minutes: int | None = None,
                      session: AsyncSession | None = None) -> StockReservationDTO:
        """
        Hold stock for every line under one new reservation id.

        All lines are held or none are (InsufficientStock names the first
        short variant).

        Raises:
            InvalidQuantityException: no items to hold
        """
        if not items:
            raise InvalidQuantityException(None, 0, "A reservation must hold at least one item")
        ttl_minutes = ttl_minutes or config.RESERVATION_TTL_MINUTES
        reservation_id = uuid.uuid4().hex
        reserved_at = datetime.now()
        expires_at = reserved_at + timedelta(minutes=ttl_minutes)

        async with TransactionManager.join_or_begin(session) as session:
            await InventoryService.reserve_stock(
                [ReservationEntryDTO(variant_id=item.variant_id, quantity=item.quantity, reservation_id=reservation_id)
                 for item in items],
                session,
            )
            lines = await StockReservationRepository.create_lines(
                [StockReservationLineDTO(
                    reservation_id=reservation_id,
                    variant_id=item.variant_id,
                    quantity=item.quantity,
                    status=ReservationStatus.ACTIVE,
                    reserved_at=reserved_at,
                    expires_at=expires_at,
                ) for item in items],
                session,
            )
            logger.info(f"Stock reservation {reservation_id} created ({len(lines)} line(s), expires {expires_at:%H:%M:%S})")
            return StockReservationService._to_dto(lines)

    @staticmethod
    async def release(reservation_id: str, session: AsyncSession | None = None) -> StockReservationDTO:
        """Give the held stock back. Succeeds at most once per reservation."""
        async with TransactionManager.join_or_begin(session) as session:
            lines = await StockReservationService._load(reservation_id, session)
            await StockReservationService._resolve(reservation_id, lines, ReservationStatus.RELEASED, session)
            await InventoryService.release_stock(
                [ReservationEntryDTO(variant_id=line.variant_id, quantity=line.quantity, reservation_id=reservation_id)
                 for line in lines],
                session,
            )
            logger.info(f"Stock reservation {reservation_id} released")
            return StockReservationService._to_dto(await StockReservationRepository.get_by_reservation_id(reservation_id, session))

    @staticmethod
    async def confirm(reservation_id: str, reason: str | None = None,
                      session: AsyncSession | None = None) -> StockReservationDTO:
        """
        Turn the hold into a sale; the stock stays decremented.

        Booked as a release of the hold followed by a SALE, so the ledger shows
        the hold ending and the sale happening as two paired entries with a
        net stock change of zero.

        Raises:
            ReservationExpiredException: the hold expired, release it instead
        """
        async with TransactionManager.join_or_begin(session) as session:
            lines = await StockReservationService._load(reservation_id, session)
            if lines[0].status == ReservationStatus.ACTIVE and lines[0].expires_at <= datetime.now():
                raise ReservationExpiredException(reservation_id, lines[0].expires_at)
            await StockReservationService._resolve(reservation_id, lines, ReservationStatus.CONFIRMED, session)

            await InventoryService.release_stock(
                [ReservationEntryDTO(variant_id=line.variant_id, quantity=line.quantity, reservation_id=reservation_id)
                 for line in lines],
                session,
            )
            await InventoryService.confirm_stock_reduction(
                [StockChangeDTO(variant_id=line.variant_id, quantity=line.quantity,
                                reason=reason or f"Order fulfilled (reservation {reservation_id})")
                 for line in lines],
                session,
            )
            logger.info(f"Stock reservation {reservation_id} confirmed")
            return StockReservationService._to_dto(await StockReservationRepository.get_by_reservation_id(reservation_id, session))

    @staticmethod
    async def get(reservation_id: str, session: AsyncSession | None = None) -> StockReservationDTO:
        async with TransactionManager.join_or_begin(session) as session:
            return StockReservationService._to_dto(await StockReservationService._load(reservation_id, session))

    @staticmethod
    async def release_expired(now: datetime | None = None) -> int:
        """
        Release every ACTIVE reservation whose expiry has passed.

        Each reservation is released in its own transaction, so one failure
        does not keep the others held. Returns the number released.
        """
        now = now or datetime.now()
        async with TransactionManager.atomic_transaction() as session:
            expired_ids = await StockReservationRepository.get_expired_reservation_ids(now, session)

        if not expired_ids:
            logger.debug("No expired stock reservations found")
            return 0

        released = 0
        for reservation_id in expired_ids:
            try:
                await StockReservationService.release(reservation_id)
                released += 1
            except ReservationAlreadyResolvedException:
                # Confirmed or released by a concurrent caller since the scan
                logger.info(f"Expired reservation {reservation_id} was resolved concurrently, skipping")
        logger.info(f"Released {released} expired stock reservation(s)")
        return released
