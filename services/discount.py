import logging
from datetime import datetime
from decimal import Decimal, ROUND_HALF_UP

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from enums.discount_type import DiscountType
from exceptions.discount import (
    DiscountNotFoundException,
    DiscountNotActiveException,
    DiscountNotYetActiveException,
    DiscountExpiredException,
    DiscountUsageLimitReachedException,
    InvalidDiscountException,
)
from models.discount import DiscountDTO, ValidatedDiscountDTO
from repositories.discount import DiscountRepository
from utils.transaction_manager import TransactionManager

logger = logging.getLogger(__name__)

CENT = Decimal("0.01")


class DiscountService:

    @staticmethod
    def normalize_code(code: str) -> str:
        return code.strip().upper()

    @staticmethod
    def check_validity(discount: DiscountDTO, now: datetime | None = None) -> None:
        """
        Validity is a pure function of the clock and the usage counter.

        Checks run in a fixed order and the first failing one is raised.
        """
        now = now or datetime.now()
        if not discount.is_active:
            raise DiscountNotActiveException(discount.code)
        if discount.start_date is not None and now < discount.start_date:
            raise DiscountNotYetActiveException(discount.code)
        if discount.end_date is not None and now > discount.end_date:
            raise DiscountExpiredException(discount.code)
        if discount.usage_limit is not None and discount.times_used >= discount.usage_limit:
            raise DiscountUsageLimitReachedException(discount.code)

    @staticmethod
    async def get_valid_discount(code: str, session: AsyncSession) -> DiscountDTO:
        """Internal variant of validate_discount_code that keeps the usage counter."""
        normalized = DiscountService.normalize_code(code)
        discount = await DiscountRepository.get_by_code(normalized, session)
        if discount is None:
            raise DiscountNotFoundException(normalized)
        DiscountService.check_validity(discount)
        return discount

    @staticmethod
    async def validate_discount_code(code: str, session: AsyncSession | None = None) -> ValidatedDiscountDTO:
        """
        Validate a customer supplied discount code.

        Raises:
            DiscountNotFoundException: unknown code
            DiscountNotActiveException / DiscountNotYetActiveException /
            DiscountExpiredException / DiscountUsageLimitReachedException
        """
        async with TransactionManager.join_or_begin(session) as session:
            discount = await DiscountService.get_valid_discount(code, session)
            return ValidatedDiscountDTO.model_validate(discount.model_dump(exclude={'times_used'}))

    @staticmethod
    def apply_discount(total_amount: Decimal, discount: DiscountDTO | ValidatedDiscountDTO) -> Decimal:
        """
        PERCENTAGE: total * (1 - value/100); FIXED: total - value, floored at zero.
        Result is rounded half-up to cents.
        """
        total_amount = Decimal(total_amount)
        value = Decimal(discount.value)
        if discount.type == DiscountType.PERCENTAGE:
            new_total = total_amount * (Decimal(1) - value / Decimal(100))
        else:
            new_total = max(Decimal(0), total_amount - value)
        return new_total.quantize(CENT, rounding=ROUND_HALF_UP)

    @staticmethod
    async def redeem(discount: DiscountDTO, session: AsyncSession) -> None:
        """
        Count one use of the discount inside the caller's transaction.

        The increment only happens while the usage limit allows it, so two
        concurrent checkouts cannot both take the last use.
        """
        if not await DiscountRepository.increment_usage_if_available(discount.id, session):
            raise DiscountUsageLimitReachedException(discount.code)
        logger.info(f"Discount {discount.code} redeemed")

    @staticmethod
    def _check_fields(discount_dto: DiscountDTO) -> None:
        code = discount_dto.code
        if not code:
            raise InvalidDiscountException(code, "code must not be empty")
        if discount_dto.type is None or discount_dto.value is None:
            raise InvalidDiscountException(code, "type and value are required")
        if discount_dto.value <= 0:
            raise InvalidDiscountException(code, "value must be greater than 0")
        if discount_dto.type == DiscountType.PERCENTAGE and discount_dto.value > 100:
            raise InvalidDiscountException(code, "percentage cannot exceed 100")
        if discount_dto.start_date and discount_dto.end_date and discount_dto.end_date <= discount_dto.start_date:
            raise InvalidDiscountException(code, "end date must be after start date")
        if discount_dto.usage_limit is not None and discount_dto.usage_limit <= 0:
            raise InvalidDiscountException(code, "usage limit must be greater than 0")

    @staticmethod
    async def create_discount(discount_dto: DiscountDTO, session: AsyncSession | None = None) -> DiscountDTO:
        """
        Raises:
            InvalidDiscountException: value out of range, inverted dates or duplicate code
        """
        code = DiscountService.normalize_code(discount_dto.code or "")
        to_create = discount_dto.model_copy(update={'code': code, 'times_used': 0})
        DiscountService._check_fields(to_create)
        try:
            async with TransactionManager.join_or_begin(session) as session:
                if await DiscountRepository.get_by_code(code, session) is not None:
                    raise InvalidDiscountException(code, "a discount with this code already exists")
                created = await DiscountRepository.create(to_create, session)
        except IntegrityError as e:
            raise InvalidDiscountException(code, "a discount with this code already exists") from e
        logger.info(f"Discount {code} created ({created.type.value} {created.value})")
        return created

    @staticmethod
    async def find_all_discounts() -> list[DiscountDTO]:
        """Admin listing, newest first."""
        async with TransactionManager.atomic_transaction() as session:
            return await DiscountRepository.get_all(session)

    @staticmethod
    async def find_discount(discount_id: int, session: AsyncSession | None = None) -> DiscountDTO:
        async with TransactionManager.join_or_begin(session) as session:
            discount = await DiscountRepository.get_by_id(discount_id, session)
        if discount is None:
            raise DiscountNotFoundException(discount_id=discount_id)
        return discount

    @staticmethod
    async def update_discount(discount_id: int, changes: DiscountDTO) -> DiscountDTO:
        """
        Apply the fields explicitly set on ``changes``; the rest stay as they are.

        The merged discount is validated like a new one. ``times_used`` is owned
        by checkout and cannot be changed here, and the usage limit cannot drop
        below the uses already counted.

        Raises:
            DiscountNotFoundException: unknown id
            InvalidDiscountException: merged values invalid or code taken by another discount
        """
        values = changes.model_dump(exclude_unset=True, exclude={'id', 'times_used'})
        try:
            async with TransactionManager.atomic_transaction() as session:
                current = await DiscountService.find_discount(discount_id, session)
                merged = current.model_copy(update=values)
                DiscountService._check_fields(merged)
                if merged.usage_limit is not None and merged.usage_limit < current.times_used:
                    raise InvalidDiscountException(merged.code, "usage limit is below the uses already counted")
                if merged.code != current.code:
                    taken = await DiscountRepository.get_by_code(merged.code, session)
                    if taken is not None:
                        raise InvalidDiscountException(merged.code, "a discount with this code already exists")
                if values:
                    await DiscountRepository.update(discount_id, values, session)
                updated = await DiscountRepository.get_by_id(discount_id, session)
        except IntegrityError as e:
            raise InvalidDiscountException(values.get('code'), "a discount with this code already exists") from e
        logger.info(f"Discount {updated.code} updated ({', '.join(values) or 'no changes'})")
        return updated

    @staticmethod
    async def remove_discount(discount_id: int) -> DiscountDTO:
        """
        Delete a discount. Orders that used it keep their totals and lose the
        reference (applied_discount_id becomes NULL).
        """
        async with TransactionManager.atomic_transaction() as session:
            discount = await DiscountService.find_discount(discount_id, session)
            await DiscountRepository.delete(discount_id, session)
        logger.info(f"Discount {discount.code} removed")
        return discount
