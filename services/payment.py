import logging
from datetime import datetime
from typing import Protocol

from enums.order_status import OrderStatus
from enums.payment_method import PaymentMethod
from enums.payment_status import PaymentStatus
from exceptions.base import ConcurrencyConflictException
from exceptions.order import OrderNotFoundException, InvalidOrderStateException
from exceptions.payment import (
    PaymentNotFoundException,
    PaymentOwnershipException,
    PaymentAlreadyProcessedException,
    InvalidPaymentTransitionException,
)
from models.order import OrderDTO
from models.payment import PaymentDTO, PaymentOutcome, PaymentResultDTO
from repositories.order import OrderRepository
from repositories.payment import PaymentRepository
from utils.transaction_manager import TransactionManager

logger = logging.getLogger(__name__)


class PaymentGateway(Protocol):
    """Payment provider adapter (Mercado Pago, Rapipago, card processor, ...)."""

    async def charge(self, order: OrderDTO, payment_method: PaymentMethod) -> PaymentOutcome:
        ...


class PaymentService:

    # Statuses a provider update may move a payment to, by current status.
    # SUCCESSFUL is final; FAILED can still be approved late (e.g. cash paid
    # at the counter after the first attempt was declined).
    ALLOWED_UPDATES = {
        PaymentStatus.PENDING: {PaymentStatus.SUCCESSFUL, PaymentStatus.FAILED},
        PaymentStatus.FAILED: {PaymentStatus.SUCCESSFUL},
        PaymentStatus.SUCCESSFUL: set(),
    }

    @staticmethod
    async def _load_owned_order(user_id: int, order_number: str) -> OrderDTO:
        async with TransactionManager.atomic_transaction() as session:
            order = await OrderRepository.get_by_order_number(order_number, session)
        if order is None:
            raise OrderNotFoundException(order_number)
        if order.user_id != user_id:
            raise PaymentOwnershipException(order_number, user_id)
        if order.payment is None:
            raise PaymentNotFoundException(order_number)
        return order

    @staticmethod
    async def process_payment(user_id: int, order_number: str, gateway: PaymentGateway,
                              payment_method: PaymentMethod | None = None) -> PaymentResultDTO:
        """
        Charge an order through the payment gateway and record the outcome.

        The gateway call happens outside any database transaction. If the
        gateway raises, the payment is marked FAILED and the error propagates.

        Raises:
            OrderNotFoundException: unknown order
            PaymentOwnershipException: order belongs to another user
            PaymentNotFoundException: order has no payment record
            PaymentAlreadyProcessedException: payment already SUCCESSFUL
            InvalidOrderStateException: order was cancelled or refunded
        """
        order = await PaymentService._load_owned_order(user_id, order_number)
        payment = order.payment
        if payment.status == PaymentStatus.SUCCESSFUL:
            raise PaymentAlreadyProcessedException(order_number)
        if order.status in (OrderStatus.CANCELLED, OrderStatus.REFUNDED):
            raise InvalidOrderStateException(order_number, order.status.value, "PAID")

        payment_method = payment_method or payment.payment_method
        try:
            outcome = await gateway.charge(order, payment_method)
        except Exception as e:
            logger.error(f"Payment gateway error for order {order_number}: {e}")
            async with TransactionManager.atomic_transaction() as session:
                await PaymentRepository.record_outcome(
                    payment.id, PaymentOutcome(status=PaymentStatus.FAILED), session
                )
            raise

        async with TransactionManager.atomic_transaction() as session:
            await PaymentRepository.record_outcome(payment.id, outcome, session)
            updated = await PaymentRepository.get_by_order_id(order.id, session)

        logger.info(f"Payment for order {order_number} recorded as {outcome.status.value}")
        return PaymentResultDTO(
            success=outcome.status == PaymentStatus.SUCCESSFUL,
            payment=updated,
            message=outcome.message or "Payment processed",
        )

    @staticmethod
    async def get_payment_info(user_id: int, order_number: str) -> PaymentDTO:
        order = await PaymentService._load_owned_order(user_id, order_number)
        return order.payment

    @staticmethod
    async def apply_status_update(reference: str, status: PaymentStatus | str) -> PaymentDTO:
        """
        Apply an asynchronous status reported by the payment provider
        (webhook / callback), looked up by transaction id or provider reference.

        Redelivery of the current status is a no-op. The change is a
        compare-and-set on the status read, so two callbacks racing for the
        same payment cannot both apply.

        Raises:
            PaymentNotFoundException: no payment carries ``reference``
            PaymentAlreadyProcessedException: payment already SUCCESSFUL
            InvalidPaymentTransitionException: unknown status or a move back to PENDING
            ConcurrencyConflictException: another update changed the payment meanwhile
        """
        async with TransactionManager.atomic_transaction() as session:
            payment = await PaymentRepository.get_by_reference(reference, session)
            if payment is None:
                raise PaymentNotFoundException(reference=reference)

            try:
                status = PaymentStatus(status)
            except ValueError:
                raise InvalidPaymentTransitionException(reference, payment.status.value, str(status)) from None

            if status == payment.status:
                logger.info(f"Payment {reference} already {status.value}, update ignored")
                return payment

            if status not in PaymentService.ALLOWED_UPDATES[payment.status]:
                if payment.status == PaymentStatus.SUCCESSFUL:
                    order = await OrderRepository.get_by_id(payment.order_id, session)
                    raise PaymentAlreadyProcessedException(order.order_number)
                raise InvalidPaymentTransitionException(reference, payment.status.value, status.value)

            payment_date = datetime.now() if status == PaymentStatus.SUCCESSFUL else None
            if not await PaymentRepository.update_status_if(payment.id, payment.status, status, session,
                                                            payment_date=payment_date):
                raise ConcurrencyConflictException("payment status update", f"payment {reference} changed concurrently")

            order = await OrderRepository.get_by_id(payment.order_id, session)
            if status == PaymentStatus.SUCCESSFUL and order.status in (OrderStatus.CANCELLED, OrderStatus.REFUNDED):
                logger.warning(f"Payment {reference} approved for {order.status.value} order {order.order_number}")
            updated = await PaymentRepository.get_by_order_id(payment.order_id, session)

        logger.info(f"Payment {reference} of order {order.order_number}: "
                    f"{payment.status.value} -> {status.value}")
        return updated
