"""
Order State Machine for validating order status transitions and mapping them
to customer-facing tracking events.

Lifecycle:
    PENDING -> PROCESSING -> SHIPPED -> DELIVERED
    PENDING | PROCESSING -> CANCELLED
    PROCESSING | SHIPPED | DELIVERED -> REFUNDED

CANCELLED and REFUNDED are final.

Whether the transition table is enforced is a configuration choice
(config.ORDER_TRANSITION_POLICY): the permissive policy accepts any status
change and only logs the ones outside the table.
"""

import logging
from typing import Dict, List, Set

import config
from enums.order_status import OrderStatus
from enums.order_tracking_status import OrderTrackingStatus
from enums.order_transition_policy import OrderTransitionPolicy
from exceptions.order import InvalidOrderStateException

logger = logging.getLogger(__name__)


class OrderStatusTransition:
    """Represents a valid status transition with metadata"""

    def __init__(self, from_status: OrderStatus, to_status: OrderStatus, description: str = ""):
        self.from_status = from_status
        self.to_status = to_status
        self.description = description

    def __repr__(self):
        return f"{self.from_status.value} -> {self.to_status.value}"


class OrderStateMachine:
    """
    Finite state machine for order status transitions.
    """

    VALID_TRANSITIONS: List[OrderStatusTransition] = [
        # From PENDING
        OrderStatusTransition(OrderStatus.PENDING, OrderStatus.PROCESSING, "Order accepted for processing"),
        OrderStatusTransition(OrderStatus.PENDING, OrderStatus.CANCELLED, "Order cancelled before processing"),

        # From PROCESSING
        OrderStatusTransition(OrderStatus.PROCESSING, OrderStatus.SHIPPED, "Order handed to carrier"),
        OrderStatusTransition(OrderStatus.PROCESSING, OrderStatus.CANCELLED, "Order cancelled during processing"),
        OrderStatusTransition(OrderStatus.PROCESSING, OrderStatus.REFUNDED, "Order refunded before shipment"),

        # From SHIPPED
        OrderStatusTransition(OrderStatus.SHIPPED, OrderStatus.DELIVERED, "Order delivered to customer"),
        OrderStatusTransition(OrderStatus.SHIPPED, OrderStatus.REFUNDED, "Order refunded in transit"),

        # From DELIVERED
        OrderStatusTransition(OrderStatus.DELIVERED, OrderStatus.REFUNDED, "Order returned and refunded"),
    ]

    FINAL_STATUSES: Set[OrderStatus] = {OrderStatus.CANCELLED, OrderStatus.REFUNDED}

    CANCELLABLE_STATUSES: Set[OrderStatus] = {OrderStatus.PENDING, OrderStatus.PROCESSING}

    TRACKING_STATUS_MAP: Dict[OrderStatus, OrderTrackingStatus] = {
        OrderStatus.PENDING: OrderTrackingStatus.ORDER_PLACED,
        OrderStatus.PROCESSING: OrderTrackingStatus.PROCESSING,
        OrderStatus.SHIPPED: OrderTrackingStatus.SHIPPED,
        OrderStatus.DELIVERED: OrderTrackingStatus.DELIVERED,
        OrderStatus.CANCELLED: OrderTrackingStatus.EXCEPTION,
        OrderStatus.REFUNDED: OrderTrackingStatus.EXCEPTION,
    }

    # Build transition map for fast lookup
    _transition_map: Dict[OrderStatus, Set[OrderStatus]] = {}

    @classmethod
    def _build_transition_map(cls):
        """Build internal transition map"""
        if cls._transition_map:
            return  # Already built

        for transition in cls.VALID_TRANSITIONS:
            cls._transition_map.setdefault(transition.from_status, set()).add(transition.to_status)

    @classmethod
    def is_valid_transition(cls, from_status: OrderStatus, to_status: OrderStatus) -> bool:
        """
        Check if a status transition is valid according to the state machine.

        Staying in the same status is always valid (no-op).
        """
        cls._build_transition_map()

        if from_status == to_status:
            return True

        return to_status in cls._transition_map.get(from_status, set())

    @classmethod
    def get_valid_transitions(cls, from_status: OrderStatus) -> List[OrderStatus]:
        cls._build_transition_map()
        return sorted(cls._transition_map.get(from_status, set()), key=lambda s: s.value)

    @classmethod
    def is_final_status(cls, status: OrderStatus) -> bool:
        return status in cls.FINAL_STATUSES

    @classmethod
    def is_cancellable(cls, status: OrderStatus) -> bool:
        return status in cls.CANCELLABLE_STATUSES

    @classmethod
    def tracking_status_for(cls, status: OrderStatus) -> OrderTrackingStatus:
        """Tracking event recorded for an order entering ``status``; unmapped statuses fall back to ORDER_PLACED."""
        return cls.TRACKING_STATUS_MAP.get(status, OrderTrackingStatus.ORDER_PLACED)

    @classmethod
    def validate_transition(cls, order_number: str, from_status: OrderStatus, to_status: OrderStatus,
                            policy: OrderTransitionPolicy | None = None) -> None:
        """
        Validate a status transition under the configured policy.

        Raises:
            InvalidOrderStateException: strict policy and the transition is not in the table
        """
        policy = policy or config.ORDER_TRANSITION_POLICY

        if cls.is_valid_transition(from_status, to_status):
            logger.info(f"ORDER_STATUS_TRANSITION: Order {order_number} {from_status.value} -> {to_status.value}")
            return

        if policy == OrderTransitionPolicy.STRICT:
            logger.warning(f"Rejected status transition for order {order_number}: {from_status.value} -> {to_status.value}")
            raise InvalidOrderStateException(order_number, from_status.value, to_status.value)

        logger.warning(
            f"ORDER_STATUS_TRANSITION outside lifecycle accepted (permissive policy): "
            f"Order {order_number} {from_status.value} -> {to_status.value}"
        )
