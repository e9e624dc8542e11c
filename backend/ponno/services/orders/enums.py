"""
Order status enum and state machine transition rules.

The order lifecycle is a small directed graph:

    booked -> confirmed -> picked -> delivered
       \\           \\          \\
        +-----------+----------+--> cancelled

``delivered`` and ``cancelled`` are terminal states with no outgoing
transitions.
"""

from enum import Enum
from typing import Dict, FrozenSet


class OrderStatus(str, Enum):
    """Order lifecycle status."""

    BOOKED = "booked"
    CONFIRMED = "confirmed"
    PICKED = "picked"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"


ORDER_STATUS_TRANSITIONS: Dict[OrderStatus, FrozenSet[OrderStatus]] = {
    OrderStatus.BOOKED: frozenset({OrderStatus.CONFIRMED, OrderStatus.CANCELLED}),
    OrderStatus.CONFIRMED: frozenset({OrderStatus.PICKED, OrderStatus.CANCELLED}),
    OrderStatus.PICKED: frozenset({OrderStatus.DELIVERED, OrderStatus.CANCELLED}),
    OrderStatus.DELIVERED: frozenset(),
    OrderStatus.CANCELLED: frozenset(),
}


def get_allowed_order_transitions(current_status: OrderStatus) -> FrozenSet[OrderStatus]:
    """
    Get the statuses reachable in one step from the current status.

    Args:
        current_status: Current order status

    Returns:
        Set of allowed target statuses, empty for terminal states
    """
    return ORDER_STATUS_TRANSITIONS.get(current_status, frozenset())


def validate_order_status_transition(
    current_status: OrderStatus,
    target_status: OrderStatus,
) -> bool:
    """
    Check whether a transition is an edge of the lifecycle graph.

    Args:
        current_status: Current order status
        target_status: Requested order status

    Returns:
        True if the transition is allowed
    """
    return target_status in get_allowed_order_transitions(current_status)
