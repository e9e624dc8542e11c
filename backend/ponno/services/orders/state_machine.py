"""Order state machine with transition validation.

This module implements the OrderStateMachine class that checks requested status
changes against the lifecycle graph in ``enums`` and produces the patch applied
to an order. Only ``status`` and, optionally, ``agent_notes`` change on a
transition; prices, quantity and commission are never recomputed.
"""

from typing import Any, Dict, Optional
from uuid import UUID

from ponno.core.exceptions import InvalidTransitionError
from ponno.core.logging import get_logger
from ponno.services.orders.enums import (
    OrderStatus,
    get_allowed_order_transitions,
    validate_order_status_transition,
)

logger = get_logger(__name__)


class OrderStateMachine:
    """State machine for order lifecycle transitions.

    The machine is stateless; every call inspects the order it is given.
    """

    def validate_transition(
        self,
        order: Any,
        target_status: OrderStatus,
        user_id: Optional[UUID] = None,
    ) -> bool:
        """Validate that ``target_status`` is reachable from the order's status.

        Args:
            order: Order instance to validate
            target_status: Desired target status
            user_id: User initiating the transition

        Returns:
            True if transition is valid

        Raises:
            InvalidTransitionError: If the transition is not an edge of the
                lifecycle graph
        """
        current_status = order.status

        logger.debug(
            "Validating state transition",
            order_id=str(order.id),
            current_status=current_status.value,
            target_status=target_status.value,
            user_id=str(user_id) if user_id else None,
        )

        if not validate_order_status_transition(current_status, target_status):
            allowed = get_allowed_order_transitions(current_status)
            raise InvalidTransitionError(
                f"Cannot transition from {current_status.value} to "
                f"{target_status.value}",
                current_status=current_status,
                target_status=target_status,
                order_id=str(order.id),
                allowed_transitions=sorted(s.value for s in allowed),
            )

        return True

    def build_transition_patch(
        self,
        order: Any,
        target_status: OrderStatus,
        agent_notes: Optional[str] = None,
        user_id: Optional[UUID] = None,
    ) -> Dict[str, Any]:
        """Validate a transition and return the column patch that applies it.

        Args:
            order: Order instance to transition
            target_status: Target status
            agent_notes: Optional notes replacing the order's agent notes
            user_id: User initiating the transition

        Returns:
            Mapping of column name to new value

        Raises:
            InvalidTransitionError: If the transition is not allowed
        """
        self.validate_transition(order, target_status, user_id)

        patch: Dict[str, Any] = {"status": target_status}
        if agent_notes:
            patch["agent_notes"] = agent_notes

        logger.info(
            "State transition validated",
            order_id=str(order.id),
            transition=f"{order.status.value}->{target_status.value}",
            user_id=str(user_id) if user_id else None,
        )

        return patch
