"""Order state machine with transition validation.

The machine is pure: it computes the next status and never touches the order
record or storage. Role and ownership are checked by the authorizer before a
transition is computed.
"""

from typing import Set

from restaurant_orders.core.logging import get_logger
from restaurant_orders.services.auth.identity import IdentityContext
from restaurant_orders.services.orders.enums import (
    OrderStatus,
    get_allowed_order_transitions,
    validate_order_status_transition,
)
from restaurant_orders.services.orders.errors import IllegalStatusTransition

logger = get_logger(__name__)


class OrderStateMachine:
    """State machine for order status transitions."""

    def transition(
        self,
        current: OrderStatus,
        requested: OrderStatus,
        identity: IdentityContext,
    ) -> OrderStatus:
        """Compute the next status for a requested change.

        A request for the current status is an accepted no-op, terminal
        statuses included.

        Args:
            current: Current order status
            requested: Requested status
            identity: Identity already authorized for the update

        Returns:
            The new status

        Raises:
            IllegalStatusTransition: If the change is not in the graph
        """
        if requested == current:
            logger.debug(
                "Status unchanged",
                status=current.value,
                subject_id=identity.subject_id,
            )
            return current

        if not validate_order_status_transition(current, requested):
            allowed = sorted(s.value for s in self.allowed_transitions(current))
            logger.warning(
                "Illegal status transition",
                current_status=current.value,
                requested_status=requested.value,
                allowed_transitions=allowed,
                subject_id=identity.subject_id,
            )
            raise IllegalStatusTransition(
                f"Cannot transition from {current.value} to {requested.value}",
                current_status=current,
                requested_status=requested,
                allowed_transitions=allowed,
            )

        logger.info(
            "Status transition accepted",
            from_status=current.value,
            to_status=requested.value,
            subject_id=identity.subject_id,
        )
        return requested

    def allowed_transitions(self, current: OrderStatus) -> Set[OrderStatus]:
        return get_allowed_order_transitions(current)

    def is_terminal(self, status: OrderStatus) -> bool:
        return status.is_terminal()
