"""Order status enum and transition table for the order lifecycle.

Valid transitions:
- PENDIENTE -> PAGADO, CANCELADO
- PAGADO -> ENTREGADO, CANCELADO
- ENTREGADO -> (terminal state)
- CANCELADO -> (terminal state)
"""

from enum import Enum
from typing import Dict, Set


class OrderStatus(str, Enum):
    """Order lifecycle status."""

    PENDIENTE = "pendiente"
    PAGADO = "pagado"
    ENTREGADO = "entregado"
    CANCELADO = "cancelado"

    @classmethod
    def from_string(cls, value: str) -> "OrderStatus":
        """Convert string to OrderStatus enum.

        Args:
            value: String representation of status, case-insensitive

        Returns:
            OrderStatus enum value

        Raises:
            ValueError: If value is not a valid status
        """
        try:
            return cls(value.strip().lower())
        except (AttributeError, ValueError):
            valid_values = ", ".join([s.value for s in cls])
            raise ValueError(
                f"Invalid order status: {value}. "
                f"Valid values are: {valid_values}"
            )

    def is_terminal(self) -> bool:
        """Check if status is a terminal state.

        Returns:
            True if status is terminal (ENTREGADO, CANCELADO)
        """
        return self in {OrderStatus.ENTREGADO, OrderStatus.CANCELADO}


ORDER_STATUS_TRANSITIONS: Dict[OrderStatus, Set[OrderStatus]] = {
    OrderStatus.PENDIENTE: {
        OrderStatus.PAGADO,
        OrderStatus.CANCELADO,
    },
    OrderStatus.PAGADO: {
        OrderStatus.ENTREGADO,
        OrderStatus.CANCELADO,
    },
    OrderStatus.ENTREGADO: set(),  # Terminal
    OrderStatus.CANCELADO: set(),  # Terminal
}


def validate_order_status_transition(
    current: OrderStatus,
    new: OrderStatus
) -> bool:
    """Validate if order status transition is allowed.

    Self-transitions are not part of the table; callers decide how to
    treat them.

    Args:
        current: Current order status
        new: Desired new status

    Returns:
        True if transition is valid
    """
    return new in ORDER_STATUS_TRANSITIONS.get(current, set())


def get_allowed_order_transitions(
    current: OrderStatus
) -> Set[OrderStatus]:
    """Get all allowed transitions from current order status.

    Args:
        current: Current order status

    Returns:
        Set of allowed next statuses
    """
    return ORDER_STATUS_TRANSITIONS.get(current, set()).copy()
