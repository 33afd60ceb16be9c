"""Order status state machine.

State Flow:
    PENDING → PAID → SHIPPED → COMPLETED
    PENDING|PAID → CANCELLED

Terminal States: COMPLETED, CANCELLED
"""

from enum import Enum
from typing import List


class OrderStatus(str, Enum):
    """Order status enumeration."""
    PENDING = "PENDING"
    PAID = "PAID"
    SHIPPED = "SHIPPED"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"


ALLOWED_TRANSITIONS = {
    OrderStatus.PENDING: [OrderStatus.PAID, OrderStatus.CANCELLED],
    OrderStatus.PAID: [OrderStatus.SHIPPED, OrderStatus.CANCELLED],
    OrderStatus.SHIPPED: [OrderStatus.COMPLETED],
    OrderStatus.COMPLETED: [],  # Terminal state
    OrderStatus.CANCELLED: [],  # Terminal state
}

# Targets an order's owner may request; everything else is administrator-only
OWNER_TARGETS = {OrderStatus.PAID, OrderStatus.COMPLETED, OrderStatus.CANCELLED}

# Timestamp column stamped when an order enters a status
STATUS_TIMESTAMPS = {
    OrderStatus.PAID: "paid_at",
    OrderStatus.SHIPPED: "shipped_at",
    OrderStatus.COMPLETED: "completed_at",
    OrderStatus.CANCELLED: "cancelled_at",
}


class StateTransitionError(Exception):
    """Raised when an invalid state transition is attempted."""
    pass


def get_allowed_transitions(status: OrderStatus) -> List[OrderStatus]:
    """Statuses reachable from status in one step; empty for terminal states."""
    return ALLOWED_TRANSITIONS.get(status, [])


def can_transition(current_status: OrderStatus, new_status: OrderStatus) -> bool:
    return new_status in get_allowed_transitions(current_status)


def validate_transition(
    current_status: OrderStatus,
    new_status: OrderStatus
) -> None:
    """Validate that a state transition is allowed.

    Raises:
        StateTransitionError: If transition is not allowed
    """
    if not can_transition(current_status, new_status):
        allowed = [s.value for s in get_allowed_transitions(current_status)]
        raise StateTransitionError(
            f"Invalid transition: {current_status.value} -> {new_status.value}. "
            f"Allowed transitions from {current_status.value}: {allowed}"
        )
