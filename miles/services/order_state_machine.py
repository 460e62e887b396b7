"""Order status transition rules.

The transition table below is the single source of truth for which status
changes are legal. Callers never compare status strings themselves; they ask
``can_transition`` / ``ensure_transition`` instead.
"""

from miles.api.middleware.error_handler import InvalidTransitionError
from miles.models.order import OrderStatus

TRANSITIONS: dict[OrderStatus, frozenset[OrderStatus]] = {
    OrderStatus.PENDING: frozenset({OrderStatus.PAID, OrderStatus.CANCELLED}),
    OrderStatus.PAID: frozenset({OrderStatus.SHIPPED, OrderStatus.CANCELLED}),
    OrderStatus.SHIPPED: frozenset({OrderStatus.COMPLETED}),
    OrderStatus.COMPLETED: frozenset(),
    OrderStatus.CANCELLED: frozenset(),
}

# Statuses a customer may cancel from without store-owner involvement
CUSTOMER_CANCELLABLE = frozenset({OrderStatus.PENDING})

# Statuses reached only after a successful settlement
SETTLED_STATUSES = frozenset({OrderStatus.PAID, OrderStatus.SHIPPED, OrderStatus.COMPLETED})


def allowed_transitions(current: OrderStatus | str) -> frozenset[OrderStatus]:
    """Return the statuses reachable in one step from ``current``.

    An empty set means ``current`` is terminal.
    """
    return TRANSITIONS[OrderStatus(current)]


def can_transition(current: OrderStatus | str, target: OrderStatus | str) -> bool:
    """Check whether ``current -> target`` is present in the transition table."""
    return OrderStatus(target) in allowed_transitions(current)


def is_terminal(status: OrderStatus | str) -> bool:
    """Check whether no further transition is permitted from ``status``."""
    return not allowed_transitions(status)


def ensure_transition(current: OrderStatus | str, target: OrderStatus | str) -> None:
    """Raise unless ``current -> target`` is a legal transition.

    Args:
        current: The order's current status.
        target: The requested status.

    Raises:
        InvalidTransitionError: Names the current status and the full allowed set.
    """
    if not can_transition(current, target):
        raise InvalidTransitionError(
            current_status=OrderStatus(current).value,
            target_status=OrderStatus(target).value,
            allowed=[s.value for s in allowed_transitions(current)],
        )


def ensure_customer_can_cancel(current: OrderStatus | str) -> None:
    """Raise unless the order's own customer may cancel it.

    Raises:
        InvalidTransitionError: If the order has left the pending status.
    """
    status = OrderStatus(current)
    if status not in CUSTOMER_CANCELLABLE:
        raise InvalidTransitionError(
            current_status=status.value,
            target_status=OrderStatus.CANCELLED.value,
            allowed=None,
            message="Can only cancel pending orders",
        )
