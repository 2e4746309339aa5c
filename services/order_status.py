from enum import Enum

from core.errors import InvalidTransitionError


class OrderStatus(str, Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    PROCESSING = "processing"
    SHIPPING = "shipping"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"


class PaymentStatus(str, Enum):
    UNPAID = "unpaid"
    PAID = "paid"
    REFUNDED = "refunded"


TERMINAL_STATUSES = frozenset({OrderStatus.DELIVERED, OrderStatus.CANCELLED})

# Linear progression; cancelled is reachable from every non-terminal state.
TRANSITIONS: dict[OrderStatus, frozenset[OrderStatus]] = {
    OrderStatus.PENDING: frozenset({OrderStatus.CONFIRMED, OrderStatus.CANCELLED}),
    OrderStatus.CONFIRMED: frozenset({OrderStatus.PROCESSING, OrderStatus.CANCELLED}),
    OrderStatus.PROCESSING: frozenset({OrderStatus.SHIPPING, OrderStatus.CANCELLED}),
    OrderStatus.SHIPPING: frozenset({OrderStatus.DELIVERED, OrderStatus.CANCELLED}),
    OrderStatus.DELIVERED: frozenset(),
    OrderStatus.CANCELLED: frozenset(),
}


def can_transition(current: OrderStatus | str, new: OrderStatus | str) -> bool:
    try:
        current, new = OrderStatus(current), OrderStatus(new)
    except ValueError:
        return False
    return new in TRANSITIONS[current]


def assert_transition(current: OrderStatus | str, new: OrderStatus | str) -> OrderStatus:
    """Return ``new`` as an OrderStatus or raise InvalidTransitionError."""
    if not can_transition(current, new):
        raise InvalidTransitionError(
            f"Cannot change order status from '{OrderStatus(current).value}' to '{getattr(new, 'value', new)}'",
            details=[{"loc": ["status"], "msg": f"allowed: {sorted(s.value for s in allowed_next(current))}", "type": "transition"}],
        )
    return OrderStatus(new)


def allowed_next(current: OrderStatus | str) -> frozenset[OrderStatus]:
    return TRANSITIONS[OrderStatus(current)]
