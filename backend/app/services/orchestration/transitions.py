"""State machines for order ``status`` and ``payment_status``.

Status flow:
    pending -> processing -> completed
    pending -> cancelled
    processing -> cancelled
completed and cancelled are terminal.

Payment flow:
    pending -> completed (completed -> completed is accepted as a no-op)
"""
from __future__ import annotations

from typing import Dict, FrozenSet

from ...exceptions import InvalidTransitionError, OrderCancelledError
from ...models import OrderStatus, PaymentStatus

STATUS_TRANSITIONS: Dict[OrderStatus, FrozenSet[OrderStatus]] = {
    OrderStatus.PENDING: frozenset({OrderStatus.PROCESSING, OrderStatus.CANCELLED}),
    OrderStatus.PROCESSING: frozenset({OrderStatus.COMPLETED, OrderStatus.CANCELLED}),
    OrderStatus.COMPLETED: frozenset(),
    OrderStatus.CANCELLED: frozenset(),
}

PAYMENT_TRANSITIONS: Dict[PaymentStatus, FrozenSet[PaymentStatus]] = {
    PaymentStatus.PENDING: frozenset({PaymentStatus.COMPLETED}),
    PaymentStatus.COMPLETED: frozenset(),
}

TERMINAL_STATUSES = frozenset(s for s, nxt in STATUS_TRANSITIONS.items() if not nxt)


def allowed_status_transitions(current: OrderStatus) -> FrozenSet[OrderStatus]:
    return STATUS_TRANSITIONS.get(current, frozenset())


def can_transition(current: OrderStatus, requested: OrderStatus) -> bool:
    return requested in allowed_status_transitions(current)


def check_status_transition(current: OrderStatus, requested: OrderStatus) -> None:
    if not can_transition(current, requested):
        raise InvalidTransitionError(
            current.value,
            requested.value,
            [s.value for s in allowed_status_transitions(current)],
        )


def check_payment_transition(status: OrderStatus, current: PaymentStatus, requested: PaymentStatus) -> bool:
    """Validate a payment change. Returns False when it is an idempotent no-op.

    Cancelled orders reject every payment change, even a repeated completion.
    """
    if status == OrderStatus.CANCELLED:
        raise OrderCancelledError("Cannot change payment on a cancelled order")
    if current == requested == PaymentStatus.COMPLETED:
        return False
    if requested not in PAYMENT_TRANSITIONS.get(current, frozenset()):
        raise InvalidTransitionError(
            current.value,
            requested.value,
            [s.value for s in PAYMENT_TRANSITIONS.get(current, frozenset())],
            field="payment_status",
        )
    return True
