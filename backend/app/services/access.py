"""Access control: who may view or mutate an order.

Every order operation receives the acting ``Principal`` explicitly, so the
lifecycle manager asserts authorization itself instead of trusting that the
HTTP layer already did.
"""
from __future__ import annotations

from dataclasses import dataclass

from ..exceptions import ForbiddenError
from ..models import Order, Role, User

SYSTEM_ROLE = "system"


@dataclass(frozen=True)
class Principal:
    """The authenticated identity behind a request."""

    id: int
    role: str = Role.USER.value
    username: str = ""

    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMIN.value

    @property
    def is_system(self) -> bool:
        return self.role == SYSTEM_ROLE

    @classmethod
    def from_user(cls, user: User) -> "Principal":
        return cls(id=user.id, role=Role(user.role).value, username=user.username)

    @classmethod
    def system(cls, name: str = "payment-gateway") -> "Principal":
        """Principal for trusted system-to-system calls (gateway callbacks)."""
        return cls(id=0, role=SYSTEM_ROLE, username=name)


def can_view(order: Order, principal: Principal) -> bool:
    if principal.is_system:
        return True
    return principal.id == order.user_id or principal.is_admin


def can_manage(principal: Principal) -> bool:
    return principal.is_admin


def can_confirm_payment(principal: Principal) -> bool:
    # Customers never confirm directly; they go through the gateway flow.
    return principal.is_admin or principal.is_system


def require_view(order: Order, principal: Principal) -> None:
    if not can_view(order, principal):
        raise ForbiddenError(f"Not allowed to access order {order.id}")


def require_manage(principal: Principal) -> None:
    if not can_manage(principal):
        raise ForbiddenError("Admin privileges required")
