from __future__ import annotations

import logging
from datetime import datetime
from typing import Callable, List, Optional, Sequence, Tuple, Type, TypeVar, Union

from ...exceptions import ForbiddenError, NotFoundError, ValidationError
from ...models import Order, OrderDocument, OrderStatus, PaymentStatus, utcnow
from ..access import Principal, can_confirm_payment, require_manage, require_view
from ..catalog import CatalogService
from ..repository import OrderRepository, UserRepository
from .transitions import check_payment_transition, check_status_transition

logger = logging.getLogger(__name__)

E = TypeVar("E", OrderStatus, PaymentStatus)


def _coerce(enum_cls: Type[E], value: Union[E, str]) -> E:
    try:
        return enum_cls(value)
    except ValueError:
        allowed = ", ".join(m.value for m in enum_cls)
        raise ValidationError(f"Invalid {enum_cls.__name__} '{value}'; expected one of: {allowed}")


class OrderLifecycleManager:
    """Owns order records and every change to ``status`` and ``payment_status``.

    All operations take the acting ``Principal`` and check authorization
    themselves. Mutations go through ``OrderRepository.update`` so the
    read-validate-write of a transition is atomic per order.
    """

    def __init__(
        self,
        repo: OrderRepository,
        catalog: CatalogService,
        users: Optional[UserRepository] = None,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self.repo = repo
        self.catalog = catalog
        self.users = users
        self._now = clock

    def create_order(
        self,
        principal: Principal,
        service_id: int,
        documents: Sequence[OrderDocument],
        notes: Optional[str] = None,
    ) -> Order:
        """Create a pending/pending order owned by ``principal``.

        ``total_amount`` is the service price at this instant and never changes.
        """
        if principal.is_system:
            raise ForbiddenError("System principals cannot place orders")
        if self.users is not None and self.users.get(principal.id) is None:
            raise NotFoundError(f"User {principal.id} not found")
        service = self.catalog.get_by_id(service_id)
        if not documents:
            raise ValidationError("At least one document is required")

        now = self._now()
        order = self.repo.create(
            {
                "user_id": principal.id,
                "service_id": service.id,
                "status": OrderStatus.PENDING,
                "payment_status": PaymentStatus.PENDING,
                "documents": [d.model_dump() for d in documents],
                "total_amount": service.price,
                "notes": (notes or "").strip() or None,
                "created_at": now,
                "updated_at": now,
            }
        )
        logger.info(
            "[%s] created for user %s: service %s, %d document(s), amount %s",
            order.id, principal.id, service.id, len(order.documents), order.total_amount,
        )
        return order

    def _load(self, order_id: int) -> Order:
        order = self.repo.get(order_id)
        if order is None:
            raise NotFoundError(f"Order {order_id} not found")
        return order

    def get_order(self, principal: Principal, order_id: int) -> Order:
        order = self._load(order_id)
        require_view(order, principal)
        return order

    def list_orders_for_user(self, principal: Principal, user_id: Optional[int] = None) -> List[Order]:
        """Orders of one user in creation order. Non-admins may only list their own."""
        target = principal.id if user_id is None else user_id
        if target != principal.id:
            require_manage(principal)
        return self.repo.list_by_owner(target)

    def list_all_orders(self, principal: Principal) -> List[Order]:
        require_manage(principal)
        return self.repo.list_all()

    def update_status(self, principal: Principal, order_id: int, new_status: Union[OrderStatus, str]) -> Order:
        require_manage(principal)
        requested = _coerce(OrderStatus, new_status)

        def mutate(order: Order) -> Order:
            check_status_transition(order.status, requested)
            return order.model_copy(update={"status": requested, "updated_at": self._now()})

        order = self.repo.update(order_id, mutate)
        logger.info("[%s] status -> %s by %s", order_id, requested.value, principal.username or principal.id)
        return order

    def update_payment_status(
        self,
        principal: Principal,
        order_id: int,
        new_status: Union[PaymentStatus, str],
        reference: Optional[str] = None,
    ) -> Order:
        """Admin override or trusted gateway confirmation.

        Customers pay through ``PaymentService.process_payment`` instead.
        """
        order, _ = self.confirm_payment_status(principal, order_id, new_status, reference)
        return order

    def confirm_payment_status(
        self,
        principal: Principal,
        order_id: int,
        new_status: Union[PaymentStatus, str],
        reference: Optional[str] = None,
    ) -> Tuple[Order, bool]:
        """Same as ``update_payment_status`` but also reports whether anything changed."""
        if not can_confirm_payment(principal):
            raise ForbiddenError("Not allowed to change payment status")
        requested = _coerce(PaymentStatus, new_status)
        return self.apply_payment_status(order_id, requested, reference)

    def apply_payment_status(
        self, order_id: int, requested: PaymentStatus, reference: Optional[str] = None
    ) -> Tuple[Order, bool]:
        """Apply a payment transition atomically. Returns (order, changed).

        Callers are responsible for authorization.
        """
        changed = False

        def mutate(order: Order) -> Optional[Order]:
            nonlocal changed
            changed = check_payment_transition(order.status, order.payment_status, requested)
            if not changed:
                return None
            update = {"payment_status": requested, "updated_at": self._now()}
            if reference:
                update["payment_reference"] = reference
            return order.model_copy(update=update)

        order = self.repo.update(order_id, mutate)
        if changed:
            logger.info("[%s] payment_status -> %s (ref=%s)", order_id, requested.value, reference)
        else:
            logger.info("[%s] payment already %s; ignoring duplicate", order_id, requested.value)
        return order, changed
