from __future__ import annotations

import asyncio
import logging
import threading
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Iterator, Optional, Set

from ...exceptions import (
    AlreadyPaidError,
    ForbiddenError,
    GatewayUnavailableError,
    OrderCancelledError,
    PaymentDeclinedError,
    PaymentInProgressError,
)
from ...models import Order, OrderStatus, PaymentStatus
from ..access import Principal
from ..payments import PaymentGateway, is_approved
from .order_service import OrderLifecycleManager

logger = logging.getLogger(__name__)

# Orders with a gateway call in flight in this process
_charges_in_flight: Set[int] = set()
_in_flight_lock = threading.Lock()


@contextmanager
def _charge_slot(order_id: int) -> Iterator[None]:
    """Allow one concurrent charge per order; a second attempt is refused."""
    with _in_flight_lock:
        if order_id in _charges_in_flight:
            raise PaymentInProgressError(f"A payment for order {order_id} is already in progress")
        _charges_in_flight.add(order_id)
    try:
        yield
    finally:
        with _in_flight_lock:
            _charges_in_flight.discard(order_id)


@dataclass
class PaymentOutcome:
    order: Order
    reference: Optional[str]
    changed: bool


class PaymentService:
    """Coordinates the gateway with payment state on the order.

    Payment is only marked completed after an explicit confirmation: either the
    synchronous approval from ``process_payment`` or a webhook handled by
    ``handle_confirmation``. No order lock is held while the gateway is called;
    the completion step itself is idempotent, so a webhook and a synchronous
    approval for the same order produce a single state change.
    """

    def __init__(
        self,
        manager: OrderLifecycleManager,
        gateway: PaymentGateway,
        default_timeout: float = 15.0,
    ) -> None:
        self.manager = manager
        self.gateway = gateway
        self.default_timeout = default_timeout

    async def process_payment(
        self,
        principal: Principal,
        order_id: int,
        method: str = "upi",
        timeout: Optional[float] = None,
    ) -> PaymentOutcome:
        """Charge the caller's own order through the gateway.

        Raises OrderCancelledError / AlreadyPaidError before contacting the
        gateway, PaymentInProgressError while another charge for the order is
        pending, PaymentDeclinedError when the gateway declines and
        GatewayUnavailableError on network failure or timeout.
        """
        order = self.manager.get_order(principal, order_id)
        if order.user_id != principal.id:
            raise ForbiddenError("Only the order owner can pay for it")
        if order.status == OrderStatus.CANCELLED:
            raise OrderCancelledError("Cannot pay for a cancelled order")
        if order.payment_status == PaymentStatus.COMPLETED:
            raise AlreadyPaidError(f"Order {order_id} is already paid")

        limit = self.default_timeout if timeout is None else timeout
        with _charge_slot(order_id):
            logger.info("[%s] charging %s via %s", order_id, order.total_amount, method)
            try:
                result = await asyncio.wait_for(
                    self.gateway.charge(order.id, order.total_amount, method),
                    timeout=limit,
                )
            except asyncio.TimeoutError as exc:
                logger.error("[%s] gateway call exceeded %.1fs", order_id, limit)
                raise GatewayUnavailableError("Payment gateway timed out") from exc

            if not result.approved:
                logger.warning("[%s] payment declined: %s", order_id, result.message)
                raise PaymentDeclinedError(
                    result.message or "Payment declined", reference=result.reference
                )

            try:
                updated, changed = self.manager.apply_payment_status(
                    order_id, PaymentStatus.COMPLETED, result.reference
                )
            except OrderCancelledError:
                # Charged, but the order was cancelled mid-call; needs a refund
                logger.error(
                    "[%s] charge %s approved after the order was cancelled; refund required",
                    order_id,
                    result.reference,
                )
                raise
        return PaymentOutcome(order=updated, reference=result.reference, changed=changed)

    def handle_confirmation(
        self, order_id: int, outcome: str, reference: Optional[str] = None
    ) -> PaymentOutcome:
        """Apply an asynchronous gateway confirmation.

        The caller must have authenticated the gateway (see ``deps``). Failed
        outcomes are recorded in the log only; payment stays pending.
        """
        system = Principal.system()
        if not is_approved(outcome):
            order = self.manager.get_order(system, order_id)
            logger.warning("[%s] gateway reported outcome %r; payment unchanged", order_id, outcome)
            return PaymentOutcome(order=order, reference=reference, changed=False)

        updated, changed = self.manager.confirm_payment_status(
            system, order_id, PaymentStatus.COMPLETED, reference
        )
        return PaymentOutcome(order=updated, reference=reference, changed=changed)
