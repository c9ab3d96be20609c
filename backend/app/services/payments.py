"""Payment gateway adapters.

Async implementation using httpx so the FastAPI event loop is not blocked
while waiting on the gateway. Charges are never retried here: a failed or
timed-out attempt is reported to the customer, who re-initiates explicitly.
"""
from __future__ import annotations

import logging
import secrets
from dataclasses import dataclass
from typing import Any, Dict, Optional, Protocol

import httpx

from ..exceptions import GatewayError, GatewayUnavailableError

logger = logging.getLogger(__name__)

APPROVED_OUTCOMES = {"succeeded", "success", "approved", "completed"}


@dataclass
class ChargeResult:
    """Definitive answer from the gateway for one charge attempt."""

    approved: bool
    reference: Optional[str] = None
    message: Optional[str] = None


class PaymentGateway(Protocol):
    async def charge(self, order_id: int, amount: int, method: str) -> ChargeResult: ...


def is_approved(outcome: Optional[str]) -> bool:
    return (outcome or "").strip().lower() in APPROVED_OUTCOMES


class HttpPaymentGateway:
    """Talks to a JSON payment API.

    Request:  POST <url> {orderId, amount, method, idempotencyKey}
    Response: 2xx {status: "succeeded" | "declined", reference?, message?}
              402 is treated as a decline; 5xx and network errors as unavailable.
    """

    def __init__(
        self,
        url: str,
        api_key: str = "",
        *,
        timeout: float = 15.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.url = url
        self.api_key = api_key
        self.timeout = timeout
        self._transport = transport

    def _headers(self) -> Dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"
        return headers

    async def charge(self, order_id: int, amount: int, method: str) -> ChargeResult:
        payload: Dict[str, Any] = {
            "orderId": order_id,
            "amount": amount,
            "method": method,
            # Fresh key per attempt so a retry after a decline is a new charge
            "idempotencyKey": f"order-{order_id}-{secrets.token_hex(8)}",
        }
        t = httpx.Timeout(self.timeout, connect=5.0)
        try:
            async with httpx.AsyncClient(timeout=t, transport=self._transport) as client:
                resp = await client.post(self.url, headers=self._headers(), json=payload)
        except httpx.TimeoutException as exc:
            logger.error("[%s] gateway timeout: %s", order_id, exc)
            raise GatewayUnavailableError("Payment gateway timed out") from exc
        except httpx.RequestError as exc:
            logger.error("[%s] gateway unreachable: %s", order_id, exc)
            raise GatewayUnavailableError("Payment gateway unreachable") from exc

        if resp.status_code >= 500:
            logger.error("[%s] gateway server error %s", order_id, resp.status_code)
            raise GatewayUnavailableError(f"Payment gateway error (HTTP {resp.status_code})")

        try:
            data = resp.json()
        except ValueError:
            data = {}

        if resp.status_code == 402:
            return ChargeResult(approved=False, reference=data.get("reference"), message=data.get("message"))
        if resp.status_code >= 400:
            logger.error("[%s] gateway rejected request: %s %s", order_id, resp.status_code, data)
            raise GatewayError(f"Payment gateway rejected the request (HTTP {resp.status_code})")

        return ChargeResult(
            approved=is_approved(data.get("status")),
            reference=data.get("reference"),
            message=data.get("message"),
        )


class EmulatedPaymentGateway:
    """Approves every charge; used for local development when no gateway URL is set."""

    async def charge(self, order_id: int, amount: int, method: str) -> ChargeResult:
        reference = f"emu_{secrets.token_hex(8)}"
        logger.info("[%s] emulated charge of %s via %s -> %s", order_id, amount, method, reference)
        return ChargeResult(approved=True, reference=reference)
