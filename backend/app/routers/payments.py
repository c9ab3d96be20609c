"""Payment endpoints: customer "pay now" and the gateway confirmation webhook."""
from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Request

from ..deps import get_current_principal, get_payment_service, verify_webhook_signature
from ..models import PaymentRequest, PaymentResult, PaymentWebhook
from ..services.access import Principal
from ..services.orchestration.payment_service import PaymentService
from ..utils.network import get_client_ip

router = APIRouter(prefix="/payment", tags=["payments"])
logger = logging.getLogger(__name__)


@router.post("/process", response_model=PaymentResult)
async def process_payment(
    payload: PaymentRequest,
    principal: Principal = Depends(get_current_principal),
    payments: PaymentService = Depends(get_payment_service),
) -> PaymentResult:
    """Charge the caller's own order. Declines and gateway outages surface as errors."""
    outcome = await payments.process_payment(principal, payload.orderId, payload.paymentMethod)
    return PaymentResult(
        success=True,
        orderId=outcome.order.id,
        paymentStatus=outcome.order.payment_status,
        reference=outcome.reference,
        message="Payment completed",
    )


@router.post("/webhook", dependencies=[Depends(verify_webhook_signature)])
async def payment_webhook(
    payload: PaymentWebhook,
    request: Request,
    payments: PaymentService = Depends(get_payment_service),
) -> dict:
    """Gateway callback: expects JSON { orderId, status, reference? } signed with the shared secret."""
    logger.info("[%s] webhook %r from %s", payload.orderId, payload.status, get_client_ip(request))
    outcome = payments.handle_confirmation(payload.orderId, payload.status, payload.reference)
    return {
        "success": True,
        "orderId": outcome.order.id,
        "paymentStatus": outcome.order.payment_status.value,
        "changed": outcome.changed,
    }
