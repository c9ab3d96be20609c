"""Admin endpoints: list every order and drive status/payment transitions."""
from __future__ import annotations

from typing import List

from fastapi import APIRouter, Depends

from ..deps import get_admin_principal, get_order_manager
from ..models import Order, PaymentStatusUpdate, StatusUpdate
from ..services.access import Principal
from ..services.orchestration.order_service import OrderLifecycleManager

router = APIRouter(prefix="/admin", tags=["admin"])


@router.get("/orders", response_model=List[Order])
async def list_all_orders(
    principal: Principal = Depends(get_admin_principal),
    manager: OrderLifecycleManager = Depends(get_order_manager),
) -> List[Order]:
    return manager.list_all_orders(principal)


@router.patch("/orders/{order_id}/status", response_model=Order)
async def update_order_status(
    order_id: int,
    payload: StatusUpdate,
    principal: Principal = Depends(get_admin_principal),
    manager: OrderLifecycleManager = Depends(get_order_manager),
) -> Order:
    return manager.update_status(principal, order_id, payload.status)


@router.patch("/orders/{order_id}/payment", response_model=Order)
async def update_payment_status(
    order_id: int,
    payload: PaymentStatusUpdate,
    principal: Principal = Depends(get_admin_principal),
    manager: OrderLifecycleManager = Depends(get_order_manager),
) -> Order:
    """Manual override, e.g. for payments collected outside the gateway."""
    return manager.update_payment_status(principal, order_id, payload.status)
