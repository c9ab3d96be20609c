"""Orders router: upload documents and create orders, list and read them.

Thin HTTP layer; the lifecycle manager enforces ownership and state rules.
"""
from __future__ import annotations

import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, File, Form, UploadFile, status

from ..deps import get_current_principal, get_document_store, get_order_manager
from ..models import Order
from ..services.access import Principal
from ..services.documents import DocumentStore, IncomingFile
from ..services.orchestration.order_service import OrderLifecycleManager

router = APIRouter(prefix="/orders", tags=["orders"])
logger = logging.getLogger(__name__)


@router.post("", response_model=Order, status_code=status.HTTP_201_CREATED)
async def create_order(
    service_id: int = Form(...),
    documents: List[UploadFile] = File(description="One to five JPG, PNG or PDF files"),
    notes: Optional[str] = Form(default=None),
    principal: Principal = Depends(get_current_principal),
    manager: OrderLifecycleManager = Depends(get_order_manager),
    store: DocumentStore = Depends(get_document_store),
) -> Order:
    """Store the uploaded documents, then create a pending order for them."""
    # Unknown services fail before anything is written
    manager.catalog.get_by_id(service_id)

    incoming = [
        IncomingFile(data=await f.read(), filename=f.filename or "file", content_type=f.content_type or "")
        for f in documents
    ]
    stored = store.store_many(incoming)
    try:
        return manager.create_order(principal, service_id, stored, notes=notes)
    except Exception:
        store.discard(stored)
        raise


@router.get("", response_model=List[Order])
async def list_my_orders(
    principal: Principal = Depends(get_current_principal),
    manager: OrderLifecycleManager = Depends(get_order_manager),
) -> List[Order]:
    return manager.list_orders_for_user(principal)


@router.get("/{order_id}", response_model=Order)
async def get_order(
    order_id: int,
    principal: Principal = Depends(get_current_principal),
    manager: OrderLifecycleManager = Depends(get_order_manager),
) -> Order:
    """Owner or admin only; other users get 403."""
    return manager.get_order(principal, order_id)
