"""Read-only catalog endpoints."""
from __future__ import annotations

from typing import List

from fastapi import APIRouter, Depends

from ..deps import get_catalog
from ..models import Service
from ..services.catalog import CatalogService

router = APIRouter(prefix="/services", tags=["services"])


@router.get("", response_model=List[Service])
async def list_services(catalog: CatalogService = Depends(get_catalog)) -> List[Service]:
    return catalog.list_all()


@router.get("/category/{category}", response_model=List[Service])
async def list_services_by_category(category: str, catalog: CatalogService = Depends(get_catalog)) -> List[Service]:
    return catalog.list_by_category(category)


@router.get("/{service_id}", response_model=Service)
async def get_service(service_id: int, catalog: CatalogService = Depends(get_catalog)) -> Service:
    return catalog.get_by_id(service_id)
