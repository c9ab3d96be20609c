"""Read-only service catalog, seeded once per process."""
from __future__ import annotations

from typing import Any, Dict, List, Optional, Sequence

from ..exceptions import NotFoundError
from ..models import Service

DEFAULT_SERVICES: List[Dict[str, Any]] = [
    {
        "name": "Aadhaar Card",
        "description": "New applications, corrections, updates and more for your Aadhaar card.",
        "category": "Identity",
        "price": 500,
        "processing_time": "2-3 days",
        "requirements": "Address proof, identity proof, and recent photograph",
        "icon": "fa-id-card",
        "badge": "Fast Processing",
        "badge_color": "green",
    },
    {
        "name": "PAN Card",
        "description": "Apply for new PAN card, correction in existing card and PAN-Aadhaar linking.",
        "category": "Identity",
        "price": 750,
        "processing_time": "4-5 days",
        "requirements": "Identity proof, address proof, and recent photograph",
        "icon": "fa-credit-card",
        "badge": "Government Authorized",
        "badge_color": "blue",
    },
    {
        "name": "Driving License",
        "description": "New learner's license, permanent license, renewals and international permits.",
        "category": "Licenses",
        "price": 1200,
        "processing_time": "7-10 days",
        "requirements": "Age proof, address proof, identity proof, and medical certificate",
        "icon": "fa-id-badge",
        "badge": "Complete Assistance",
        "badge_color": "yellow",
    },
    {
        "name": "CSC Services",
        "description": "All Common Service Center (CSC) services including certificates and registrations.",
        "category": "Government",
        "price": 600,
        "processing_time": "3-5 days",
        "requirements": "Varies depending on specific service required",
        "icon": "fa-building",
        "badge": "Multiple Services",
        "badge_color": "purple",
    },
    {
        "name": "Passport",
        "description": "New passport application, renewal and other passport-related services.",
        "category": "Travel",
        "price": 2500,
        "processing_time": "10-15 days",
        "requirements": "Address proof, identity proof, birth certificate, and photographs",
        "icon": "fa-passport",
        "badge": "Priority Service",
        "badge_color": "red",
    },
    {
        "name": "Certificates",
        "description": "Birth, death, income, caste, domicile and other essential certificates.",
        "category": "Government",
        "price": 400,
        "processing_time": "2-4 days",
        "requirements": "Supporting documents depending on certificate type",
        "icon": "fa-scroll",
        "badge": "Digital Delivery",
        "badge_color": "green",
    },
    {
        "name": "Property Documents",
        "description": "Land records, property registration, mutation and related services.",
        "category": "Property",
        "price": 3000,
        "processing_time": "15-20 days",
        "requirements": "Property details, ownership proof, and identity documents",
        "icon": "fa-house-user",
        "badge": "Expert Assistance",
        "badge_color": "blue",
    },
    {
        "name": "Business Services",
        "description": "GST registration, company registration, MSME registration and more.",
        "category": "Business",
        "price": 5000,
        "processing_time": "7-14 days",
        "requirements": "Business details, address proof, and identity documents",
        "icon": "fa-briefcase",
        "badge": "Business Solutions",
        "badge_color": "indigo",
    },
]


class CatalogService:
    """Pure reads over a fixed list of services (ids assigned 1..n in seed order)."""

    def __init__(self, seed: Optional[Sequence[Dict[str, Any]]] = None) -> None:
        entries = DEFAULT_SERVICES if seed is None else seed
        self._services: Dict[int, Service] = {}
        for idx, entry in enumerate(entries, start=1):
            service = Service(**{"id": idx, **entry})
            if any(s.name == service.name for s in self._services.values()):
                raise ValueError(f"Duplicate service name: {service.name}")
            self._services[service.id] = service

    def list_all(self) -> List[Service]:
        return list(self._services.values())

    def list_by_category(self, category: str) -> List[Service]:
        return [s for s in self._services.values() if s.category == category]

    def get_by_id(self, service_id: int) -> Service:
        service = self._services.get(service_id)
        if service is None:
            raise NotFoundError(f"Service {service_id} not found")
        return service
