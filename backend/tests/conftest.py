"""
Shared fixtures: in-memory repositories, a temp upload dir, fake gateways and
an API client wired to them.
"""

import asyncio
import itertools
from datetime import datetime, timedelta, timezone
from typing import List, Optional

import pytest
from fastapi.testclient import TestClient

from app.config import Settings
from app.models import OrderDocument, Role
from app.services.access import Principal
from app.services.catalog import CatalogService
from app.services.documents import DocumentStore
from app.services.local_storage import LocalBlobStore
from app.services.orchestration.order_service import OrderLifecycleManager
from app.services.orchestration.payment_service import PaymentService
from app.services.payments import ChargeResult
from app.services.repository import InMemoryOrderRepository, InMemoryUserRepository
from app.services.users import UserService, get_password_hash


# ============================================================================
# Fakes
# ============================================================================


class FakeGateway:
    """Scriptable payment gateway that records every charge."""

    def __init__(self, approved: bool = True, error: Optional[Exception] = None, delay: float = 0.0):
        self.approved = approved
        self.error = error
        self.delay = delay
        self.calls: List[tuple] = []
        self._refs = itertools.count(1)

    async def charge(self, order_id: int, amount: int, method: str) -> ChargeResult:
        self.calls.append((order_id, amount, method))
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        if not self.approved:
            return ChargeResult(approved=False, reference=None, message="Insufficient funds")
        return ChargeResult(approved=True, reference=f"ref_{next(self._refs)}")


class StepClock:
    """Deterministic clock advancing one second per call."""

    def __init__(self):
        self.current = datetime(2026, 1, 1, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        self.current += timedelta(seconds=1)
        return self.current


# ============================================================================
# Core fixtures
# ============================================================================


@pytest.fixture
def settings(tmp_path, monkeypatch) -> Settings:
    monkeypatch.setenv("UPLOAD_DIR", str(tmp_path / "uploads"))
    monkeypatch.delenv("MAX_SIZE_MB", raising=False)
    monkeypatch.delenv("MAX_FILES", raising=False)
    monkeypatch.delenv("ACCEPTED_MIME", raising=False)
    return Settings()


@pytest.fixture
def catalog() -> CatalogService:
    return CatalogService()


@pytest.fixture
def order_repo() -> InMemoryOrderRepository:
    return InMemoryOrderRepository()


@pytest.fixture
def user_repo() -> InMemoryUserRepository:
    return InMemoryUserRepository()


def _make_user(repo: InMemoryUserRepository, username: str, role: Role = Role.USER) -> Principal:
    user = repo.create(
        {
            "username": username,
            "password_hash": get_password_hash("secret123"),
            "name": username.title(),
            "email": f"{username}@example.com",
            "role": role,
        }
    )
    return Principal.from_user(user)


@pytest.fixture
def customer(user_repo) -> Principal:
    return _make_user(user_repo, "alice")


@pytest.fixture
def other_customer(user_repo) -> Principal:
    return _make_user(user_repo, "bob")


@pytest.fixture
def admin(user_repo) -> Principal:
    return _make_user(user_repo, "root", Role.ADMIN)


@pytest.fixture
def clock() -> StepClock:
    return StepClock()


@pytest.fixture
def manager(order_repo, catalog, user_repo, clock) -> OrderLifecycleManager:
    return OrderLifecycleManager(order_repo, catalog, user_repo, clock=clock)


@pytest.fixture
def gateway() -> FakeGateway:
    return FakeGateway()


@pytest.fixture
def payments(manager, gateway) -> PaymentService:
    return PaymentService(manager, gateway, default_timeout=1.0)


@pytest.fixture
def blob_store(settings) -> LocalBlobStore:
    return LocalBlobStore(settings.UPLOAD_DIR)


@pytest.fixture
def document_store(blob_store, settings) -> DocumentStore:
    return DocumentStore(blob_store, settings)


@pytest.fixture
def pdf_document() -> OrderDocument:
    return OrderDocument(
        filename="0123456789abcdef0123456789abcdef-proof.pdf",
        originalname="proof.pdf",
        path="/uploads/0123456789abcdef0123456789abcdef-proof.pdf",
        mimetype="application/pdf",
        size=2048,
    )


@pytest.fixture
def make_order(manager, customer, pdf_document):
    def _make(principal: Optional[Principal] = None, service_id: int = 1, notes: Optional[str] = None):
        return manager.create_order(principal or customer, service_id, [pdf_document], notes=notes)

    return _make


# ============================================================================
# API client
# ============================================================================


@pytest.fixture
def api(order_repo, user_repo, catalog, document_store, gateway):
    from app import deps
    from app.main import app

    app.dependency_overrides[deps.get_order_repository] = lambda: order_repo
    app.dependency_overrides[deps.get_user_repository] = lambda: user_repo
    app.dependency_overrides[deps.get_catalog] = lambda: catalog
    app.dependency_overrides[deps.get_document_store] = lambda: document_store
    app.dependency_overrides[deps.get_payment_gateway] = lambda: gateway
    with TestClient(app) as client:
        yield client
    app.dependency_overrides.clear()


@pytest.fixture
def auth_headers(user_repo):
    service = UserService(user_repo)

    def _headers(principal: Principal) -> dict:
        token = service.create_access_token(user_repo.get(principal.id))
        return {"Authorization": f"Bearer {token}"}

    return _headers
