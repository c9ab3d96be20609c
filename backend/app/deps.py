"""FastAPI dependencies: service wiring, bearer-token principals, webhook auth."""
from __future__ import annotations

import hashlib
import hmac
import logging
from functools import lru_cache
from typing import Annotated

from fastapi import Depends, Header, HTTPException, Request, status
from fastapi.security import OAuth2PasswordBearer

from .config import get_settings
from .exceptions import AuthenticationError
from .services.access import Principal
from .services.catalog import CatalogService
from .services.documents import DocumentStore
from .services.orchestration.order_service import OrderLifecycleManager
from .services.orchestration.payment_service import PaymentService
from .services.payments import EmulatedPaymentGateway, HttpPaymentGateway, PaymentGateway
from .services.repository import (
    InMemoryOrderRepository,
    InMemoryUserRepository,
    OrderRepository,
    UserRepository,
)
from .services.users import UserService

logger = logging.getLogger(__name__)

oauth2_scheme = OAuth2PasswordBearer(tokenUrl=f"{get_settings().API_PREFIX}/auth/login")


# --- Wiring (cached per process; tests replace these via app.dependency_overrides) ---


@lru_cache(maxsize=1)
def get_order_repository() -> OrderRepository:
    if get_settings().ORDER_BACKEND == "firestore":
        from .services.firestore import FirestoreOrderRepository

        return FirestoreOrderRepository()
    return InMemoryOrderRepository()


@lru_cache(maxsize=1)
def get_user_repository() -> UserRepository:
    if get_settings().ORDER_BACKEND == "firestore":
        from .services.firestore import FirestoreUserRepository

        return FirestoreUserRepository()
    return InMemoryUserRepository()


@lru_cache(maxsize=1)
def get_catalog() -> CatalogService:
    return CatalogService()


@lru_cache(maxsize=1)
def get_document_store() -> DocumentStore:
    settings = get_settings()
    if settings.STORAGE_BACKEND == "gcs":
        from .services.gcs import GCSService

        backend = GCSService(settings.GCS_BUCKET)
    else:
        from .services.local_storage import LocalBlobStore

        backend = LocalBlobStore(settings.UPLOAD_DIR)
    return DocumentStore(backend, settings)


@lru_cache(maxsize=1)
def get_payment_gateway() -> PaymentGateway:
    settings = get_settings()
    if settings.PAYMENT_GATEWAY_EMULATE or not settings.PAYMENT_GATEWAY_URL:
        logger.info("Payment gateway emulation enabled")
        return EmulatedPaymentGateway()
    return HttpPaymentGateway(
        settings.PAYMENT_GATEWAY_URL,
        settings.PAYMENT_GATEWAY_API_KEY,
        timeout=settings.PAYMENT_GATEWAY_TIMEOUT_SECONDS,
    )


def get_user_service(repo: UserRepository = Depends(get_user_repository)) -> UserService:
    return UserService(repo)


def get_order_manager(
    repo: OrderRepository = Depends(get_order_repository),
    catalog: CatalogService = Depends(get_catalog),
    users: UserRepository = Depends(get_user_repository),
) -> OrderLifecycleManager:
    return OrderLifecycleManager(repo, catalog, users)


def get_payment_service(
    manager: OrderLifecycleManager = Depends(get_order_manager),
    gateway: PaymentGateway = Depends(get_payment_gateway),
) -> PaymentService:
    return PaymentService(manager, gateway, default_timeout=get_settings().PAYMENT_GATEWAY_TIMEOUT_SECONDS)


# --- Authentication ---


def get_current_principal(
    token: Annotated[str, Depends(oauth2_scheme)],
    users: UserService = Depends(get_user_service),
) -> Principal:
    """Resolve the bearer token to the acting principal (401 when invalid)."""
    try:
        return users.principal_from_token(token)
    except AuthenticationError as exc:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=str(exc),
            headers={"WWW-Authenticate": "Bearer"},
        )


def get_admin_principal(principal: Principal = Depends(get_current_principal)) -> Principal:
    """Route-level gate; the manager re-checks admin rights on every call."""
    if not principal.is_admin:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Admin privileges required")
    return principal


def sign_webhook_body(body: bytes, secret: str) -> str:
    return hmac.new(secret.encode(), body, hashlib.sha256).hexdigest()


async def verify_webhook_signature(
    request: Request,
    x_signature: Annotated[str | None, Header(alias="X-Signature")] = None,
) -> None:
    """Authenticate a payment gateway callback.

    Behavior:
    - With PAYMENT_WEBHOOK_SECRET set, require ``X-Signature`` to be the hex
      HMAC-SHA256 of the raw body (an optional ``sha256=`` prefix is accepted).
    - Without a secret, accept calls only in gateway emulation mode (local/dev).
    """
    settings = get_settings()
    secret = settings.PAYMENT_WEBHOOK_SECRET
    if not secret:
        if settings.PAYMENT_GATEWAY_EMULATE:
            return
        raise HTTPException(status_code=503, detail="Webhook secret not configured")

    if not x_signature:
        raise HTTPException(status_code=401, detail="Missing X-Signature header")
    provided = x_signature.strip()
    if provided.startswith("sha256="):
        provided = provided[len("sha256="):]
    expected = sign_webhook_body(await request.body(), secret)
    if not hmac.compare_digest(expected, provided):
        raise HTTPException(status_code=401, detail="Invalid webhook signature")
