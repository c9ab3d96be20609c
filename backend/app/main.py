"""
Main FastAPI application for the Document Services backend.
"""
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
import logging
from contextlib import asynccontextmanager

from . import exceptions as exc_types
from .config import get_settings
from .deps import get_user_repository
from .routers.admin import router as admin_router
from .routers.auth import router as auth_router
from .routers.config import router as config_router
from .routers.health import router as health_router
from .routers.orders import router as orders_router
from .routers.payments import router as payments_router
from .routers.services import router as services_router
from .services.users import UserService


settings = get_settings()
logger = logging.getLogger(__name__)

# exception class -> (HTTP status, error code)
ERROR_MAP = [
    (exc_types.PayloadTooLargeError, 413, "payload_too_large"),
    (exc_types.FileValidationError, 400, "invalid_file"),
    (exc_types.ValidationError, 400, "validation_error"),
    (exc_types.AuthenticationError, 401, "unauthenticated"),
    (exc_types.ForbiddenError, 403, "forbidden"),
    (exc_types.NotFoundError, 404, "not_found"),
    (exc_types.ConflictError, 409, "conflict"),
    (exc_types.InvalidTransitionError, 409, "invalid_transition"),
    (exc_types.OrderCancelledError, 409, "order_cancelled"),
    (exc_types.AlreadyPaidError, 409, "already_paid"),
    (exc_types.PaymentInProgressError, 409, "payment_in_progress"),
    (exc_types.PaymentDeclinedError, 402, "payment_declined"),
    (exc_types.GatewayUnavailableError, 503, "gateway_unavailable"),
    (exc_types.GatewayError, 502, "gateway_error"),
    (exc_types.StorageError, 500, "storage_error"),
]


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup
    logging.basicConfig(format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    logging.getLogger("app").setLevel(settings.LOG_LEVEL)
    UserService(get_user_repository(), settings).ensure_admin(
        settings.ADMIN_USERNAME, settings.ADMIN_PASSWORD, settings.ADMIN_EMAIL
    )
    yield


app = FastAPI(
    title=settings.APP_NAME,
    version="0.1.0",
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
)

# CORS configuration
app.add_middleware(
    CORSMiddleware,
    allow_origins=[o.strip() for o in settings.CORS_ORIGINS],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def _make_handler(status_code: int, code: str):
    async def handler(request: Request, exc: Exception) -> JSONResponse:
        body = {"message": str(exc), "error": code}
        if isinstance(exc, exc_types.InvalidTransitionError):
            body.update(
                field=exc.field, current=exc.current, requested=exc.requested, allowed=exc.allowed
            )
        if status_code >= 500:
            logger.error("%s %s failed: %s", request.method, request.url.path, exc)
        return JSONResponse(status_code=status_code, content=body)

    return handler


for exc_cls, status_code, code in ERROR_MAP:
    app.add_exception_handler(exc_cls, _make_handler(status_code, code))


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = [
        {"loc": list(e.get("loc", [])), "msg": e.get("msg", "")}
        for e in exc.errors()
    ]
    return JSONResponse(
        status_code=400,
        content={"message": "Invalid request", "error": "validation_error", "errors": errors},
    )


# Routers
app.include_router(health_router, prefix=settings.API_PREFIX)
app.include_router(config_router, prefix=settings.API_PREFIX)
app.include_router(auth_router, prefix=settings.API_PREFIX)
app.include_router(services_router, prefix=settings.API_PREFIX)
app.include_router(orders_router, prefix=settings.API_PREFIX)
app.include_router(payments_router, prefix=settings.API_PREFIX)
app.include_router(admin_router, prefix=settings.API_PREFIX)


@app.get("/", tags=["root"])
async def root() -> dict:
    """Simple root endpoint."""
    return {"name": app.title, "version": app.version}
