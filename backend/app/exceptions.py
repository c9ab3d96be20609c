"""Domain-specific exceptions for the order, payment and storage layers.

Routers let these propagate; ``app.main`` registers handlers that translate
them into structured JSON responses. The HTTP status each maps to is noted on
the class.
"""
from __future__ import annotations

from typing import Iterable, Optional


class ValidationError(Exception):
    """Bad input shape or constraint violation, user-correctable (maps to HTTP 400)."""


class FileValidationError(ValidationError):
    """Rejected upload: unsupported type, empty file, too many files (maps to HTTP 400)."""


class PayloadTooLargeError(FileValidationError):
    """Uploaded file exceeds the configured size limit (maps to HTTP 413)."""


class NotFoundError(Exception):
    """Unknown order, service or user id (maps to HTTP 404)."""


class ForbiddenError(Exception):
    """Authenticated principal is not allowed to view or mutate the resource (maps to HTTP 403)."""


class AuthenticationError(Exception):
    """Missing, invalid or expired credentials (maps to HTTP 401)."""


class ConflictError(Exception):
    """Resource conflict, e.g. duplicate username or email (maps to HTTP 409)."""


class InvalidTransitionError(Exception):
    """Requested status change is not permitted by the state machine (maps to HTTP 409)."""

    def __init__(self, current: str, requested: str, allowed: Iterable[str], *, field: str = "status") -> None:
        self.current = current
        self.requested = requested
        self.allowed = sorted(allowed)
        self.field = field
        allowed_txt = ", ".join(self.allowed) or "none (terminal state)"
        super().__init__(
            f"Cannot change {field} from '{current}' to '{requested}'; allowed: {allowed_txt}"
        )


class PaymentInProgressError(Exception):
    """Another charge for the same order has not finished yet (maps to HTTP 409)."""


class OrderCancelledError(Exception):
    """Payment attempted on a cancelled order (maps to HTTP 409)."""


class AlreadyPaidError(Exception):
    """Payment attempted on an order whose payment is already completed (maps to HTTP 409)."""


class GatewayError(Exception):
    """Payment gateway failure (maps to HTTP 502 unless a subclass says otherwise)."""

    def __init__(self, message: str, *, reference: Optional[str] = None) -> None:
        self.reference = reference
        super().__init__(message)


class PaymentDeclinedError(GatewayError):
    """Gateway answered and declined the charge (maps to HTTP 402)."""


class GatewayUnavailableError(GatewayError):
    """Gateway unreachable, timed out or returned a server error (maps to HTTP 503)."""


class StorageError(Exception):
    """Local or remote blob storage failure; fatal for the request only (maps to HTTP 500)."""
