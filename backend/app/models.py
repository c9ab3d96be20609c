"""Pydantic models for domain records and API requests/responses."""
from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Role(str, Enum):
    USER = "user"
    ADMIN = "admin"


class OrderStatus(str, Enum):
    """Fulfillment progress of an order."""

    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class PaymentStatus(str, Enum):
    """Billing axis of an order, independent of OrderStatus."""

    PENDING = "pending"
    COMPLETED = "completed"


class User(BaseModel):
    """Stored user record. Never returned to clients as-is (see UserPublic)."""

    id: int
    username: str = Field(..., min_length=3, max_length=64)
    password_hash: str
    name: str = Field(..., min_length=1, max_length=120)
    email: str
    phone: Optional[str] = None
    address: Optional[str] = None
    role: Role = Role.USER
    created_at: datetime = Field(default_factory=utcnow)


class UserPublic(BaseModel):
    id: int
    username: str
    name: str
    email: str
    phone: Optional[str] = None
    address: Optional[str] = None
    role: Role
    created_at: datetime

    @classmethod
    def from_user(cls, user: User) -> "UserPublic":
        return cls.model_validate(user.model_dump(exclude={"password_hash"}))


class Service(BaseModel):
    """A catalog entry. Prices are whole currency units."""

    id: int
    name: str
    description: str
    category: str
    price: int = Field(..., gt=0)
    processing_time: str
    requirements: str
    icon: str
    badge: Optional[str] = None
    badge_color: Optional[str] = None
    created_at: datetime = Field(default_factory=utcnow)


class OrderDocument(BaseModel):
    """Metadata kept for each uploaded document; enough to serve it again later."""

    filename: str = Field(..., description="Stored (generated) blob name")
    originalname: str
    path: str
    mimetype: str
    size: int = Field(..., ge=0)


class Order(BaseModel):
    id: int
    user_id: int
    service_id: int
    status: OrderStatus = OrderStatus.PENDING
    payment_status: PaymentStatus = PaymentStatus.PENDING
    documents: List[OrderDocument] = Field(..., min_length=1)
    total_amount: int = Field(..., gt=0, description="Service price snapshot taken at creation")
    notes: Optional[str] = None
    payment_reference: Optional[str] = None
    version: int = 1
    created_at: datetime
    updated_at: datetime


# --- Requests ---


class RegisterRequest(BaseModel):
    username: str = Field(..., min_length=3, max_length=64)
    password: str = Field(..., min_length=6, max_length=128)
    name: str = Field(..., min_length=1, max_length=120)
    email: str = Field(..., pattern=r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
    phone: Optional[str] = None
    address: Optional[str] = None


class StatusUpdate(BaseModel):
    status: OrderStatus


class PaymentStatusUpdate(BaseModel):
    status: PaymentStatus


class PaymentRequest(BaseModel):
    """Authenticated "pay now" action for the caller's own order."""

    orderId: int
    paymentMethod: str = Field(default="upi", max_length=32)


class PaymentWebhook(BaseModel):
    """Asynchronous confirmation sent by the payment gateway."""

    orderId: int
    status: str = Field(..., description="Gateway outcome, e.g. 'succeeded' or 'failed'")
    reference: Optional[str] = None


# --- Responses ---


class Token(BaseModel):
    access_token: str
    token_type: str = "bearer"


class Limits(BaseModel):
    """Upload limits exposed to the frontend."""

    maxFiles: int = Field(..., description="Maximum documents per order")
    maxSizeMb: int = Field(..., description="Maximum size per document in MB")
    acceptedMime: List[str]


class PaymentResult(BaseModel):
    success: bool
    orderId: int
    paymentStatus: PaymentStatus
    reference: Optional[str] = None
    message: Optional[str] = None
