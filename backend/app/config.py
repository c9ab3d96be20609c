"""Application settings and configuration helpers."""
from __future__ import annotations

import os
from functools import lru_cache
from typing import List
from dotenv import load_dotenv, find_dotenv


class Settings:
    """Runtime configuration loaded from environment variables.

    Defaults are suitable for local development: in-memory repositories,
    uploads on local disk, and an emulated payment gateway. Production should
    set explicit values via environment variables and Secret Manager.
    """

    APP_NAME: str = "Document Services API"
    API_PREFIX: str = "/api"

    # CORS
    CORS_ORIGINS: List[str]

    # Logging
    LOG_LEVEL: str

    # Upload limits
    MAX_FILES: int
    MAX_SIZE_MB: int
    ACCEPTED_MIME: List[str]

    # Document storage
    STORAGE_BACKEND: str  # "local" or "gcs"
    UPLOAD_DIR: str
    GCS_BUCKET: str

    # Persistence
    ORDER_BACKEND: str  # "memory" or "firestore"
    GCP_PROJECT: str
    FIRESTORE_DATABASE_ID: str

    # Auth
    JWT_SECRET: str
    JWT_ALGORITHM: str
    ACCESS_TOKEN_EXPIRE_MINUTES: int
    ADMIN_USERNAME: str
    ADMIN_PASSWORD: str
    ADMIN_EMAIL: str

    # Payment gateway
    PAYMENT_GATEWAY_URL: str
    PAYMENT_GATEWAY_API_KEY: str
    PAYMENT_GATEWAY_TIMEOUT_SECONDS: float
    PAYMENT_GATEWAY_EMULATE: bool
    PAYMENT_WEBHOOK_SECRET: str

    def __init__(self) -> None:
        # Load .env once (supports parent directories)
        load_dotenv(find_dotenv(), override=False)
        self.CORS_ORIGINS = self._get_list("CORS_ORIGINS", default="*")
        self.LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

        self.MAX_FILES = int(os.getenv("MAX_FILES", "5"))
        self.MAX_SIZE_MB = int(os.getenv("MAX_SIZE_MB", "5"))
        self.ACCEPTED_MIME = self._get_list(
            "ACCEPTED_MIME", default="image/jpeg,image/png,application/pdf"
        )

        self.STORAGE_BACKEND = os.getenv("STORAGE_BACKEND", "local").lower()
        self.UPLOAD_DIR = os.getenv("UPLOAD_DIR", "uploads")
        self.GCS_BUCKET = os.getenv("GCS_BUCKET", "document_services_uploads")

        self.ORDER_BACKEND = os.getenv("ORDER_BACKEND", "memory").lower()
        self.GCP_PROJECT = os.getenv("GCP_PROJECT", os.getenv("GOOGLE_CLOUD_PROJECT", ""))
        self.FIRESTORE_DATABASE_ID = os.getenv("FIRESTORE_DATABASE_ID", "(default)")

        self.JWT_SECRET = os.getenv("JWT_SECRET", "dev-secret-key-change-me")
        self.JWT_ALGORITHM = os.getenv("JWT_ALGORITHM", "HS256")
        self.ACCESS_TOKEN_EXPIRE_MINUTES = int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", str(60 * 24)))
        # Optional admin account seeded at startup; skipped when username/password are blank
        self.ADMIN_USERNAME = os.getenv("ADMIN_USERNAME", "")
        self.ADMIN_PASSWORD = os.getenv("ADMIN_PASSWORD", "")
        self.ADMIN_EMAIL = os.getenv("ADMIN_EMAIL", "admin@example.com")

        self.PAYMENT_GATEWAY_URL = os.getenv("PAYMENT_GATEWAY_URL", "")  # e.g., https://pay.example.com/v1/charges
        self.PAYMENT_GATEWAY_API_KEY = os.getenv("PAYMENT_GATEWAY_API_KEY", "")
        self.PAYMENT_GATEWAY_TIMEOUT_SECONDS = float(os.getenv("PAYMENT_GATEWAY_TIMEOUT_SECONDS", "15"))
        # Emulation is on by default only when no real gateway is configured
        emulate_default = "false" if self.PAYMENT_GATEWAY_URL else "true"
        self.PAYMENT_GATEWAY_EMULATE = os.getenv("PAYMENT_GATEWAY_EMULATE", emulate_default).lower() == "true"
        self.PAYMENT_WEBHOOK_SECRET = os.getenv("PAYMENT_WEBHOOK_SECRET", "")

    @property
    def max_size_bytes(self) -> int:
        return self.MAX_SIZE_MB * 1024 * 1024

    @staticmethod
    def _get_list(name: str, default: str = "") -> List[str]:
        raw = os.getenv(name, default)
        return [item.strip() for item in raw.split(",") if item.strip()] or ["*"]


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return a cached Settings instance."""
    return Settings()
