"""User registration, password hashing and bearer tokens."""
from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from typing import Optional

from jose import JWTError, jwt
from passlib.context import CryptContext

from ..config import Settings, get_settings
from ..exceptions import AuthenticationError, ConflictError, NotFoundError
from ..models import Role, User
from .access import Principal
from .repository import UserRepository

logger = logging.getLogger(__name__)

pwd_context = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")


def get_password_hash(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    return pwd_context.verify(plain_password, hashed_password)


class UserService:
    def __init__(self, repo: UserRepository, settings: Optional[Settings] = None) -> None:
        self.repo = repo
        self.settings = settings or get_settings()

    def register(
        self,
        username: str,
        password: str,
        name: str,
        email: str,
        phone: Optional[str] = None,
        address: Optional[str] = None,
    ) -> User:
        """Create a regular user. Role is always ``user``; clients cannot set it."""
        return self._create(username, password, name, email, phone, address, Role.USER)

    def ensure_admin(self, username: str, password: str, email: str) -> Optional[User]:
        """Seed an admin account unless one with that username already exists."""
        if not username or not password:
            return None
        existing = self.repo.get_by_username(username)
        if existing:
            return existing
        user = self._create(username, password, "Administrator", email, None, None, Role.ADMIN)
        logger.info("Seeded admin account %s", username)
        return user

    def _create(self, username, password, name, email, phone, address, role: Role) -> User:
        username = username.strip()
        email = email.strip()
        if self.repo.get_by_username(username):
            raise ConflictError("Username already exists")
        if self.repo.get_by_email(email):
            raise ConflictError("Email already registered")
        return self.repo.create(
            {
                "username": username,
                "password_hash": get_password_hash(password),
                "name": name,
                "email": email,
                "phone": phone,
                "address": address,
                "role": role,
            }
        )

    def authenticate(self, username: str, password: str) -> User:
        user = self.repo.get_by_username(username.strip())
        if user is None or not verify_password(password, user.password_hash):
            raise AuthenticationError("Invalid username or password")
        return user

    def get(self, user_id: int) -> User:
        user = self.repo.get(user_id)
        if user is None:
            raise NotFoundError(f"User {user_id} not found")
        return user

    def create_access_token(self, user: User, expires_delta: Optional[timedelta] = None) -> str:
        expire = datetime.now(timezone.utc) + (
            expires_delta or timedelta(minutes=self.settings.ACCESS_TOKEN_EXPIRE_MINUTES)
        )
        claims = {"sub": str(user.id), "role": Role(user.role).value, "exp": expire}
        return jwt.encode(claims, self.settings.JWT_SECRET, algorithm=self.settings.JWT_ALGORITHM)

    def principal_from_token(self, token: str) -> Principal:
        """Decode a bearer token and resolve it to the stored user's principal.

        The role is taken from the user record, not the token, so tokens never
        grant more than the account currently has.
        """
        try:
            payload = jwt.decode(token, self.settings.JWT_SECRET, algorithms=[self.settings.JWT_ALGORITHM])
            user_id = int(payload.get("sub"))
        except (JWTError, TypeError, ValueError) as exc:
            raise AuthenticationError("Could not validate credentials") from exc
        user = self.repo.get(user_id)
        if user is None:
            raise AuthenticationError("Could not validate credentials")
        return Principal.from_user(user)
