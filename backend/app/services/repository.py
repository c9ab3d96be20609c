"""Repository contracts for orders and users, plus in-memory implementations.

The in-memory repositories are the default for local development and tests.
``app.services.firestore`` provides Firestore-backed implementations with the
same contract.

``OrderRepository.update`` is the only way to mutate a stored order. It runs
``mutate`` against the current record while holding that order's lock (or
inside a transaction), so a transition is always validated against the state it
will overwrite. ``mutate`` returns the replacement order, or ``None`` to leave
the record untouched.
"""
from __future__ import annotations

import itertools
import threading
from typing import Any, Callable, Dict, List, Optional, Protocol

from ..exceptions import ConflictError, NotFoundError
from ..models import Order, User

OrderMutation = Callable[[Order], Optional[Order]]


class OrderRepository(Protocol):
    def create(self, fields: Dict[str, Any]) -> Order: ...

    def get(self, order_id: int) -> Optional[Order]: ...

    def update(self, order_id: int, mutate: OrderMutation) -> Order: ...

    def list_by_owner(self, user_id: int) -> List[Order]: ...

    def list_all(self) -> List[Order]: ...


class UserRepository(Protocol):
    def create(self, fields: Dict[str, Any]) -> User: ...

    def get(self, user_id: int) -> Optional[User]: ...

    def get_by_username(self, username: str) -> Optional[User]: ...

    def get_by_email(self, email: str) -> Optional[User]: ...


class InMemoryOrderRepository:
    """Dict-backed order store with one lock per order id."""

    def __init__(self) -> None:
        self._orders: Dict[int, Order] = {}
        self._locks: Dict[int, threading.Lock] = {}
        self._ids = itertools.count(1)
        self._create_lock = threading.Lock()

    def create(self, fields: Dict[str, Any]) -> Order:
        with self._create_lock:
            order_id = next(self._ids)
            order = Order(**{**fields, "id": order_id, "version": 1})
            self._locks[order_id] = threading.Lock()
            self._orders[order_id] = order
        return order.model_copy(deep=True)

    def get(self, order_id: int) -> Optional[Order]:
        order = self._orders.get(order_id)
        return order.model_copy(deep=True) if order else None

    def update(self, order_id: int, mutate: OrderMutation) -> Order:
        lock = self._locks.get(order_id)
        if lock is None:
            raise NotFoundError(f"Order {order_id} not found")
        with lock:
            current = self._orders[order_id]
            updated = mutate(current.model_copy(deep=True))
            if updated is None:
                return current.model_copy(deep=True)
            stored = updated.model_copy(update={"id": order_id, "version": current.version + 1}, deep=True)
            self._orders[order_id] = stored
        return stored.model_copy(deep=True)

    def list_by_owner(self, user_id: int) -> List[Order]:
        return [o.model_copy(deep=True) for o in list(self._orders.values()) if o.user_id == user_id]

    def list_all(self) -> List[Order]:
        return [o.model_copy(deep=True) for o in list(self._orders.values())]


class InMemoryUserRepository:
    """Dict-backed user store; username and email are unique case-insensitively."""

    def __init__(self) -> None:
        self._users: Dict[int, User] = {}
        self._ids = itertools.count(1)
        self._lock = threading.Lock()

    def create(self, fields: Dict[str, Any]) -> User:
        with self._lock:
            if self._find("username", fields["username"]):
                raise ConflictError("Username already exists")
            if self._find("email", fields["email"]):
                raise ConflictError("Email already registered")
            user = User(**{**fields, "id": next(self._ids)})
            self._users[user.id] = user
        return user.model_copy()

    def get(self, user_id: int) -> Optional[User]:
        user = self._users.get(user_id)
        return user.model_copy() if user else None

    def get_by_username(self, username: str) -> Optional[User]:
        return self._find("username", username)

    def get_by_email(self, email: str) -> Optional[User]:
        return self._find("email", email)

    def _find(self, field: str, value: str) -> Optional[User]:
        needle = value.lower()
        for user in list(self._users.values()):
            if getattr(user, field).lower() == needle:
                return user.model_copy()
        return None
