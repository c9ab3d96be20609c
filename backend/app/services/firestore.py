"""Firestore-backed order and user repositories."""
from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from google.cloud import firestore

from ..config import get_settings
from ..exceptions import ConflictError, NotFoundError
from ..models import Order, User
from .repository import OrderMutation

logger = logging.getLogger(__name__)


def _client() -> firestore.Client:
    settings = get_settings()
    # Use explicit database if provided in env, else default
    if settings.FIRESTORE_DATABASE_ID:
        return firestore.Client(
            project=settings.GCP_PROJECT or None,
            database=settings.FIRESTORE_DATABASE_ID,
        )
    return firestore.Client()


def _next_id(tx: firestore.Transaction, counter: firestore.DocumentReference) -> int:
    snap = counter.get(transaction=tx)
    value = int((snap.to_dict() or {}).get("value", 0)) + 1
    tx.set(counter, {"value": value})
    return value


def _order_to_doc(order: Order) -> Dict[str, Any]:
    doc = order.model_dump(mode="json")
    # Keep native timestamps so range queries and ordering work server-side
    doc["created_at"] = order.created_at
    doc["updated_at"] = order.updated_at
    return doc


class FirestoreOrderRepository:
    """Orders stored one document per id; mutations run inside transactions."""

    def __init__(self, client: Optional[firestore.Client] = None) -> None:
        self.client = client or _client()
        self._orders = self.client.collection("orders")
        self._counter = self.client.collection("counters").document("orders")

    def create(self, fields: Dict[str, Any]) -> Order:
        @firestore.transactional
        def txn(tx: firestore.Transaction) -> Order:
            order_id = _next_id(tx, self._counter)
            order = Order(**{**fields, "id": order_id, "version": 1})
            tx.create(self._orders.document(str(order_id)), _order_to_doc(order))
            return order

        return txn(self.client.transaction())

    def get(self, order_id: int) -> Optional[Order]:
        snap = self._orders.document(str(order_id)).get()
        return Order.model_validate(snap.to_dict()) if snap.exists else None

    def update(self, order_id: int, mutate: OrderMutation) -> Order:
        ref = self._orders.document(str(order_id))

        # The client retries this function on contention, so mutate must stay pure.
        @firestore.transactional
        def txn(tx: firestore.Transaction) -> Order:
            snap = ref.get(transaction=tx)
            if not snap.exists:
                raise NotFoundError(f"Order {order_id} not found")
            current = Order.model_validate(snap.to_dict())
            updated = mutate(current.model_copy(deep=True))
            if updated is None:
                return current
            stored = updated.model_copy(update={"id": order_id, "version": current.version + 1})
            tx.set(ref, _order_to_doc(stored))
            return stored

        return txn(self.client.transaction())

    def list_by_owner(self, user_id: int) -> List[Order]:
        q = self._orders.where("user_id", "==", user_id).order_by("created_at")
        return [Order.model_validate(doc.to_dict()) for doc in q.stream()]

    def list_all(self) -> List[Order]:
        q = self._orders.order_by("created_at")
        return [Order.model_validate(doc.to_dict()) for doc in q.stream()]


class FirestoreUserRepository:
    """Users keyed by id, with lowercase username/email claim documents for uniqueness."""

    def __init__(self, client: Optional[firestore.Client] = None) -> None:
        self.client = client or _client()
        self._users = self.client.collection("users")
        self._keys = self.client.collection("user_keys")
        self._counter = self.client.collection("counters").document("users")

    def create(self, fields: Dict[str, Any]) -> User:
        username_key = self._keys.document(f"username:{fields['username'].lower()}")
        email_key = self._keys.document(f"email:{fields['email'].lower()}")

        @firestore.transactional
        def txn(tx: firestore.Transaction) -> User:
            if username_key.get(transaction=tx).exists:
                raise ConflictError("Username already exists")
            if email_key.get(transaction=tx).exists:
                raise ConflictError("Email already registered")
            user_id = _next_id(tx, self._counter)
            user = User(**{**fields, "id": user_id})
            doc = user.model_dump(mode="json")
            doc["created_at"] = user.created_at
            tx.create(self._users.document(str(user_id)), doc)
            tx.create(username_key, {"user_id": user_id})
            tx.create(email_key, {"user_id": user_id})
            return user

        return txn(self.client.transaction())

    def get(self, user_id: int) -> Optional[User]:
        snap = self._users.document(str(user_id)).get()
        return User.model_validate(snap.to_dict()) if snap.exists else None

    def get_by_username(self, username: str) -> Optional[User]:
        return self._by_key(f"username:{username.lower()}")

    def get_by_email(self, email: str) -> Optional[User]:
        return self._by_key(f"email:{email.lower()}")

    def _by_key(self, key: str) -> Optional[User]:
        snap = self._keys.document(key).get()
        if not snap.exists:
            return None
        user_id = (snap.to_dict() or {}).get("user_id")
        if user_id is None:
            logger.warning("User key %s has no user_id", key)
            return None
        return self.get(int(user_id))
