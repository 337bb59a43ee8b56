"""In-memory implementations of UserRepository and ContactRepository (no DB).

Both are safe to share between worker threads; each guards its dicts with a lock.
"""

import dataclasses
import threading
from datetime import datetime

from contactly.domain import Contact, User


class InMemoryUserRepository:
    """Stores users in memory, indexed by id and by exact email."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._by_id: dict[str, User] = {}
        self._id_by_email: dict[str, str] = {}

    def add(self, user: User) -> bool:
        with self._lock:
            if user.email in self._id_by_email or user.id in self._by_id:
                return False
            self._by_id[user.id] = user
            self._id_by_email[user.email] = user.id
            return True

    def get_by_id(self, user_id: str) -> User | None:
        with self._lock:
            return self._by_id.get(user_id)

    def get_by_email(self, email: str) -> User | None:
        with self._lock:
            user_id = self._id_by_email.get(email)
            return self._by_id.get(user_id) if user_id else None


class InMemoryContactRepository:
    """Stores contacts in memory. A contact is only visible through its owner's id."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._by_id: dict[str, Contact] = {}

    def _owned(self, owner_id: str, contact_id: str) -> Contact | None:
        contact = self._by_id.get(contact_id)
        if contact is None or contact.owner_id != owner_id:
            return None
        return contact

    def add(self, contact: Contact) -> None:
        with self._lock:
            self._by_id[contact.id] = contact

    def get(self, owner_id: str, contact_id: str) -> Contact | None:
        with self._lock:
            return self._owned(owner_id, contact_id)

    def list_for_owner(self, owner_id: str) -> list[Contact]:
        with self._lock:
            owned = [c for c in self._by_id.values() if c.owner_id == owner_id]
        return sorted(owned, key=lambda c: (c.name.casefold(), c.created_at))

    def update(
        self, owner_id: str, contact_id: str, changes: dict, updated_at: datetime
    ) -> Contact | None:
        with self._lock:
            contact = self._owned(owner_id, contact_id)
            if contact is None:
                return None
            updated = dataclasses.replace(contact, updated_at=updated_at, **changes)
            self._by_id[contact_id] = updated
            return updated

    def delete(self, owner_id: str, contact_id: str) -> Contact | None:
        with self._lock:
            contact = self._owned(owner_id, contact_id)
            if contact is None:
                return None
            del self._by_id[contact_id]
            return contact
