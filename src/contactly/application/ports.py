"""Application ports (interfaces). Implemented by infrastructure adapters."""

from datetime import datetime
from typing import Protocol

from contactly.domain import Contact, User


class UserRepository(Protocol):
    """Persists user accounts. Email lookups are exact (case-sensitive)."""

    def add(self, user: User) -> bool:
        """Store a user. Returns False (and stores nothing) if the email is taken."""
        ...

    def get_by_id(self, user_id: str) -> User | None:
        ...

    def get_by_email(self, email: str) -> User | None:
        ...


class ContactRepository(Protocol):
    """Persists contacts. Every lookup is scoped by owner id as well as contact id."""

    def add(self, contact: Contact) -> None:
        ...

    def get(self, owner_id: str, contact_id: str) -> Contact | None:
        """Return the contact if it exists and belongs to owner_id, else None."""
        ...

    def list_for_owner(self, owner_id: str) -> list[Contact]:
        """Return the owner's contacts ordered by case-folded name."""
        ...

    def update(
        self, owner_id: str, contact_id: str, changes: dict, updated_at: datetime
    ) -> Contact | None:
        """Apply field changes. Returns the new snapshot, or None if not found for this owner."""
        ...

    def delete(self, owner_id: str, contact_id: str) -> Contact | None:
        """Remove the contact. Returns the deleted snapshot, or None if not found for this owner."""
        ...


class PasswordHasher(Protocol):
    def hash(self, password: str) -> str:
        ...

    def verify(self, password: str, password_hash: str) -> bool:
        ...
