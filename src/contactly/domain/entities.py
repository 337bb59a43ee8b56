"""Domain entities: User, Contact, Identity, and ContactChangeEvent."""

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum

# Optional contact attributes; name is handled separately because it is required.
CONTACT_OPTIONAL_FIELDS = ("email", "phone", "address", "notes")
CONTACT_FIELDS = ("name",) + CONTACT_OPTIONAL_FIELDS

NAME_MAX_LENGTH = 255


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class User:
    """
    A registered account. Email is unique and compared exactly as stored.
    Users are never deleted by this core.
    """

    email: str
    name: str
    password_hash: str
    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    created_at: datetime = field(default_factory=_utcnow)

    def __post_init__(self):
        if not self.email or not self.email.strip():
            raise ValueError("User email must be non-empty.")
        if not self.name or not self.name.strip():
            raise ValueError("User name must be non-empty.")


@dataclass(frozen=True)
class Identity:
    """Authenticated caller, as carried by a validated session token."""

    user_id: str
    email: str


@dataclass(frozen=True)
class Contact:
    """
    A person in one user's address book.
    A Contact belongs to exactly one owner and always has a name.
    """

    owner_id: str
    name: str
    email: str | None = None
    phone: str | None = None
    address: str | None = None
    notes: str | None = None
    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    created_at: datetime = field(default_factory=_utcnow)
    updated_at: datetime = field(default_factory=_utcnow)

    def __post_init__(self):
        if not self.owner_id:
            raise ValueError("Contact must have an owner.")
        if not self.name or not self.name.strip():
            raise ValueError("Contact name must be non-empty.")
        if len(self.name) > NAME_MAX_LENGTH:
            raise ValueError(f"Contact name must be at most {NAME_MAX_LENGTH} chars.")


class ChangeKind(str, Enum):
    CREATED = "created"
    UPDATED = "updated"
    DELETED = "deleted"


@dataclass(frozen=True)
class ContactChangeEvent:
    """One committed mutation, pushed to the owner's live connections. Never stored."""

    kind: ChangeKind
    contact: Contact
    owner_id: str


def contact_to_dict(contact: Contact) -> dict:
    """JSON-ready view of a contact (timestamps as ISO strings)."""
    return {
        "id": contact.id,
        "owner_id": contact.owner_id,
        "name": contact.name,
        "email": contact.email,
        "phone": contact.phone,
        "address": contact.address,
        "notes": contact.notes,
        "created_at": contact.created_at.isoformat(),
        "updated_at": contact.updated_at.isoformat(),
    }
