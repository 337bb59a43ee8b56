"""Owner-scoped contact use cases: list, get, create, update, delete."""

from collections.abc import Callable
from datetime import datetime, timezone

from contactly.application.dto import (
    ContactRemoved,
    ContactSaved,
    Invalid,
    NotFound,
)
from contactly.application.ports import ContactRepository
from contactly.domain import CONTACT_FIELDS, CONTACT_OPTIONAL_FIELDS, Contact, Identity
from contactly.domain.entities import NAME_MAX_LENGTH


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _clean_optional(value: object) -> str | None:
    if value is None:
        return None
    return str(value).strip() or None


def _check_name(value: object) -> Invalid | str:
    name = (str(value) if value is not None else "").strip()
    if not name:
        return Invalid(reason="Name is required.")
    if len(name) > NAME_MAX_LENGTH:
        return Invalid(reason=f"Name must be at most {NAME_MAX_LENGTH} characters.")
    return name


class ContactService:
    """Contact CRUD for one caller at a time. Identity is always passed in, never stored."""

    def __init__(
        self,
        repository: ContactRepository,
        *,
        now: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._repo = repository
        self._now = now

    def list_contacts(self, identity: Identity) -> list[Contact]:
        """Return the caller's contacts ordered by name (case-insensitive)."""
        return self._repo.list_for_owner(identity.user_id)

    def get_contact(self, identity: Identity, contact_id: str) -> Contact | NotFound:
        contact = self._repo.get(identity.user_id, contact_id)
        if contact is None:
            return NotFound(contact_id=contact_id)
        return contact

    def create_contact(self, identity: Identity, fields: dict) -> ContactSaved | Invalid:
        """Create a contact owned by the caller. Name is required."""
        name = _check_name(fields.get("name"))
        if isinstance(name, Invalid):
            return name

        ts = self._now()
        contact = Contact(
            owner_id=identity.user_id,
            name=name,
            created_at=ts,
            updated_at=ts,
            **{key: _clean_optional(fields.get(key)) for key in CONTACT_OPTIONAL_FIELDS},
        )
        self._repo.add(contact)
        return ContactSaved(contact=contact, created=True)

    def update_contact(
        self, identity: Identity, contact_id: str, fields: dict
    ) -> ContactSaved | NotFound | Invalid:
        """Apply a partial update. Only keys present in fields are changed."""
        changes: dict[str, str | None] = {}
        for key in CONTACT_FIELDS:
            if key not in fields:
                continue
            if key == "name":
                name = _check_name(fields[key])
                if isinstance(name, Invalid):
                    return name
                changes[key] = name
            else:
                changes[key] = _clean_optional(fields[key])
        if not changes:
            return Invalid(reason="No fields to update.")

        updated = self._repo.update(identity.user_id, contact_id, changes, self._now())
        if updated is None:
            return NotFound(contact_id=contact_id)
        return ContactSaved(contact=updated)

    def delete_contact(
        self, identity: Identity, contact_id: str
    ) -> ContactRemoved | NotFound:
        removed = self._repo.delete(identity.user_id, contact_id)
        if removed is None:
            return NotFound(contact_id=contact_id)
        return ContactRemoved(contact=removed)
