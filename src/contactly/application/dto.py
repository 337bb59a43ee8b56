"""Result types for the auth and contact use cases."""

from dataclasses import dataclass

from contactly.domain import Contact, User


@dataclass(frozen=True)
class Invalid:
    """Input rejected before touching storage (e.g. missing name, no fields to update)."""

    reason: str


@dataclass(frozen=True)
class NotFound:
    """No contact with this id for the caller. Also returned for contacts owned by someone else."""

    contact_id: str


# --- auth results ---


@dataclass(frozen=True)
class Registered:
    """Account created."""

    user: User


@dataclass(frozen=True)
class Duplicate:
    """An account with this email already exists."""

    email: str


@dataclass(frozen=True)
class Authenticated:
    """Email and password matched a stored account."""

    user: User


@dataclass(frozen=True)
class InvalidCredentials:
    """Unknown email or wrong password. The two cases are not told apart."""

    pass


# --- contact mutation results ---


@dataclass(frozen=True)
class ContactSaved:
    """Contact was created or updated; carries the stored snapshot."""

    contact: Contact
    created: bool = False


@dataclass(frozen=True)
class ContactRemoved:
    """Contact was deleted; carries the last stored snapshot."""

    contact: Contact
