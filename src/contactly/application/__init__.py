"""Application layer: use cases, ports, and DTOs. Depends only on domain."""

from contactly.application.auth_service import AuthService
from contactly.application.contact_service import ContactService
from contactly.application.dto import (
    Authenticated,
    ContactRemoved,
    ContactSaved,
    Duplicate,
    Invalid,
    InvalidCredentials,
    NotFound,
    Registered,
)
from contactly.application.ports import ContactRepository, PasswordHasher, UserRepository

__all__ = [
    "AuthService",
    "Authenticated",
    "ContactRemoved",
    "ContactRepository",
    "ContactSaved",
    "ContactService",
    "Duplicate",
    "Invalid",
    "InvalidCredentials",
    "NotFound",
    "PasswordHasher",
    "Registered",
    "UserRepository",
]
