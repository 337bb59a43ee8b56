"""
Contactly core: clean-architecture layout.

- domain: entities (User, Contact, Identity, ContactChangeEvent). No outer dependencies.
- application: use cases (AuthService, ContactService), ports, result DTOs.
- infrastructure: adapters (in-memory and Neo4j repositories, bcrypt hasher,
  JWT issuer, realtime hub).
"""

from contactly.application import (
    AuthService,
    ContactRemoved,
    ContactSaved,
    ContactService,
    Duplicate,
    Invalid,
    NotFound,
)
from contactly.domain import ChangeKind, Contact, ContactChangeEvent, Identity, User
from contactly.infrastructure import RealtimeHub, TokenIssuer

__all__ = [
    "AuthService",
    "ChangeKind",
    "Contact",
    "ContactChangeEvent",
    "ContactRemoved",
    "ContactSaved",
    "ContactService",
    "Duplicate",
    "Identity",
    "Invalid",
    "NotFound",
    "RealtimeHub",
    "TokenIssuer",
    "User",
]
