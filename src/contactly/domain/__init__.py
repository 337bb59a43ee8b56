"""Domain layer: entities and value objects. No dependencies on outer layers."""

from contactly.domain.entities import (
    CONTACT_FIELDS,
    CONTACT_OPTIONAL_FIELDS,
    ChangeKind,
    Contact,
    ContactChangeEvent,
    Identity,
    User,
    contact_to_dict,
)

__all__ = [
    "CONTACT_FIELDS",
    "CONTACT_OPTIONAL_FIELDS",
    "ChangeKind",
    "Contact",
    "ContactChangeEvent",
    "Identity",
    "User",
    "contact_to_dict",
]
