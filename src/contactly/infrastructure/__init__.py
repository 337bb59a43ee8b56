"""Infrastructure layer: concrete implementations of application ports."""

from contactly.infrastructure.memory_repository import (
    InMemoryContactRepository,
    InMemoryUserRepository,
)
from contactly.infrastructure.passwords import BcryptPasswordHasher
from contactly.infrastructure.persistence.neo4j_repository import (
    Neo4jContactRepository,
    Neo4jUserRepository,
    ensure_constraints,
)
from contactly.infrastructure.realtime import (
    AuthRejected,
    Connection,
    ConnectionState,
    RealtimeHub,
)
from contactly.infrastructure.tokens import (
    InvalidToken,
    RealtimeClaims,
    RealtimeGrant,
    TokenError,
    TokenExpired,
    TokenIssuer,
    WrongTokenKind,
)

__all__ = [
    "AuthRejected",
    "BcryptPasswordHasher",
    "Connection",
    "ConnectionState",
    "InMemoryContactRepository",
    "InMemoryUserRepository",
    "InvalidToken",
    "Neo4jContactRepository",
    "Neo4jUserRepository",
    "RealtimeClaims",
    "RealtimeGrant",
    "RealtimeHub",
    "TokenError",
    "TokenExpired",
    "TokenIssuer",
    "WrongTokenKind",
    "ensure_constraints",
]
