"""Runtime configuration read from the environment (.env is loaded by api.main)."""

import hashlib
import hmac
import os
from dataclasses import dataclass, field
from datetime import timedelta

DEV_JWT_SECRET = "dev-secret-change-in-production"
STORAGE_NEO4J = "neo4j"
STORAGE_MEMORY = "memory"


def derive_realtime_secret(secret: str) -> str:
    """Realtime signing key derived from the session secret when none is configured."""
    return hmac.new(secret.encode("utf-8"), b"contactly-realtime", hashlib.sha256).hexdigest()


def _env(name: str, default: str) -> str:
    return os.environ.get(name, default).strip()


@dataclass(frozen=True)
class Settings:
    jwt_secret: str = DEV_JWT_SECRET
    realtime_jwt_secret: str = ""
    session_ttl: timedelta = field(default_factory=lambda: timedelta(hours=24))
    realtime_ttl: timedelta = field(default_factory=lambda: timedelta(seconds=60))
    cookie_secure: bool = False
    client_url: str = "http://localhost:5173"
    storage_backend: str = STORAGE_NEO4J
    neo4j_uri: str = "bolt://localhost:7687"
    neo4j_user: str = "neo4j"
    neo4j_password: str = "password"
    bcrypt_rounds: int = 12

    def __post_init__(self):
        if not self.realtime_jwt_secret:
            object.__setattr__(
                self, "realtime_jwt_secret", derive_realtime_secret(self.jwt_secret)
            )
        if self.storage_backend not in (STORAGE_NEO4J, STORAGE_MEMORY):
            raise ValueError(
                f"STORAGE_BACKEND must be '{STORAGE_NEO4J}' or '{STORAGE_MEMORY}'."
            )

    @classmethod
    def from_env(cls) -> "Settings":
        return cls(
            jwt_secret=_env("JWT_SECRET", DEV_JWT_SECRET),
            realtime_jwt_secret=_env("REALTIME_JWT_SECRET", ""),
            session_ttl=timedelta(hours=float(_env("JWT_EXPIRES_IN_HOURS", "24"))),
            realtime_ttl=timedelta(seconds=int(_env("REALTIME_TOKEN_TTL_SECONDS", "60"))),
            cookie_secure=_env("APP_ENV", "development") == "production",
            client_url=_env("CLIENT_URL", "http://localhost:5173"),
            storage_backend=_env("STORAGE_BACKEND", STORAGE_NEO4J),
            neo4j_uri=_env("NEO4J_URI", "bolt://localhost:7687"),
            neo4j_user=_env("NEO4J_USER", "neo4j"),
            neo4j_password=_env("NEO4J_PASSWORD", "password"),
            bcrypt_rounds=int(_env("BCRYPT_ROUNDS", "12")),
        )
