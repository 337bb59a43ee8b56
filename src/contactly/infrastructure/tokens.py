"""Session and realtime JWTs.

Two token kinds, each signed with its own secret and tagged with a ``kind`` claim:

- session: long-lived, carried in the HTTP-only auth cookie, identifies the caller.
- realtime: short-lived, authorizes exactly one realtime handshake and carries
  the session nonce that identifies the logical realtime session.

Neither kind validates as the other.
"""

import secrets
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

from jose import ExpiredSignatureError, JWTError, jwt

from contactly.domain import Identity, User

ALGORITHM = "HS256"
KIND_SESSION = "session"
KIND_REALTIME = "realtime"

DEFAULT_SESSION_TTL = timedelta(hours=24)
DEFAULT_REALTIME_TTL = timedelta(seconds=60)


class TokenError(Exception):
    """Base for token failures. ``reason`` is a stable, machine-readable code."""

    reason = "token_invalid"


class InvalidToken(TokenError):
    """Bad signature, malformed token, or missing claims."""


class TokenExpired(InvalidToken):
    reason = "token_expired"


class WrongTokenKind(InvalidToken):
    """A valid-looking token of the other kind (e.g. a session token replayed as realtime)."""

    reason = "wrong_token_kind"


@dataclass(frozen=True)
class RealtimeGrant:
    """A freshly issued realtime token and the nonce it carries."""

    token: str
    nonce: str
    expires_at: datetime


@dataclass(frozen=True)
class RealtimeClaims:
    user_id: str
    email: str
    nonce: str


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class TokenIssuer:
    """Issues and validates both token kinds."""

    def __init__(
        self,
        session_secret: str,
        realtime_secret: str,
        *,
        session_ttl: timedelta = DEFAULT_SESSION_TTL,
        realtime_ttl: timedelta = DEFAULT_REALTIME_TTL,
        now: Callable[[], datetime] = _utcnow,
    ) -> None:
        if not session_secret or not realtime_secret:
            raise ValueError("Both session and realtime secrets are required.")
        if session_secret == realtime_secret:
            raise ValueError("Session and realtime tokens must use different secrets.")
        self._session_secret = session_secret
        self._realtime_secret = realtime_secret
        self._session_ttl = session_ttl
        self._realtime_ttl = realtime_ttl
        self._now = now

    @property
    def session_ttl(self) -> timedelta:
        return self._session_ttl

    @property
    def realtime_ttl(self) -> timedelta:
        return self._realtime_ttl

    def issue_primary(self, user: User) -> str:
        issued_at = self._now()
        claims = {
            "sub": user.id,
            "email": user.email,
            "kind": KIND_SESSION,
            "iat": issued_at,
            "exp": issued_at + self._session_ttl,
        }
        return jwt.encode(claims, self._session_secret, algorithm=ALGORITHM)

    def validate_primary(self, token: str) -> Identity:
        claims = self._decode(token, self._session_secret, KIND_SESSION)
        return Identity(user_id=claims["sub"], email=claims["email"])

    def issue_realtime(self, user: User, nonce: str | None = None) -> RealtimeGrant:
        """Issue a realtime token. Pass the previous nonce to keep the same logical session."""
        nonce = nonce or secrets.token_urlsafe(16)
        issued_at = self._now()
        expires_at = issued_at + self._realtime_ttl
        claims = {
            "sub": user.id,
            "email": user.email,
            "kind": KIND_REALTIME,
            "nonce": nonce,
            "iat": issued_at,
            "exp": expires_at,
        }
        token = jwt.encode(claims, self._realtime_secret, algorithm=ALGORITHM)
        return RealtimeGrant(token=token, nonce=nonce, expires_at=expires_at)

    def validate_realtime(self, token: str) -> RealtimeClaims:
        claims = self._decode(token, self._realtime_secret, KIND_REALTIME)
        nonce = claims.get("nonce")
        if not isinstance(nonce, str) or not nonce:
            raise InvalidToken("Realtime token has no session nonce.")
        return RealtimeClaims(user_id=claims["sub"], email=claims["email"], nonce=nonce)

    def recover_nonce(self, token: str | None, user_id: str) -> str | None:
        """Nonce of an earlier realtime token for this user, even if it has expired."""
        if not token:
            return None
        try:
            claims = jwt.decode(
                token,
                self._realtime_secret,
                algorithms=[ALGORITHM],
                options={"verify_exp": False},
            )
        except JWTError:
            return None
        if claims.get("kind") != KIND_REALTIME or claims.get("sub") != user_id:
            return None
        nonce = claims.get("nonce")
        return nonce if isinstance(nonce, str) and nonce else None

    def _decode(self, token: str, secret: str, expected_kind: str) -> dict:
        if not token:
            raise InvalidToken("Token is empty.")
        try:
            claims = jwt.decode(token, secret, algorithms=[ALGORITHM])
        except ExpiredSignatureError as e:
            raise TokenExpired("Token has expired.") from e
        except JWTError as e:
            if self._is_other_kind(token, expected_kind):
                raise WrongTokenKind(f"Expected a {expected_kind} token.") from e
            raise InvalidToken("Token signature or format is invalid.") from e

        if claims.get("kind") != expected_kind:
            raise WrongTokenKind(f"Expected a {expected_kind} token.")
        if not isinstance(claims.get("sub"), str) or not isinstance(claims.get("email"), str):
            raise InvalidToken("Token is missing subject or email.")
        return claims

    def _is_other_kind(self, token: str, expected_kind: str) -> bool:
        """True only when the token is genuinely signed as the other kind."""
        if expected_kind == KIND_SESSION:
            other_secret, other_kind = self._realtime_secret, KIND_REALTIME
        else:
            other_secret, other_kind = self._session_secret, KIND_SESSION
        try:
            claims = jwt.decode(
                token, other_secret, algorithms=[ALGORITHM], options={"verify_exp": False}
            )
        except JWTError:
            return False
        return claims.get("kind") == other_kind
