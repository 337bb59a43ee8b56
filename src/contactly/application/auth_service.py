"""Account registration and credential checks."""

import logging

from contactly.application.dto import (
    Authenticated,
    Duplicate,
    Invalid,
    InvalidCredentials,
    Registered,
)
from contactly.application.ports import PasswordHasher, UserRepository
from contactly.domain import User

logger = logging.getLogger(__name__)

PASSWORD_MIN_LENGTH = 8
# bcrypt only looks at the first 72 bytes.
PASSWORD_MAX_BYTES = 72


class AuthService:
    """Register users and verify email/password pairs."""

    def __init__(self, users: UserRepository, hasher: PasswordHasher) -> None:
        self._users = users
        self._hasher = hasher

    def register(
        self, email: str, password: str, name: str
    ) -> Registered | Duplicate | Invalid:
        email = (email or "").strip()
        name = (name or "").strip()
        password = password or ""
        if not email or "@" not in email:
            return Invalid(reason="A valid email is required.")
        if not name:
            return Invalid(reason="Name is required.")
        if len(password) < PASSWORD_MIN_LENGTH:
            return Invalid(
                reason=f"Password must be at least {PASSWORD_MIN_LENGTH} characters."
            )
        if len(password.encode("utf-8")) > PASSWORD_MAX_BYTES:
            return Invalid(reason=f"Password must be at most {PASSWORD_MAX_BYTES} bytes.")

        if self._users.get_by_email(email) is not None:
            return Duplicate(email=email)

        user = User(email=email, name=name, password_hash=self._hasher.hash(password))
        # add() re-checks under the repository's own guard; a concurrent signup can win.
        if not self._users.add(user):
            return Duplicate(email=email)
        logger.info("Registered user %s", user.id)
        return Registered(user=user)

    def login(self, email: str, password: str) -> Authenticated | InvalidCredentials:
        user = self._users.get_by_email((email or "").strip())
        if user is None:
            return InvalidCredentials()
        if not self._hasher.verify(password or "", user.password_hash):
            return InvalidCredentials()
        return Authenticated(user=user)

    def get_user(self, user_id: str) -> User | None:
        return self._users.get_by_id(user_id)
