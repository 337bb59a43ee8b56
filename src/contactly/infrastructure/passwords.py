"""Password hashing with bcrypt."""

import bcrypt

DEFAULT_ROUNDS = 12


class BcryptPasswordHasher:
    """Implements the PasswordHasher port. Lower rounds only in tests."""

    def __init__(self, rounds: int = DEFAULT_ROUNDS) -> None:
        self._rounds = rounds

    def hash(self, password: str) -> str:
        salt = bcrypt.gensalt(rounds=self._rounds)
        return bcrypt.hashpw(password.encode("utf-8"), salt).decode("utf-8")

    def verify(self, password: str, password_hash: str) -> bool:
        try:
            return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))
        except ValueError:
            # Malformed stored hash, or a password over bcrypt's length limit.
            return False
