"""Password hashing with bcrypt."""

import bcrypt
import structlog

from src.exceptions import InvalidCredentialError

logger = structlog.get_logger(__name__)

# bcrypt only considers the first 72 bytes; longer inputs are rejected
MAX_PASSWORD_BYTES = 72
DEFAULT_ROUNDS = 12


class PasswordHasher:
    """One-way, salted password hashing.

    Every call to :meth:`hash` draws a fresh salt, so hashing the same
    password twice yields two different strings that both verify.
    """

    def __init__(self, rounds: int = DEFAULT_ROUNDS):
        if not 4 <= rounds <= 31:
            raise ValueError(f"bcrypt rounds must be between 4 and 31, got {rounds}")
        self.rounds = rounds

    def hash(self, password: str) -> str:
        """Hash a password using bcrypt.

        Args:
            password: Plain-text password to hash

        Returns:
            Bcrypt hash string

        Raises:
            InvalidCredentialError: If the password is empty or too long
        """
        if not password:
            raise InvalidCredentialError("Password is empty")

        encoded = password.encode("utf-8")
        if len(encoded) > MAX_PASSWORD_BYTES:
            raise InvalidCredentialError(
                f"Password exceeds {MAX_PASSWORD_BYTES} bytes"
            )

        salt = bcrypt.gensalt(rounds=self.rounds)
        return bcrypt.hashpw(encoded, salt).decode("utf-8")

    def verify(self, password: str, password_hash: str) -> bool:
        """Verify a password against a bcrypt hash.

        Args:
            password: Plain-text password to check
            password_hash: Bcrypt hash to verify against

        Returns:
            True if the password matches, False otherwise

        Raises:
            InvalidCredentialError: If the stored hash is malformed
        """
        encoded = password.encode("utf-8")
        if len(encoded) > MAX_PASSWORD_BYTES:
            # Could never have been hashed, so it cannot match
            return False

        try:
            return bcrypt.checkpw(encoded, password_hash.encode("utf-8"))
        except ValueError as e:
            logger.warning("password_hash_malformed", error=str(e))
            raise InvalidCredentialError("Stored password hash is malformed") from e
