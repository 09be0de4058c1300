"""Domain error taxonomy for the account service."""

from typing import Optional
from uuid import UUID


class AccountServiceError(Exception):
    """Base class for all account service errors."""

    def __init__(self, message: str, detail: Optional[dict] = None) -> None:
        self.message = message
        self.detail = detail or {}
        super().__init__(message)


class UserNotFoundError(AccountServiceError):
    """No live user matches the lookup."""

    def __init__(self, **lookup: str) -> None:
        super().__init__("User not found", detail=lookup)


class UserAlreadyExistsError(AccountServiceError):
    """Username is already taken by another user."""

    def __init__(self, username: str) -> None:
        super().__init__(
            f"Username '{username}' already exists",
            detail={"username": username},
        )


class InvalidCredentialError(AccountServiceError):
    """Password input is empty, malformed, or does not match."""


class InfrastructureError(AccountServiceError):
    """A store or transport failure unrelated to domain rules.

    Attributes:
        operation: Public operation that failed (e.g. "create_user")
    """

    def __init__(self, operation: str, message: Optional[str] = None) -> None:
        self.operation = operation
        super().__init__(
            message or f"{operation} failed",
            detail={"operation": operation},
        )


class SessionCleanupError(InfrastructureError):
    """User was deleted but its refresh-token record could not be removed.

    The account is gone; the orphaned session entry must be reconciled by
    an external process.
    """

    def __init__(self, user_id: UUID) -> None:
        self.user_id = user_id
        super().__init__(
            "delete_user",
            f"User {user_id} deleted but refresh token cleanup failed",
        )
        self.detail["user_id"] = str(user_id)


class TokenError(AccountServiceError):
    """Base class for token verification failures."""


class TokenInvalidError(TokenError):
    """Token is malformed, tampered, or signed with the wrong secret."""


class TokenExpiredError(TokenError):
    """Token signature is valid but its expiration has passed."""
