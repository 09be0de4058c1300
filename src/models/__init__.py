"""Models package exports."""

from src.models.auth import TokenClaims, TokenKind, TokenPair
from src.models.user import CreateUserInput, UpdateUserInput, User

__all__ = [
    "CreateUserInput",
    "TokenClaims",
    "TokenKind",
    "TokenPair",
    "UpdateUserInput",
    "User",
]
