"""Repository package exports."""

from src.repositories.refresh_token_store import RedisRefreshTokenStore, RefreshTokenStore
from src.repositories.user_repository import (
    DuplicateRecordError,
    PostgresUserRepository,
    RecordNotFoundError,
    UserRepository,
)

__all__ = [
    "DuplicateRecordError",
    "PostgresUserRepository",
    "RecordNotFoundError",
    "RedisRefreshTokenStore",
    "RefreshTokenStore",
    "UserRepository",
]
