"""Durable storage of user identity records."""

from datetime import datetime, timezone
from typing import Protocol
from uuid import UUID, uuid4

import asyncpg
import structlog

from src.database import get_pool
from src.models.user import User

logger = structlog.get_logger(__name__)

USER_COLUMNS = "id, name, username, password_hash, created_at, updated_at"


class RecordNotFoundError(Exception):
    """The store holds no record matching the lookup."""


class DuplicateRecordError(Exception):
    """A write violated the store's uniqueness constraint."""


class UserRepository(Protocol):
    """Storage capability the identity service depends on.

    Missing records raise RecordNotFoundError; uniqueness violations raise
    DuplicateRecordError. Any other exception is an infrastructure failure.
    """

    async def get_by_username(self, username: str) -> User: ...

    async def get_by_id(self, user_id: UUID) -> User: ...

    async def get_all(self) -> list[User]: ...

    async def create(self, name: str, username: str, password_hash: str) -> User: ...

    async def update(self, user: User) -> User: ...

    async def delete(self, user_id: UUID) -> bool: ...


def _row_to_user(row) -> User:
    return User(
        id=row["id"],
        name=row["name"],
        username=row["username"],
        password=row["password_hash"],
        created_at=row["created_at"],
        updated_at=row["updated_at"],
    )


class PostgresUserRepository:
    """asyncpg-backed user repository over the ``users`` table."""

    async def get_by_username(self, username: str) -> User:
        """Get a user by exact username.

        Raises:
            RecordNotFoundError: If no user has this username
        """
        pool = await get_pool()

        async with pool.acquire() as conn:
            row = await conn.fetchrow(
                f"SELECT {USER_COLUMNS} FROM users WHERE username = $1",
                username,
            )

        if row is None:
            raise RecordNotFoundError(f"user with username {username!r}")
        return _row_to_user(row)

    async def get_by_id(self, user_id: UUID) -> User:
        """Get a user by UUID.

        Raises:
            RecordNotFoundError: If no user has this id
        """
        pool = await get_pool()

        async with pool.acquire() as conn:
            row = await conn.fetchrow(
                f"SELECT {USER_COLUMNS} FROM users WHERE id = $1",
                user_id,
            )

        if row is None:
            raise RecordNotFoundError(f"user with id {user_id}")
        return _row_to_user(row)

    async def get_all(self) -> list[User]:
        """Return all users ordered by creation date."""
        pool = await get_pool()

        async with pool.acquire() as conn:
            rows = await conn.fetch(
                f"SELECT {USER_COLUMNS} FROM users ORDER BY created_at ASC"
            )

        return [_row_to_user(row) for row in rows]

    async def create(self, name: str, username: str, password_hash: str) -> User:
        """Insert a new user.

        Raises:
            DuplicateRecordError: If the username is already taken
        """
        user_id = uuid4()
        now = datetime.now(timezone.utc)
        pool = await get_pool()

        try:
            async with pool.acquire() as conn:
                await conn.execute(
                    """
                    INSERT INTO users (id, name, username, password_hash, created_at, updated_at)
                    VALUES ($1, $2, $3, $4, $5, $6)
                    """,
                    user_id,
                    name,
                    username,
                    password_hash,
                    now,
                    now,
                )
        except asyncpg.UniqueViolationError as e:
            raise DuplicateRecordError(f"username {username!r}") from e

        return User(
            id=user_id,
            name=name,
            username=username,
            password=password_hash,
            created_at=now,
            updated_at=now,
        )

    async def update(self, user: User) -> User:
        """Persist name, username and password hash of an existing user.

        Raises:
            RecordNotFoundError: If the user no longer exists
            DuplicateRecordError: If the new username is already taken
        """
        now = datetime.now(timezone.utc)
        pool = await get_pool()

        try:
            async with pool.acquire() as conn:
                row = await conn.fetchrow(
                    f"""
                    UPDATE users
                    SET name = $1, username = $2, password_hash = $3, updated_at = $4
                    WHERE id = $5
                    RETURNING {USER_COLUMNS}
                    """,
                    user.name,
                    user.username,
                    user.password,
                    now,
                    user.id,
                )
        except asyncpg.UniqueViolationError as e:
            raise DuplicateRecordError(f"username {user.username!r}") from e

        if row is None:
            raise RecordNotFoundError(f"user with id {user.id}")
        return _row_to_user(row)

    async def delete(self, user_id: UUID) -> bool:
        """Hard-delete a user.

        Returns:
            True if a row was removed, False if the user was already gone
        """
        pool = await get_pool()

        async with pool.acquire() as conn:
            result = await conn.execute("DELETE FROM users WHERE id = $1", user_id)

        return result == "DELETE 1"
