"""Ephemeral refresh-token records keyed by user id."""

from typing import Optional, Protocol
from uuid import UUID

import structlog

from src.services.redis_service import get_redis

logger = structlog.get_logger(__name__)

# Compare-and-set: replace the stored jti only if it still holds the expected one
ROTATE_SCRIPT = """
if redis.call('GET', KEYS[1]) == ARGV[1] then
    redis.call('SET', KEYS[1], ARGV[2], 'EX', ARGV[3])
    return 1
end
return 0
"""


class RefreshTokenStore(Protocol):
    """Session-store capability.

    One record per user holding the jti of the refresh token currently
    allowed to mint new pairs.
    """

    async def save(self, user_id: UUID, jti: str, ttl_seconds: int) -> None: ...

    async def get(self, user_id: UUID) -> Optional[str]: ...

    async def rotate(
        self, user_id: UUID, expected_jti: str, new_jti: str, ttl_seconds: int
    ) -> bool: ...

    async def delete_by_user_id(self, user_id: UUID) -> None: ...


def refresh_token_key(user_id: UUID) -> str:
    return f"refresh_token:{user_id}"


class RedisRefreshTokenStore:
    """Redis-backed refresh token store.

    Unlike the cache helpers, every failure here raises: a revocation that
    silently did nothing would leave a usable session behind.
    """

    async def _client(self):
        client = await get_redis()
        if client is None:
            raise ConnectionError("Redis is unavailable")
        return client

    async def save(self, user_id: UUID, jti: str, ttl_seconds: int) -> None:
        """Store the current refresh token id for a user, replacing any previous one."""
        client = await self._client()
        await client.setex(refresh_token_key(user_id), ttl_seconds, jti)
        logger.debug("refresh_token_stored", user_id=str(user_id), ttl=ttl_seconds)

    async def get(self, user_id: UUID) -> Optional[str]:
        """Return the stored refresh token id, or None if absent or expired."""
        client = await self._client()
        return await client.get(refresh_token_key(user_id))

    async def rotate(
        self, user_id: UUID, expected_jti: str, new_jti: str, ttl_seconds: int
    ) -> bool:
        """Atomically replace ``expected_jti`` with ``new_jti``.

        Runs as a single Lua script, so of two callers presenting the same
        jti only one wins. A missing record (logged out, user deleted, or
        expired) is never recreated.

        Returns:
            True if the record held ``expected_jti`` and was replaced
        """
        client = await self._client()
        swapped = await client.eval(
            ROTATE_SCRIPT,
            1,
            refresh_token_key(user_id),
            expected_jti,
            new_jti,
            ttl_seconds,
        )
        logger.debug("refresh_token_rotate", user_id=str(user_id), swapped=bool(swapped))
        return bool(swapped)

    async def delete_by_user_id(self, user_id: UUID) -> None:
        """Delete the user's refresh token record. Absence is not an error."""
        client = await self._client()
        removed = await client.delete(refresh_token_key(user_id))
        logger.debug("refresh_token_deleted", user_id=str(user_id), removed=removed)
