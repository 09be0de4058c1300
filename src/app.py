"""Application wiring and startup/shutdown lifecycle."""

from typing import Optional

import structlog
from dotenv import load_dotenv

from src.config import Settings, get_settings
from src.repositories.refresh_token_store import RedisRefreshTokenStore
from src.repositories.user_repository import PostgresUserRepository
from src.services.auth_service import AuthService
from src.services.logging_service import configure_logging, get_logger
from src.services.password_service import PasswordHasher
from src.services.token_service import TokenIssuer
from src.services.user_service import UserService


class Application:
    """Holds the service graph for one process.

    Transport layers receive ``user_service`` and ``auth_service`` from here.
    Usable as an async context manager::

        async with Application() as app:
            await app.user_service.create_user("alice", "Alice", "pw123")
    """

    def __init__(self, settings: Optional[Settings] = None):
        if settings is None:
            load_dotenv()
            settings = get_settings()
        self.settings = settings
        self.logger: structlog.stdlib.BoundLogger = get_logger("app")

        hasher = PasswordHasher(rounds=settings.bcrypt_rounds)
        token_store = RedisRefreshTokenStore()

        self.token_issuer = TokenIssuer.from_settings(settings)
        self.user_service = UserService(
            repository=PostgresUserRepository(),
            token_store=token_store,
            hasher=hasher,
        )
        self.auth_service = AuthService(
            user_service=self.user_service,
            token_issuer=self.token_issuer,
            token_store=token_store,
        )

    async def start(self) -> None:
        """Configure logging, open the Postgres pool, migrate and connect Redis."""
        from src.database import init_database, run_migrations
        from src.services.redis_service import get_redis

        configure_logging(self.settings.log_level)
        self.logger = get_logger("app")

        await init_database()
        applied = await run_migrations()
        self.logger.info("database_initialized", migrations_applied=applied)

        if await get_redis() is None:
            self.logger.warning(
                "redis_initialization_failed",
                note="Refresh tokens cannot be issued or revoked until Redis is reachable",
            )
        else:
            self.logger.info("redis_initialized")

        self.logger.info(
            "application_started",
            address=self.settings.app_address,
            log_level=self.settings.log_level,
            health=await self.health(),
        )

    async def health(self) -> dict[str, bool]:
        """Check that the backing stores are reachable.

        Returns:
            Mapping of store name to reachability, e.g.
            ``{"database": True, "redis": False}``
        """
        from src.database import health_check as database_health
        from src.services.redis_service import health_check as redis_health

        return {
            "database": await database_health(),
            "redis": await redis_health(),
        }

    async def stop(self) -> None:
        """Close Redis and Postgres connections."""
        from src.database import close_database
        from src.services.redis_service import close_redis

        try:
            await close_redis()
        finally:
            await close_database()

        self.logger.info("application_shutdown")

    async def __aenter__(self) -> "Application":
        await self.start()
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.stop()
