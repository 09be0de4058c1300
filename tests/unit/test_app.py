"""Unit tests for application wiring and lifecycle."""

from datetime import timedelta
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from src.app import Application
from src.config import Settings
from src.repositories.refresh_token_store import RedisRefreshTokenStore
from src.repositories.user_repository import PostgresUserRepository


@pytest.fixture
def settings():
    return Settings(
        jwt_access_secret="access-secret-0123456789abcdef012345",
        jwt_refresh_secret="refresh-secret-0123456789abcdef01234",
        access_token_expire_minutes=5,
        refresh_token_expire_days=2,
        bcrypt_rounds=4,
    )


@pytest.fixture
def lifecycle_mocks():
    """Patch database and Redis lifecycle functions."""
    with (
        patch("src.database.init_database", new_callable=AsyncMock) as init_db,
        patch("src.database.run_migrations", new_callable=AsyncMock) as migrate,
        patch("src.database.close_database", new_callable=AsyncMock) as close_db,
        patch("src.services.redis_service.get_redis", new_callable=AsyncMock) as get_redis,
        patch("src.services.redis_service.close_redis", new_callable=AsyncMock) as close_redis,
        patch("src.database.health_check", new_callable=AsyncMock) as db_health,
        patch("src.services.redis_service.health_check", new_callable=AsyncMock) as redis_health,
    ):
        migrate.return_value = 1
        get_redis.return_value = MagicMock()
        db_health.return_value = True
        redis_health.return_value = True
        yield {
            "init_database": init_db,
            "run_migrations": migrate,
            "close_database": close_db,
            "get_redis": get_redis,
            "close_redis": close_redis,
            "database_health": db_health,
            "redis_health": redis_health,
        }


class TestWiring:
    """Tests for the service graph built from settings."""

    def test_services_share_token_store(self, settings):
        app = Application(settings)

        assert isinstance(app.user_service.repository, PostgresUserRepository)
        assert isinstance(app.user_service.token_store, RedisRefreshTokenStore)
        assert app.auth_service.token_store is app.user_service.token_store
        assert app.auth_service.user_service is app.user_service

    def test_settings_flow_into_components(self, settings):
        app = Application(settings)

        assert app.user_service.hasher.rounds == 4
        assert app.token_issuer.access_ttl == timedelta(minutes=5)
        assert app.token_issuer.refresh_ttl == timedelta(days=2)
        assert app.auth_service.token_issuer is app.token_issuer


class TestLifecycle:
    """Tests for start/stop."""

    async def test_context_manager_starts_and_stops(self, settings, lifecycle_mocks):
        async with Application(settings):
            lifecycle_mocks["init_database"].assert_awaited_once()
            lifecycle_mocks["run_migrations"].assert_awaited_once()
            lifecycle_mocks["get_redis"].assert_awaited_once()
            lifecycle_mocks["database_health"].assert_awaited_once()
            lifecycle_mocks["redis_health"].assert_awaited_once()

        lifecycle_mocks["close_redis"].assert_awaited_once()
        lifecycle_mocks["close_database"].assert_awaited_once()

    async def test_starts_without_redis(self, settings, lifecycle_mocks):
        lifecycle_mocks["get_redis"].return_value = None
        app = Application(settings)

        await app.start()

        lifecycle_mocks["run_migrations"].assert_awaited_once()

    async def test_database_failure_aborts_start(self, settings, lifecycle_mocks):
        lifecycle_mocks["init_database"].side_effect = OSError("connection refused")
        app = Application(settings)

        with pytest.raises(OSError):
            await app.start()

        lifecycle_mocks["run_migrations"].assert_not_awaited()

    async def test_stop_closes_database_even_if_redis_close_fails(self, settings, lifecycle_mocks):
        lifecycle_mocks["close_redis"].side_effect = ConnectionError("reset")
        app = Application(settings)

        with pytest.raises(ConnectionError):
            await app.stop()

        lifecycle_mocks["close_database"].assert_awaited_once()


class TestHealth:
    """Tests for Application.health."""

    async def test_reports_each_store(self, settings, lifecycle_mocks):
        lifecycle_mocks["redis_health"].return_value = False
        app = Application(settings)

        assert await app.health() == {"database": True, "redis": False}

    async def test_unhealthy_store_does_not_abort_start(self, settings, lifecycle_mocks):
        lifecycle_mocks["database_health"].return_value = False
        app = Application(settings)

        await app.start()

        lifecycle_mocks["database_health"].assert_awaited_once()
