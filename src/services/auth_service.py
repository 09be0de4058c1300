"""Login, token refresh and logout."""

from typing import Optional
from uuid import UUID

import structlog

from src.exceptions import (
    InfrastructureError,
    InvalidCredentialError,
    TokenInvalidError,
    UserNotFoundError,
)
from src.models.auth import TokenKind, TokenPair
from src.models.user import User
from src.repositories.refresh_token_store import RefreshTokenStore
from src.services.password_service import PasswordHasher
from src.services.token_service import TokenIssuer
from src.services.user_service import UserService

logger = structlog.get_logger(__name__)


class AuthService:
    """Service for credential checks and refresh token lifecycle.

    Each user has at most one live refresh token: the store keeps the jti of
    the latest one, and refreshing rotates it.
    """

    def __init__(
        self,
        user_service: UserService,
        token_issuer: TokenIssuer,
        token_store: RefreshTokenStore,
        hasher: Optional[PasswordHasher] = None,
        log: Optional[structlog.stdlib.BoundLogger] = None,
    ):
        self.user_service = user_service
        self.token_issuer = token_issuer
        self.token_store = token_store
        self.hasher = hasher or user_service.hasher
        self.logger = log or logger
        self._dummy_hash: Optional[str] = None

    def _refresh_ttl_seconds(self) -> int:
        return int(self.token_issuer.refresh_ttl.total_seconds())

    def _burn_password_check(self, password: str) -> None:
        """Spend one bcrypt verification so unknown users cost the same as known ones."""
        if self._dummy_hash is None:
            self._dummy_hash = self.hasher.hash("unknown-user-placeholder")
        if password:
            self.hasher.verify(password, self._dummy_hash)

    async def _issue_pair(self, user_id: UUID, operation: str) -> TokenPair:
        pair, refresh_jti = self.token_issuer.issue_token_pair(user_id)

        try:
            await self.token_store.save(user_id, refresh_jti, self._refresh_ttl_seconds())
        except Exception as e:
            self.logger.error(
                "refresh_token_store_failed",
                operation=operation,
                user_id=str(user_id),
                error=str(e),
            )
            raise InfrastructureError(operation) from e

        return pair

    async def login(self, username: str, password: str) -> TokenPair:
        """Check a username/password and issue a token pair.

        Raises:
            InvalidCredentialError: If the user is unknown or the password
                does not match
        """
        try:
            user = await self.user_service.get_by_username(username)
        except UserNotFoundError:
            self._burn_password_check(password)
            self.logger.warning("login_failed", username=username, reason="unknown_user")
            raise InvalidCredentialError("Invalid username or password")

        if not password or not self.hasher.verify(password, user.password):
            self.logger.warning("login_failed", username=username, reason="bad_password")
            raise InvalidCredentialError("Invalid username or password")

        pair = await self._issue_pair(user.id, "login")
        self.logger.info("user_logged_in", user_id=str(user.id), username=user.username)
        return pair

    async def refresh(self, refresh_token: str) -> TokenPair:
        """Exchange a refresh token for a new pair, revoking the old one.

        The stored jti is swapped with a compare-and-set, so a refresh token
        can be redeemed at most once even under concurrent use, and a record
        removed by logout or user deletion is never written back.

        Raises:
            TokenExpiredError: If the refresh token expired
            TokenInvalidError: If the token is invalid, revoked or already rotated
            UserNotFoundError: If the user has been deleted
        """
        claims = self.token_issuer.decode(refresh_token, TokenKind.REFRESH)

        try:
            stored_jti = await self.token_store.get(claims.sub)
        except Exception as e:
            self.logger.error("refresh_token_lookup_failed", user_id=str(claims.sub), error=str(e))
            raise InfrastructureError("refresh") from e

        if stored_jti != claims.jti:
            self.logger.warning("refresh_token_revoked", user_id=str(claims.sub))
            raise TokenInvalidError("Refresh token has been revoked")

        user = await self.user_service.get_by_id(claims.sub)

        pair, new_jti = self.token_issuer.issue_token_pair(user.id)
        try:
            rotated = await self.token_store.rotate(
                user.id, claims.jti, new_jti, self._refresh_ttl_seconds()
            )
        except Exception as e:
            self.logger.error(
                "refresh_token_store_failed",
                operation="refresh",
                user_id=str(user.id),
                error=str(e),
            )
            raise InfrastructureError("refresh") from e

        if not rotated:
            self.logger.warning("refresh_token_reused", user_id=str(user.id))
            raise TokenInvalidError("Refresh token has been revoked")

        self.logger.info("refresh_token_rotated", user_id=str(user.id))
        return pair

    async def logout(self, user_id: UUID) -> None:
        """Revoke the user's refresh token. Idempotent."""
        try:
            await self.token_store.delete_by_user_id(user_id)
        except Exception as e:
            self.logger.error("logout_failed", user_id=str(user_id), error=str(e))
            raise InfrastructureError("logout") from e

        self.logger.info("user_logged_out", user_id=str(user_id))

    async def authenticate(self, access_token: str) -> User:
        """Resolve an access token to its user.

        Raises:
            TokenExpiredError: If the access token expired
            TokenInvalidError: If the access token is invalid
            UserNotFoundError: If the user no longer exists
        """
        user_id = self.token_issuer.verify(access_token, TokenKind.ACCESS)
        return await self.user_service.get_by_id(user_id)
