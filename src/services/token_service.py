"""JWT issuing and verification for access and refresh tokens."""

from datetime import datetime, timedelta, timezone
from typing import Callable, Optional, Union
from uuid import UUID, uuid4

import jwt
import structlog
from pydantic import ValidationError

from src.config import Settings
from src.exceptions import TokenExpiredError, TokenInvalidError
from src.models.auth import TokenClaims, TokenKind, TokenPair

logger = structlog.get_logger(__name__)

# Constants
JWT_ALGORITHM = "HS256"
ACCESS_TOKEN_EXPIRE_MINUTES = 15
REFRESH_TOKEN_EXPIRE_DAYS = 7

Secret = Union[str, bytes]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class TokenIssuer:
    """Mints and verifies signed tokens bound to a user id.

    Access and refresh tokens use independent secrets and expirations.
    The signing configuration is fixed at construction. The optional
    ``clock`` stamps issued tokens and is also the reference time for
    expiry checks in ``decode``; it must return aware UTC datetimes.
    """

    def __init__(
        self,
        access_secret: Secret,
        refresh_secret: Secret,
        access_ttl: timedelta = timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES),
        refresh_ttl: timedelta = timedelta(days=REFRESH_TOKEN_EXPIRE_DAYS),
        clock: Optional[Callable[[], datetime]] = None,
    ):
        if not access_secret or not refresh_secret:
            raise ValueError("Token signing secrets must not be empty")
        if access_ttl <= timedelta(0) or refresh_ttl <= timedelta(0):
            raise ValueError("Token expirations must be positive")

        self._secrets = {
            TokenKind.ACCESS: access_secret,
            TokenKind.REFRESH: refresh_secret,
        }
        self._ttls = {
            TokenKind.ACCESS: access_ttl,
            TokenKind.REFRESH: refresh_ttl,
        }
        self._clock = clock or _utcnow

    @classmethod
    def from_settings(cls, settings: Settings) -> "TokenIssuer":
        """Build an issuer from application settings."""
        return cls(
            access_secret=settings.jwt_access_secret,
            refresh_secret=settings.jwt_refresh_secret,
            access_ttl=timedelta(minutes=settings.access_token_expire_minutes),
            refresh_ttl=timedelta(days=settings.refresh_token_expire_days),
        )

    @property
    def access_ttl(self) -> timedelta:
        return self._ttls[TokenKind.ACCESS]

    @property
    def refresh_ttl(self) -> timedelta:
        return self._ttls[TokenKind.REFRESH]

    def _issue(self, user_id: UUID, kind: TokenKind) -> tuple[str, str]:
        now = self._clock()
        jti = uuid4().hex
        payload = {
            "sub": str(user_id),
            "type": kind.value,
            "jti": jti,
            "iat": now,
            "exp": now + self._ttls[kind],
        }
        token = jwt.encode(payload, self._secrets[kind], algorithm=JWT_ALGORITHM)
        logger.debug(
            "token_issued",
            user_id=str(user_id),
            kind=kind.value,
            expires_seconds=int(self._ttls[kind].total_seconds()),
        )
        return token, jti

    def issue_access_token(self, user_id: UUID) -> str:
        """Create a signed JWT access token.

        Args:
            user_id: User UUID (placed in 'sub' claim)

        Returns:
            Encoded JWT string
        """
        token, _ = self._issue(user_id, TokenKind.ACCESS)
        return token

    def issue_refresh_token(self, user_id: UUID) -> str:
        """Create a signed JWT refresh token.

        The caller is responsible for recording the token's ``jti`` in the
        refresh token store so it can later be revoked.

        Args:
            user_id: User UUID (placed in 'sub' claim)

        Returns:
            Encoded JWT string
        """
        token, _ = self._issue(user_id, TokenKind.REFRESH)
        return token

    def issue_token_pair(self, user_id: UUID) -> tuple[TokenPair, str]:
        """Create an access/refresh pair.

        Returns:
            Tuple of (TokenPair, refresh_jti)
        """
        access_token, _ = self._issue(user_id, TokenKind.ACCESS)
        refresh_token, refresh_jti = self._issue(user_id, TokenKind.REFRESH)
        pair = TokenPair(
            access_token=access_token,
            refresh_token=refresh_token,
            expires_in=int(self.access_ttl.total_seconds()),
        )
        return pair, refresh_jti

    def decode(self, token: str, kind: TokenKind) -> TokenClaims:
        """Verify a token's signature and expiry and return its claims.

        Args:
            token: Encoded JWT string
            kind: Signing context to verify against

        Returns:
            Verified TokenClaims

        Raises:
            TokenExpiredError: If the signature is valid but the token expired
            TokenInvalidError: If the token is malformed, tampered, signed with
                another secret, or issued as a different kind
        """
        # Time claims are checked below against the issuer clock, not wall time
        try:
            payload = jwt.decode(
                token,
                self._secrets[kind],
                algorithms=[JWT_ALGORITHM],
                options={
                    "require": ["sub", "exp", "iat", "jti"],
                    "verify_exp": False,
                    "verify_iat": False,
                },
            )
        except jwt.InvalidTokenError as e:
            raise TokenInvalidError(f"Invalid {kind.value} token: {e}") from e

        if payload.get("type") != kind.value:
            raise TokenInvalidError(f"Invalid {kind.value} token: wrong token type")

        if not all(isinstance(payload[claim], (int, float)) for claim in ("exp", "iat")):
            raise TokenInvalidError(f"Invalid {kind.value} token: non-numeric time claim")

        try:
            claims = TokenClaims.model_validate(payload)
        except ValidationError as e:
            raise TokenInvalidError(f"Invalid {kind.value} token: malformed claims") from e

        if claims.exp <= self._clock():
            raise TokenExpiredError(f"{kind.value.capitalize()} token has expired")

        return claims

    def verify(self, token: str, kind: TokenKind) -> UUID:
        """Verify a token and return the user id it is bound to."""
        return self.decode(token, kind).sub
