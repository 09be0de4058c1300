"""Token and authentication models."""

from datetime import datetime
from enum import Enum
from uuid import UUID

from pydantic import BaseModel, Field


class TokenKind(str, Enum):
    """Which signing context a token belongs to."""

    ACCESS = "access"
    REFRESH = "refresh"


class TokenClaims(BaseModel):
    """Decoded, verified JWT claims.

    Attributes:
        sub: User id the token is bound to
        type: Token kind the token was issued as
        jti: Unique token identifier (used to revoke refresh tokens)
        iat: Issued-at timestamp
        exp: Expiration timestamp
    """

    sub: UUID
    type: TokenKind
    jti: str
    iat: datetime
    exp: datetime


class TokenPair(BaseModel):
    """Access and refresh tokens issued together.

    Attributes:
        access_token: Short-lived JWT for API access
        refresh_token: Long-lived JWT for obtaining new access tokens
        token_type: Always "bearer"
        expires_in: Access token lifetime in seconds
    """

    access_token: str
    refresh_token: str
    token_type: str = "bearer"
    expires_in: int = Field(ge=1, description="Access token lifetime in seconds")
