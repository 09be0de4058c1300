"""User identity models."""

import re
from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, Field, field_validator

USERNAME_PATTERN = re.compile(r"^[a-zA-Z0-9_-]+$")


def _check_username(v: str) -> str:
    if not USERNAME_PATTERN.match(v):
        raise ValueError(
            "Username must contain only alphanumeric characters, "
            "underscores, or hyphens"
        )
    return v


class User(BaseModel):
    """A registered account.

    ``password`` always holds the bcrypt hash, never the plaintext.
    """

    id: UUID
    name: str
    username: str
    password: str = Field(repr=False)
    created_at: datetime
    updated_at: datetime


class CreateUserInput(BaseModel):
    """Registration input.

    Attributes:
        username: Unique handle (1-100 chars, alphanumeric + underscore/hyphen)
        name: Display name (max 255 chars)
        password: Plain-text password, hashed before storage
    """

    username: str = Field(..., min_length=1, max_length=100)
    name: str = Field(..., max_length=255)
    password: str = Field(..., repr=False)

    @field_validator("username")
    @classmethod
    def username_valid_chars(cls, v: str) -> str:
        """Ensure username contains only alphanumeric, underscore, or hyphen."""
        return _check_username(v)


class UpdateUserInput(BaseModel):
    """Partial update of a user.

    Each field is independently present or absent; ``None`` means
    "leave unchanged". An explicitly empty password is rejected by the
    password hasher, not here.
    """

    name: Optional[str] = Field(default=None, max_length=255)
    username: Optional[str] = Field(default=None, min_length=1, max_length=100)
    password: Optional[str] = Field(default=None, repr=False)

    @field_validator("username")
    @classmethod
    def username_valid_chars(cls, v: Optional[str]) -> Optional[str]:
        """Ensure username contains only alphanumeric, underscore, or hyphen when provided."""
        if v is None:
            return v
        return _check_username(v)

    def is_empty(self) -> bool:
        """Return True when no field is present."""
        return self.name is None and self.username is None and self.password is None
