"""User identity lifecycle: creation, lookup, partial update, deletion."""

from typing import Optional
from uuid import UUID

import structlog

from src.exceptions import (
    InfrastructureError,
    InvalidCredentialError,
    SessionCleanupError,
    UserAlreadyExistsError,
    UserNotFoundError,
)
from src.models.user import CreateUserInput, UpdateUserInput, User
from src.repositories.refresh_token_store import RefreshTokenStore
from src.repositories.user_repository import (
    DuplicateRecordError,
    RecordNotFoundError,
    UserRepository,
)
from src.services.password_service import PasswordHasher

logger = structlog.get_logger(__name__)


class UserService:
    """Service for user CRUD operations.

    Owns the decision of whether a user may be created, mutated or deleted.
    Store-level signals (RecordNotFoundError, DuplicateRecordError) are
    translated into domain errors here and never reach callers; any other
    store failure is raised as InfrastructureError naming the operation.
    """

    def __init__(
        self,
        repository: UserRepository,
        token_store: RefreshTokenStore,
        hasher: Optional[PasswordHasher] = None,
        log: Optional[structlog.stdlib.BoundLogger] = None,
    ):
        self.repository = repository
        self.token_store = token_store
        self.hasher = hasher or PasswordHasher()
        self.logger = log or logger

    def _infrastructure_error(
        self, operation: str, error: Exception, **context
    ) -> InfrastructureError:
        self.logger.error(
            "user_store_failed",
            operation=operation,
            error=str(error),
            error_type=type(error).__name__,
            **context,
        )
        return InfrastructureError(operation)

    def _hash_password(self, password: str, operation: str) -> str:
        try:
            return self.hasher.hash(password)
        except InvalidCredentialError as e:
            self.logger.warning("password_rejected", operation=operation, reason=e.message)
            raise

    async def create_user(self, username: str, name: str, password: str) -> User:
        """Create a new user with a hashed password.

        Input is checked against the same username and name rules as
        ``UpdateUserInput``. The username lookup is advisory; the store's
        unique constraint decides concurrent races.

        Args:
            username: Unique username
            name: Display name
            password: Plain-text password (will be hashed)

        Returns:
            Created User

        Raises:
            pydantic.ValidationError: If the username or name is malformed
            UserAlreadyExistsError: If the username is taken
            InvalidCredentialError: If the password is empty
            InfrastructureError: If the store fails
        """
        data = CreateUserInput(username=username, name=name, password=password)

        try:
            await self.repository.get_by_username(data.username)
        except RecordNotFoundError:
            pass
        except Exception as e:
            raise self._infrastructure_error("create_user", e, username=data.username) from e
        else:
            raise UserAlreadyExistsError(data.username)

        password_hash = self._hash_password(data.password, "create_user")

        try:
            user = await self.repository.create(
                name=data.name,
                username=data.username,
                password_hash=password_hash,
            )
        except DuplicateRecordError as e:
            # Lost a race against a concurrent registration
            raise UserAlreadyExistsError(data.username) from e
        except Exception as e:
            raise self._infrastructure_error("create_user", e, username=data.username) from e

        self.logger.info(
            "user_created",
            user_id=str(user.id),
            username=user.username,
            name=user.name,
        )
        return user

    async def get_by_id(self, user_id: UUID) -> User:
        """Get a user by UUID.

        Raises:
            UserNotFoundError: If no user has this id
            InfrastructureError: If the store fails
        """
        try:
            return await self.repository.get_by_id(user_id)
        except RecordNotFoundError as e:
            raise UserNotFoundError(user_id=str(user_id)) from e
        except Exception as e:
            raise self._infrastructure_error("get_by_id", e, user_id=str(user_id)) from e

    async def get_by_username(self, username: str) -> User:
        """Get a user by username.

        Raises:
            UserNotFoundError: If no user has this username
            InfrastructureError: If the store fails
        """
        try:
            return await self.repository.get_by_username(username)
        except RecordNotFoundError as e:
            raise UserNotFoundError(username=username) from e
        except Exception as e:
            raise self._infrastructure_error("get_by_username", e, username=username) from e

    async def list_users(self) -> list[User]:
        """Return all users. The result is unbounded."""
        try:
            return await self.repository.get_all()
        except Exception as e:
            raise self._infrastructure_error("list_users", e) from e

    async def update_user(self, user_id: UUID, update: UpdateUserInput) -> User:
        """Apply a partial update to a user.

        Only fields present in ``update`` change; a present password is
        re-hashed before storage.

        Args:
            user_id: UUID of the user to update
            update: Fields to change

        Returns:
            Updated User

        Raises:
            UserNotFoundError: If the user does not exist
            UserAlreadyExistsError: If the new username is taken
            InvalidCredentialError: If the new password is empty
            InfrastructureError: If the store fails
        """
        user = await self.get_by_id(user_id)
        if update.is_empty():
            return user

        changes = {}
        if update.name is not None:
            changes["name"] = update.name
        if update.username is not None:
            changes["username"] = update.username
        if update.password is not None:
            changes["password"] = self._hash_password(update.password, "update_user")

        merged = user.model_copy(update=changes)

        try:
            updated = await self.repository.update(merged)
        except RecordNotFoundError as e:
            raise UserNotFoundError(user_id=str(user_id)) from e
        except DuplicateRecordError as e:
            raise UserAlreadyExistsError(merged.username) from e
        except Exception as e:
            raise self._infrastructure_error("update_user", e, user_id=str(user_id)) from e

        self.logger.info(
            "user_updated",
            user_id=str(user_id),
            fields_updated=sorted(changes),
        )
        return updated

    async def delete_user(self, user_id: UUID) -> None:
        """Delete a user and then its refresh token record.

        The two stores are not updated atomically. Deleting an absent user is
        not an error, and cleanup is still attempted once.

        Raises:
            InfrastructureError: If the user record could not be deleted;
                cleanup is not attempted
            SessionCleanupError: If the user was deleted but its refresh
                token record was not
        """
        try:
            deleted = await self.repository.delete(user_id)
        except Exception as e:
            raise self._infrastructure_error("delete_user", e, user_id=str(user_id)) from e

        if not deleted:
            self.logger.warning("user_delete_not_found", user_id=str(user_id))

        try:
            await self.token_store.delete_by_user_id(user_id)
        except Exception as e:
            self.logger.error(
                "refresh_token_cleanup_failed",
                user_id=str(user_id),
                error=str(e),
                error_type=type(e).__name__,
            )
            raise SessionCleanupError(user_id) from e

        self.logger.info("user_deleted", user_id=str(user_id), existed=deleted)
