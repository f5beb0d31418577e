"""
Credential store gateway.

The only component that touches the database. Lookups join the user with
its role; user creation is a single transaction that reports a
``(success, message)`` outcome instead of raising on constraint failures.
"""

import asyncio
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from datetime import datetime
from typing import AsyncIterator, Optional

from sqlalchemy import select
from sqlalchemy.exc import DBAPIError, IntegrityError, InterfaceError, OperationalError

from pharmacy_auth.database import Database
from pharmacy_auth.kernel.identity.errors import StoreUnavailableError
from pharmacy_auth.kernel.models.user import Role, User
from pharmacy_auth.logging_config import get_logger, mask_email

logger = get_logger(__name__)

DUPLICATE_EMAIL_MESSAGE = "email already registered"
ROLE_NOT_FOUND_MESSAGE = "role does not exist"
USER_CREATED_MESSAGE = "user created"

# Free-text markers of a unique-key violation, across MySQL, PostgreSQL and SQLite.
_DUPLICATE_ENTRY_SIGNALS = (
    "duplicate entry",
    "er_dup_entry",
    "duplicate key value",
    "violates unique constraint",
    "unique constraint failed",
)


def is_duplicate_entry_error(message: str) -> bool:
    """True if a driver error message reports a unique-key violation."""
    lowered = message.lower()
    return any(signal in lowered for signal in _DUPLICATE_ENTRY_SIGNALS)


def normalize_email(email: str) -> str:
    return email.strip().lower()


@dataclass(frozen=True)
class UserWithRole:
    """Transient copy of a user row joined with its role name."""

    id: int
    email: str
    first_name: str
    last_name: Optional[str]
    role_id: int
    role_name: str
    created_at: Optional[datetime]
    password_hash: str = field(repr=False)

    def has_role(self, role_name: str) -> bool:
        return self.role_name == role_name


@dataclass(frozen=True)
class CreateUserOutcome:
    """Result of the atomic creation call."""

    success: bool
    message: str
    duplicate_email: bool = False
    role_not_found: bool = False


class CredentialStore:
    """Gateway over the users and roles tables."""

    def __init__(self, database: Database):
        self.database = database

    @asynccontextmanager
    async def _unavailable_on_fault(self, operation: str) -> AsyncIterator[None]:
        try:
            yield
        except IntegrityError:
            raise
        except (OperationalError, InterfaceError, asyncio.TimeoutError, OSError) as exc:
            logger.error("Credential store unavailable", extra={"operation": operation})
            raise StoreUnavailableError(f"{operation} failed: store unavailable") from exc
        except DBAPIError as exc:
            if exc.connection_invalidated:
                logger.error("Credential store connection lost", extra={"operation": operation})
                raise StoreUnavailableError(f"{operation} failed: store unavailable") from exc
            raise

    def _with_role_query(self):
        return select(User, Role.name).join(Role, User.role_id == Role.id)

    @staticmethod
    def _to_record(user: User, role_name: str) -> UserWithRole:
        return UserWithRole(
            id=user.id,
            email=user.email,
            first_name=user.first_name,
            last_name=user.last_name,
            role_id=user.role_id,
            role_name=role_name,
            created_at=user.created_at,
            password_hash=user.password_hash,
        )

    async def _fetch_one(self, operation: str, query) -> Optional[UserWithRole]:
        async with self._unavailable_on_fault(operation):
            async with self.database.session() as session:
                result = await asyncio.wait_for(
                    session.execute(query),
                    timeout=self.database.timeout_seconds,
                )
                row = result.first()
        if row is None:
            return None
        user, role_name = row
        return self._to_record(user, role_name)

    async def find_by_email(self, email: str) -> Optional[UserWithRole]:
        """Get a user with its role by (case-insensitive) email."""
        query = self._with_role_query().where(User.email == normalize_email(email))
        return await self._fetch_one("find_by_email", query)

    async def find_by_id(self, user_id: int) -> Optional[UserWithRole]:
        """Get a user with its role by ID."""
        query = self._with_role_query().where(User.id == user_id)
        return await self._fetch_one("find_by_id", query)

    async def find_role_by_name(self, name: str) -> Optional[Role]:
        async with self._unavailable_on_fault("find_role_by_name"):
            async with self.database.session() as session:
                result = await asyncio.wait_for(
                    session.execute(select(Role).where(Role.name == name)),
                    timeout=self.database.timeout_seconds,
                )
                return result.scalar_one_or_none()

    async def create_user(
        self,
        first_name: str,
        last_name: Optional[str],
        email: str,
        password_hash: str,
        role_id: int,
    ) -> CreateUserOutcome:
        """
        Create a user in one transaction.

        Either the row (with its role reference) exists afterwards or nothing
        was written. Constraint failures come back as an unsuccessful outcome;
        only connectivity faults raise.

        Raises:
            StoreUnavailableError: If the database cannot be reached
        """
        normalized = normalize_email(email)
        async with self._unavailable_on_fault("create_user"):
            try:
                async with self.database.session() as session:
                    async with session.begin():
                        role = await session.get(Role, role_id)
                        if role is None:
                            return CreateUserOutcome(
                                success=False,
                                message=ROLE_NOT_FOUND_MESSAGE,
                                role_not_found=True,
                            )
                        session.add(User(
                            first_name=first_name.strip(),
                            last_name=last_name,
                            email=normalized,
                            password_hash=password_hash,
                            role_id=role_id,
                        ))
                        await asyncio.wait_for(
                            session.flush(),
                            timeout=self.database.timeout_seconds,
                        )
            except IntegrityError as exc:
                if is_duplicate_entry_error(str(exc.orig)):
                    logger.info(
                        "Duplicate email on create",
                        extra={"email": mask_email(normalized)},
                    )
                    return CreateUserOutcome(
                        success=False,
                        message=DUPLICATE_EMAIL_MESSAGE,
                        duplicate_email=True,
                    )
                logger.warning("Constraint failure on create", extra={"error": type(exc.orig).__name__})
                return CreateUserOutcome(success=False, message="user violates a store constraint")

        return CreateUserOutcome(success=True, message=USER_CREATED_MESSAGE)

    async def ping(self) -> bool:
        return await self.database.ping()
