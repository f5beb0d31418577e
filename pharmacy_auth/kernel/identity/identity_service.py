"""
Identity service: login, registration and token validation.

Each use case returns a structured result. Failures are caught at the
use-case boundary, logged where they are detected, and turned into a
``success``/``valid`` flag plus a low-detail message.
"""

from typing import Any, Optional

from pharmacy_auth.config import Settings
from pharmacy_auth.database import Database
from pharmacy_auth.kernel.identity.credential_store import (
    DUPLICATE_EMAIL_MESSAGE,
    ROLE_NOT_FOUND_MESSAGE,
    CredentialStore,
    UserWithRole,
    normalize_email,
)
from pharmacy_auth.kernel.identity.errors import (
    DuplicateEmailError,
    IdentityError,
    InternalError,
    RoleNotFoundError,
    StoreUnavailableError,
    TokenVerificationError,
    ValidationError,
)
from pharmacy_auth.kernel.identity.jwt import IdentityClaims, TokenCodec
from pharmacy_auth.kernel.identity.password import PasswordHasher
from pharmacy_auth.kernel.identity.validation import (
    CREATE_USER_RULES,
    LOGIN_RULES,
    validate_fields,
    validate_password_strength,
)
from pharmacy_auth.logging_config import get_logger, mask_email
from pharmacy_auth.schemas.identity import (
    CreateUserResult,
    ErrorCode,
    LoginResult,
    TokenValidationResult,
    UserInfoResult,
    UserView,
)

logger = get_logger(__name__)

LOGIN_OK = "login successful"
INVALID_CREDENTIALS = "invalid credentials"
VALIDATION_ERRORS = "validation errors"
USER_CREATED = "user created"
USER_NOT_FOUND = "user not found"
STORE_UNAVAILABLE = "service unavailable"
INTERNAL_ERROR = "internal error"

# Deterministic fallback when the configured default role is missing.
FALLBACK_ROLE_ID = 1


def to_user_view(user: UserWithRole) -> UserView:
    return UserView(
        id=user.id,
        email=user.email,
        first_name=user.first_name,
        last_name=user.last_name,
        roles=[user.role_name],
        created_at=user.created_at,
    )


def _failure_code(exc: IdentityError) -> ErrorCode:
    return ErrorCode(exc.code)


def _failure_message(exc: IdentityError) -> str:
    if isinstance(exc, StoreUnavailableError):
        return STORE_UNAVAILABLE
    if isinstance(exc, DuplicateEmailError):
        return DUPLICATE_EMAIL_MESSAGE
    if isinstance(exc, RoleNotFoundError):
        return ROLE_NOT_FOUND_MESSAGE
    return INTERNAL_ERROR


class IdentityService:
    """
    Service for user identity operations.

    Composes the credential store, password hasher and token codec into
    the login, registration and validation use cases. Holds no per-call
    state.
    """

    def __init__(
        self,
        store: CredentialStore,
        hasher: PasswordHasher,
        codec: TokenCodec,
        default_role_name: str = "Analista",
    ):
        self.store = store
        self.hasher = hasher
        self.codec = codec
        self.default_role_name = default_role_name

    async def login(self, email: str, password: str) -> LoginResult:
        """
        Authenticate a user and issue an access/refresh token pair.

        Unknown emails and wrong passwords produce the same result and cost
        one password verification each.
        """
        masked = mask_email(email)
        logger.info("Login attempt", extra={"email": masked})
        try:
            violations = validate_fields({"email": email, "password": password}, LOGIN_RULES)
            if violations:
                raise ValidationError(violations)

            user = await self.store.find_by_email(normalize_email(email))
            if user is None:
                await self.hasher.verify_against_dummy(password)
                logger.warning("Login failed: unknown email", extra={"email": masked})
                return self._invalid_credentials()

            if not await self.hasher.verify_async(password, user.password_hash):
                logger.warning("Login failed: wrong password", extra={"email": masked})
                return self._invalid_credentials()

            pair = self.codec.issue_pair(IdentityClaims(
                user_id=user.id,
                email=user.email,
                roles=[user.role_name],
            ))
            logger.info("Login succeeded", extra={"email": masked, "user_id": user.id})
            return LoginResult(
                success=True,
                message=LOGIN_OK,
                access_token=pair.access_token,
                refresh_token=pair.refresh_token,
                user=to_user_view(user),
            )
        except ValidationError as exc:
            logger.info("Login rejected: invalid input", extra={"email": masked})
            return LoginResult(
                success=False,
                message=VALIDATION_ERRORS,
                error_code=ErrorCode.VALIDATION_ERROR,
                causes=exc.violations,
            )
        except IdentityError as exc:
            logger.error("Login failed", extra={"email": masked, "error": exc.code})
            return LoginResult(
                success=False,
                message=_failure_message(exc),
                error_code=_failure_code(exc),
            )
        except Exception:
            logger.exception("Unexpected error in login", extra={"email": masked})
            return LoginResult(
                success=False,
                message=INTERNAL_ERROR,
                error_code=ErrorCode.INTERNAL_ERROR,
            )

    @staticmethod
    def _invalid_credentials() -> LoginResult:
        return LoginResult(
            success=False,
            message=INVALID_CREDENTIALS,
            error_code=ErrorCode.INVALID_CREDENTIALS,
        )

    async def _resolve_role_id(self, role_id: Optional[int]) -> int:
        if role_id:
            return role_id
        role = await self.store.find_role_by_name(self.default_role_name)
        return role.id if role is not None else FALLBACK_ROLE_ID

    async def create_user(
        self,
        first_name: str,
        email: str,
        password: str,
        last_name: Optional[str] = None,
        role_id: Optional[Any] = None,
    ) -> CreateUserResult:
        """
        Register a new user.

        Structural and password-strength violations are reported together.
        Email uniqueness is left to the store's constraint; there is no
        existence pre-check.
        """
        masked = mask_email(email)
        logger.info("Create user attempt", extra={"email": masked})
        try:
            if role_id in (0, ""):
                role_id = None
            data = {
                "email": email,
                "password": password,
                "first_name": first_name,
                "last_name": last_name,
                "role_id": role_id,
            }
            violations = validate_fields(data, CREATE_USER_RULES)
            if isinstance(password, str) and password:
                violations += validate_password_strength(password)
            if violations:
                # Length is checked by both passes; report it once.
                raise ValidationError(list(dict.fromkeys(violations)))

            password_hash = await self.hasher.hash_async(password)
            resolved_role_id = await self._resolve_role_id(role_id)

            outcome = await self.store.create_user(
                first_name=first_name,
                last_name=(last_name or "").strip() or None,
                email=email,
                password_hash=password_hash,
                role_id=resolved_role_id,
            )
            if not outcome.success:
                if outcome.duplicate_email:
                    raise DuplicateEmailError(outcome.message)
                if outcome.role_not_found:
                    raise RoleNotFoundError(outcome.message)
                raise InternalError(outcome.message)

            # The creation call does not return the row.
            created = await self.store.find_by_email(email)
            if created is None:
                raise InternalError("user not found after creation")

            logger.info("User created", extra={"email": masked, "user_id": created.id})
            return CreateUserResult(
                success=True,
                message=USER_CREATED,
                user=to_user_view(created),
            )
        except ValidationError as exc:
            logger.info("Create user rejected: invalid input", extra={"email": masked})
            return CreateUserResult(
                success=False,
                message=VALIDATION_ERRORS,
                error_code=ErrorCode.VALIDATION_ERROR,
                causes=exc.violations,
            )
        except (DuplicateEmailError, RoleNotFoundError) as exc:
            logger.info("Create user refused", extra={"email": masked, "error": exc.code})
            return CreateUserResult(
                success=False,
                message=_failure_message(exc),
                error_code=_failure_code(exc),
            )
        except IdentityError as exc:
            logger.error(
                "Create user failed",
                extra={"email": masked, "error": exc.code, "detail": str(exc)},
            )
            return CreateUserResult(
                success=False,
                message=_failure_message(exc),
                error_code=_failure_code(exc),
            )
        except Exception:
            logger.exception("Unexpected error in create_user", extra={"email": masked})
            return CreateUserResult(
                success=False,
                message=INTERNAL_ERROR,
                error_code=ErrorCode.INTERNAL_ERROR,
            )

    async def validate_token(self, token: str) -> TokenValidationResult:
        """
        Validate an access token and confirm its user still exists.

        Any failure yields ``valid=False`` with no further detail.
        """
        if not token:
            return TokenValidationResult(valid=False)
        try:
            claims = self.codec.verify_access(token)
            user = await self.store.find_by_id(claims.user_id)
            if user is None:
                logger.info("Token for missing user", extra={"user_id": claims.user_id})
                return TokenValidationResult(valid=False)
            return TokenValidationResult(
                valid=True,
                user_id=user.id,
                email=claims.email,
                roles=[user.role_name],
                expires_at=claims.expires_at,
            )
        except TokenVerificationError:
            logger.info("Token rejected")
            return TokenValidationResult(valid=False)
        except IdentityError as exc:
            logger.error("Token validation failed", extra={"error": exc.code})
            return TokenValidationResult(valid=False)
        except Exception:
            logger.exception("Unexpected error in validate_token")
            return TokenValidationResult(valid=False)

    async def get_user_info(self, user_id: int) -> UserInfoResult:
        """Get a user's public view by ID."""
        try:
            user = await self.store.find_by_id(user_id)
            if user is None:
                return UserInfoResult(success=False, message=USER_NOT_FOUND)
            return UserInfoResult(success=True, user=to_user_view(user))
        except IdentityError as exc:
            logger.error("User lookup failed", extra={"user_id": user_id, "error": exc.code})
            return UserInfoResult(success=False, message=_failure_message(exc))
        except Exception:
            logger.exception("Unexpected error in get_user_info", extra={"user_id": user_id})
            return UserInfoResult(success=False, message=INTERNAL_ERROR)

    async def has_role(self, user_id: int, role_name: str) -> bool:
        """True if the user exists and holds ``role_name``."""
        try:
            user = await self.store.find_by_id(user_id)
        except Exception:
            logger.exception("Role check failed", extra={"user_id": user_id})
            return False
        return user is not None and user.has_role(role_name)


def build_identity_service(settings: Settings, database: Database) -> IdentityService:
    """Wire the identity service from settings and an open database handle."""
    return IdentityService(
        store=CredentialStore(database),
        hasher=PasswordHasher(rounds=settings.bcrypt_rounds),
        codec=TokenCodec.from_settings(settings),
        default_role_name=settings.default_role_name,
    )
