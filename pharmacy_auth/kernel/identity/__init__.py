"""
Identity Core - Authentication and user management.
"""

from pharmacy_auth.kernel.identity.authorization import (
    AuthenticationCheck,
    AuthorizationCheck,
    AuthorizationHelper,
    extract_bearer_token,
)
from pharmacy_auth.kernel.identity.credential_store import (
    CreateUserOutcome,
    CredentialStore,
    UserWithRole,
)
from pharmacy_auth.kernel.identity.errors import (
    AuthenticationError,
    DuplicateEmailError,
    HashingError,
    IdentityError,
    InternalError,
    RoleNotFoundError,
    StoreUnavailableError,
    TokenVerificationError,
    ValidationError,
)
from pharmacy_auth.kernel.identity.identity_service import IdentityService, build_identity_service
from pharmacy_auth.kernel.identity.jwt import IdentityClaims, TokenClaims, TokenCodec, TokenPair
from pharmacy_auth.kernel.identity.password import PasswordHasher, generate_random_password
from pharmacy_auth.kernel.identity.validation import validate_fields, validate_password_strength

__all__ = [
    "AuthenticationCheck",
    "AuthorizationCheck",
    "AuthorizationHelper",
    "extract_bearer_token",
    "CreateUserOutcome",
    "CredentialStore",
    "UserWithRole",
    "AuthenticationError",
    "DuplicateEmailError",
    "HashingError",
    "IdentityError",
    "InternalError",
    "RoleNotFoundError",
    "StoreUnavailableError",
    "TokenVerificationError",
    "ValidationError",
    "IdentityService",
    "build_identity_service",
    "IdentityClaims",
    "TokenClaims",
    "TokenCodec",
    "TokenPair",
    "PasswordHasher",
    "generate_random_password",
    "validate_fields",
    "validate_password_strength",
]
