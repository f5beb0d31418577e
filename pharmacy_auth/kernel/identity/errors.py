"""
Identity error taxonomy.

These exceptions never cross the RPC boundary: the identity service
catches them at each use-case boundary and turns them into result fields.
"""

from typing import Sequence


class IdentityError(Exception):
    """Base class for identity failures."""

    code = "internal_error"


class ValidationError(IdentityError):
    """Malformed or missing input. Carries every violated rule."""

    code = "validation_error"

    def __init__(self, violations: Sequence[str]):
        self.violations = list(violations)
        super().__init__("validation errors: " + "; ".join(self.violations))


class AuthenticationError(IdentityError):
    """Wrong credentials or an invalid/expired token."""

    code = "invalid_credentials"


class DuplicateEmailError(IdentityError):
    """A registration collided with an existing account."""

    code = "duplicate_email"


class RoleNotFoundError(IdentityError):
    """The requested role does not exist."""

    code = "role_not_found"


class StoreUnavailableError(IdentityError):
    """The credential database could not be reached or timed out."""

    code = "store_unavailable"


class InternalError(IdentityError):
    """Unanticipated fault."""

    code = "internal_error"


class HashingError(InternalError):
    """Password hashing or verification failed internally."""


class TokenVerificationError(AuthenticationError):
    """Bad signature, wrong issuer/audience, wrong kind, or expired."""
