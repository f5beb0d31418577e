"""
Bearer-token authorization for services that guard privileged calls.

Works on plain call metadata (HTTP headers or RPC metadata as a mapping);
the only work done is access-token verification.
"""

from typing import Callable, Iterable, Mapping, Optional

from pydantic import BaseModel

from pharmacy_auth.kernel.identity.errors import TokenVerificationError
from pharmacy_auth.kernel.identity.jwt import TokenCodec
from pharmacy_auth.logging_config import get_logger

logger = get_logger(__name__)

AUTHORIZATION_KEY = "authorization"

TOKEN_REQUIRED = "authorization token required"
TOKEN_INVALID = "invalid token"
INSUFFICIENT_PERMISSIONS = "insufficient permissions"


class AuthenticationCheck(BaseModel):
    valid: bool
    user_id: Optional[int] = None
    roles: list[str] = []
    error: Optional[str] = None


class AuthorizationCheck(BaseModel):
    authorized: bool
    error: Optional[str] = None


def extract_bearer_token(metadata: Mapping[str, str]) -> Optional[str]:
    """Return the bearer token from call metadata, matching the key case-insensitively."""
    header = None
    for key, value in metadata.items():
        if key.lower() == AUTHORIZATION_KEY:
            header = value
            break
    if not header:
        return None
    scheme, _, token = header.strip().partition(" ")
    if scheme.lower() != "bearer":
        return None
    return token.strip() or None


class AuthorizationHelper:
    """
    Verifies bearer tokens found in inbound call metadata.

    Usage:
        helper = AuthorizationHelper(codec)
        check = helper.authenticate(headers)
        admins_only = helper.authorize_roles(["Administrador"])
        if not admins_only(headers).authorized:
            ...
    """

    def __init__(self, codec: TokenCodec):
        self.codec = codec

    def authenticate(self, metadata: Mapping[str, str]) -> AuthenticationCheck:
        token = extract_bearer_token(metadata)
        if token is None:
            return AuthenticationCheck(valid=False, error=TOKEN_REQUIRED)
        try:
            claims = self.codec.verify_access(token)
        except TokenVerificationError:
            logger.warning("Invalid bearer token")
            return AuthenticationCheck(valid=False, error=TOKEN_INVALID)
        return AuthenticationCheck(valid=True, user_id=claims.user_id, roles=claims.roles)

    def authorize_roles(
        self,
        allowed_roles: Iterable[str],
    ) -> Callable[[Mapping[str, str]], AuthorizationCheck]:
        """Build a check that passes only for tokens carrying one of ``allowed_roles``."""
        allowed = frozenset(allowed_roles)

        def check(metadata: Mapping[str, str]) -> AuthorizationCheck:
            result = self.authenticate(metadata)
            if not result.valid:
                return AuthorizationCheck(authorized=False, error=result.error)
            if not allowed.intersection(result.roles):
                logger.info("Role check refused", extra={"user_id": result.user_id})
                return AuthorizationCheck(authorized=False, error=INSUFFICIENT_PERMISSIONS)
            return AuthorizationCheck(authorized=True)

        return check
