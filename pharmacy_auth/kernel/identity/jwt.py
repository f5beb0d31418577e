"""
JWT token management for authentication.

Access and refresh tokens are signed with separate secrets and bound to a
fixed issuer and audience, so neither kind can stand in for the other.
"""

import uuid
from datetime import datetime, timedelta, timezone
from typing import Optional

from jose import JWTError, jwt
from pydantic import BaseModel, Field

from pharmacy_auth.config import Settings
from pharmacy_auth.kernel.identity.errors import TokenVerificationError

ACCESS = "access"
REFRESH = "refresh"


class IdentityClaims(BaseModel):
    """Identity facts embedded in a token."""

    user_id: int
    email: str
    roles: list[str] = Field(default_factory=list)


class TokenClaims(IdentityClaims):
    """Verified token payload."""

    token_type: str
    issuer: str
    audience: str
    issued_at: datetime
    expires_at: datetime
    jti: str


class TokenPair(BaseModel):
    """Access and refresh token pair."""

    access_token: str
    refresh_token: str
    token_type: str = "bearer"
    expires_in: int  # Seconds until access token expires


class TokenCodec:
    """
    JWT token creation and verification.

    Handles access tokens (short-lived) and refresh tokens (long-lived).
    """

    def __init__(
        self,
        access_secret: str,
        refresh_secret: str,
        issuer: str,
        audience: str,
        algorithm: str = "HS256",
        access_token_expire_minutes: int = 15,
        refresh_token_expire_days: int = 7,
    ):
        if access_secret == refresh_secret:
            raise ValueError("access and refresh secrets must differ")
        self._secrets = {ACCESS: access_secret, REFRESH: refresh_secret}
        self.issuer = issuer
        self.audience = audience
        self.algorithm = algorithm
        self.access_token_expire_minutes = access_token_expire_minutes
        self.refresh_token_expire_days = refresh_token_expire_days

    @classmethod
    def from_settings(cls, settings: Settings) -> "TokenCodec":
        return cls(
            access_secret=settings.jwt_access_secret,
            refresh_secret=settings.jwt_refresh_secret,
            issuer=settings.jwt_issuer,
            audience=settings.jwt_audience,
            algorithm=settings.jwt_algorithm,
            access_token_expire_minutes=settings.access_token_expire_minutes,
            refresh_token_expire_days=settings.refresh_token_expire_days,
        )

    def _default_lifetime(self, token_type: str) -> timedelta:
        if token_type == ACCESS:
            return timedelta(minutes=self.access_token_expire_minutes)
        return timedelta(days=self.refresh_token_expire_days)

    def _issue(
        self,
        token_type: str,
        identity: IdentityClaims,
        expires_delta: Optional[timedelta],
    ) -> str:
        now = datetime.now(timezone.utc)
        expire = now + (expires_delta if expires_delta is not None else self._default_lifetime(token_type))

        payload = {
            "sub": str(identity.user_id),
            "email": identity.email,
            "roles": list(identity.roles),
            "type": token_type,
            "iss": self.issuer,
            "aud": self.audience,
            "exp": expire,
            "iat": now,
            "jti": str(uuid.uuid4()),
        }
        return jwt.encode(payload, self._secrets[token_type], algorithm=self.algorithm)

    def _verify(self, token_type: str, token: str) -> TokenClaims:
        try:
            payload = jwt.decode(
                token,
                self._secrets[token_type],
                algorithms=[self.algorithm],
                audience=self.audience,
                issuer=self.issuer,
            )
        except JWTError as exc:
            raise TokenVerificationError("invalid token") from exc

        if payload.get("type") != token_type:
            raise TokenVerificationError("invalid token")

        try:
            return TokenClaims(
                user_id=int(payload["sub"]),
                email=payload["email"],
                roles=payload.get("roles") or [],
                token_type=token_type,
                issuer=payload["iss"],
                audience=payload["aud"],
                issued_at=datetime.fromtimestamp(payload["iat"], tz=timezone.utc),
                expires_at=datetime.fromtimestamp(payload["exp"], tz=timezone.utc),
                jti=payload["jti"],
            )
        except (KeyError, TypeError, ValueError) as exc:
            raise TokenVerificationError("invalid token") from exc

    def issue_access(
        self,
        identity: IdentityClaims,
        expires_delta: Optional[timedelta] = None,
    ) -> str:
        """Sign an access token with the access secret."""
        return self._issue(ACCESS, identity, expires_delta)

    def issue_refresh(
        self,
        identity: IdentityClaims,
        expires_delta: Optional[timedelta] = None,
    ) -> str:
        """Sign a refresh token with the refresh secret."""
        return self._issue(REFRESH, identity, expires_delta)

    def issue_pair(self, identity: IdentityClaims) -> TokenPair:
        """Create both access and refresh tokens."""
        return TokenPair(
            access_token=self.issue_access(identity),
            refresh_token=self.issue_refresh(identity),
            expires_in=self.access_token_expire_minutes * 60,
        )

    def verify_access(self, token: str) -> TokenClaims:
        """
        Verify and decode an access token.

        Raises:
            TokenVerificationError: On bad signature, issuer, audience,
                token kind, or expiry
        """
        return self._verify(ACCESS, token)

    def verify_refresh(self, token: str) -> TokenClaims:
        """Verify and decode a refresh token. Same failure contract as access."""
        return self._verify(REFRESH, token)

    @staticmethod
    def peek_expiry(token: str) -> Optional[datetime]:
        """
        Read the expiry claim without checking the signature.

        For administrative introspection only; never an authentication decision.
        """
        try:
            claims = jwt.get_unverified_claims(token)
            return datetime.fromtimestamp(int(claims["exp"]), tz=timezone.utc)
        except (JWTError, KeyError, TypeError, ValueError, OverflowError):
            return None
