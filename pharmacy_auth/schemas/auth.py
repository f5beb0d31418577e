"""
Wire messages for the auth RPC service.

Request fields default to empty values the way proto3 messages do, so a
missing field reaches the identity service and is reported as a validation
error rather than a transport fault.
"""

from typing import Optional, Union

from pydantic import BaseModel, Field

from pharmacy_auth.schemas.identity import UserView


class UserMessage(BaseModel):
    """User as exposed over the wire."""

    id: str
    email: str
    first_name: str
    last_name: Optional[str] = None
    roles: list[str] = Field(default_factory=list)

    @classmethod
    def from_view(cls, user: Optional[UserView]) -> Optional["UserMessage"]:
        if user is None:
            return None
        return cls(
            id=str(user.id),
            email=user.email,
            first_name=user.first_name,
            last_name=user.last_name,
            roles=user.roles,
        )


class LoginRequest(BaseModel):
    email: str = ""
    password: str = ""


class LoginReply(BaseModel):
    success: bool
    message: str
    error_code: str = ""
    errors: list[str] = Field(default_factory=list)
    access_token: str = ""
    refresh_token: str = ""
    user: Optional[UserMessage] = None


class ValidateTokenRequest(BaseModel):
    token: str = ""


class ValidateTokenReply(BaseModel):
    valid: bool
    user_id: str = ""
    email: str = ""
    roles: list[str] = Field(default_factory=list)
    expires_at: int = 0  # Unix seconds, 0 when invalid


class CreateUserRequest(BaseModel):
    email: str = ""
    password: str = ""
    first_name: str = ""
    last_name: Optional[str] = None
    # Kept loose so a non-numeric role id is reported as a validation error.
    role_id: Optional[Union[int, str]] = None


class CreateUserReply(BaseModel):
    success: bool
    message: str
    error_code: str = ""
    errors: list[str] = Field(default_factory=list)
    user: Optional[UserMessage] = None
