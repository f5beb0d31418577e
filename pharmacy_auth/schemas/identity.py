"""
Identity use-case results.

Every use case returns one of these; none of them raises.
"""

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field


class ErrorCode(str, Enum):
    """Machine-readable failure kinds."""
    VALIDATION_ERROR = "validation_error"
    INVALID_CREDENTIALS = "invalid_credentials"
    DUPLICATE_EMAIL = "duplicate_email"
    ROLE_NOT_FOUND = "role_not_found"
    STORE_UNAVAILABLE = "store_unavailable"
    INTERNAL_ERROR = "internal_error"


class UserView(BaseModel):
    """Public view of a user. Never carries the password hash."""

    id: int
    email: str
    first_name: str
    last_name: Optional[str] = None
    roles: list[str] = Field(default_factory=list)
    created_at: Optional[datetime] = None


class LoginResult(BaseModel):
    success: bool
    message: str
    error_code: Optional[ErrorCode] = None
    causes: list[str] = Field(default_factory=list)
    access_token: Optional[str] = None
    refresh_token: Optional[str] = None
    user: Optional[UserView] = None


class CreateUserResult(BaseModel):
    success: bool
    message: str
    error_code: Optional[ErrorCode] = None
    causes: list[str] = Field(default_factory=list)
    user: Optional[UserView] = None


class TokenValidationResult(BaseModel):
    valid: bool
    user_id: Optional[int] = None
    email: Optional[str] = None
    roles: list[str] = Field(default_factory=list)
    expires_at: Optional[datetime] = None


class UserInfoResult(BaseModel):
    success: bool
    message: str = ""
    user: Optional[UserView] = None
