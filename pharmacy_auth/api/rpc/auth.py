"""
AuthService RPC handlers.

Each method is a unary call: one request message in, one reply out. Outcomes
travel in the reply's ``success``/``valid`` flag; the transport status is
200 for every well-formed call.
"""

import re
from datetime import datetime
from typing import Optional, Union

from fastapi import APIRouter

from pharmacy_auth.api.deps import Identity
from pharmacy_auth.schemas.auth import (
    CreateUserReply,
    CreateUserRequest,
    LoginReply,
    LoginRequest,
    UserMessage,
    ValidateTokenReply,
    ValidateTokenRequest,
)

router = APIRouter()

_INTEGER = re.compile(r"-?[0-9]{1,18}")


def _error_code(code) -> str:
    return code.value if code is not None else ""


def _unix_seconds(moment: Optional[datetime]) -> int:
    return int(moment.timestamp()) if moment is not None else 0


def _role_id_from_wire(value: Optional[Union[int, str]]) -> Optional[Union[int, str]]:
    """Numeric strings become ints; anything else is left for validation."""
    if isinstance(value, str):
        stripped = value.strip()
        if _INTEGER.fullmatch(stripped):
            return int(stripped)
        return stripped
    return value


@router.post("/Login", response_model=LoginReply)
async def login(data: LoginRequest, identity: Identity):
    """Authenticate with email and password and receive tokens."""
    result = await identity.login(email=data.email, password=data.password)
    return LoginReply(
        success=result.success,
        message=result.message,
        error_code=_error_code(result.error_code),
        errors=result.causes,
        access_token=result.access_token or "",
        refresh_token=result.refresh_token or "",
        user=UserMessage.from_view(result.user),
    )


@router.post("/ValidateToken", response_model=ValidateTokenReply)
async def validate_token(data: ValidateTokenRequest, identity: Identity):
    """Check an access token and return the identity it carries."""
    result = await identity.validate_token(data.token)
    if not result.valid:
        return ValidateTokenReply(valid=False)
    return ValidateTokenReply(
        valid=True,
        user_id=str(result.user_id),
        email=result.email or "",
        roles=result.roles,
        expires_at=_unix_seconds(result.expires_at),
    )


@router.post("/CreateUser", response_model=CreateUserReply)
async def create_user(data: CreateUserRequest, identity: Identity):
    """Register a new user. A role_id of 0 or none selects the default role."""
    result = await identity.create_user(
        first_name=data.first_name,
        email=data.email,
        password=data.password,
        last_name=data.last_name,
        role_id=_role_id_from_wire(data.role_id),
    )
    return CreateUserReply(
        success=result.success,
        message=result.message,
        error_code=_error_code(result.error_code),
        errors=result.causes,
        user=UserMessage.from_view(result.user),
    )
