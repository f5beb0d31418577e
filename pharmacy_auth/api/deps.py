"""
FastAPI dependencies for the RPC handlers.
"""

from typing import Annotated

from fastapi import Depends, Request

from pharmacy_auth.kernel.identity.identity_service import IdentityService


def get_identity_service(request: Request) -> IdentityService:
    """Identity service built at startup and stored on the app."""
    return request.app.state.identity_service


Identity = Annotated[IdentityService, Depends(get_identity_service)]
