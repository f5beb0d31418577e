"""
RPC services.
"""

from fastapi import APIRouter

from pharmacy_auth.api.rpc import auth

router = APIRouter()

router.include_router(auth.router, prefix="/auth.AuthService", tags=["AuthService"])
