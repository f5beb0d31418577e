"""
Common schema types used across the service.
"""

from pydantic import BaseModel


class HealthResponse(BaseModel):
    """Health check response."""

    status: str = "ok"
    version: str
    database: str = "connected"
    uptime_seconds: float
    timestamp: str
