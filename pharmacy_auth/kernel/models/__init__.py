"""
Kernel Data Models

SQLAlchemy models owned by the credential store.
"""

from pharmacy_auth.kernel.models.base import Base, CreatedAtMixin
from pharmacy_auth.kernel.models.user import Role, User

__all__ = [
    "Base",
    "CreatedAtMixin",
    "Role",
    "User",
]
