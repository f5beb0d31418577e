"""
Seed data for the identity tables.
"""

from typing import Optional

from sqlalchemy import select

from pharmacy_auth.database import Database
from pharmacy_auth.kernel.identity.credential_store import CredentialStore
from pharmacy_auth.kernel.identity.password import PasswordHasher, generate_random_password
from pharmacy_auth.kernel.models.user import Role
from pharmacy_auth.logging_config import get_logger, mask_email

logger = get_logger(__name__)

ADMIN_ROLE = "Administrador"
DEFAULT_ROLES = ("Administrador", "Supervisor", "Inspector", "Analista")


async def seed_default_roles(database: Database) -> list[str]:
    """Insert any missing standard roles. Returns the names that were created."""
    created: list[str] = []
    async with database.session() as session:
        async with session.begin():
            result = await session.execute(select(Role.name))
            existing = set(result.scalars().all())
            for name in DEFAULT_ROLES:
                if name not in existing:
                    session.add(Role(name=name))
                    created.append(name)
    for name in created:
        logger.info("Role created", extra={"role": name})
    return created


async def create_admin_user(
    database: Database,
    hasher: PasswordHasher,
    email: str,
    password: Optional[str] = None,
    first_name: str = "Admin",
    last_name: Optional[str] = "Usuario",
) -> Optional[str]:
    """
    Create an administrator account unless one exists for ``email``.

    Returns the password that was set (generated when none is given), or
    None when the account already existed.
    """
    store = CredentialStore(database)
    if await store.find_by_email(email) is not None:
        logger.info("Admin user already exists", extra={"email": mask_email(email)})
        return None

    role = await store.find_role_by_name(ADMIN_ROLE)
    if role is None:
        raise RuntimeError(f"role {ADMIN_ROLE!r} is missing; seed roles first")

    password = password or generate_random_password()
    outcome = await store.create_user(
        first_name=first_name,
        last_name=last_name,
        email=email,
        password_hash=await hasher.hash_async(password),
        role_id=role.id,
    )
    if not outcome.success:
        raise RuntimeError(f"could not create admin user: {outcome.message}")

    logger.info("Admin user created", extra={"email": mask_email(email)})
    return password
