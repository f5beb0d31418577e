"""
Seed the standard roles and, optionally, an administrator account.

Usage:
    python scripts/seed_identity.py
    python scripts/seed_identity.py --admin-email admin@pharmacy.test
"""

import argparse
import asyncio
import sys

sys.path.insert(0, ".")

from pharmacy_auth.config import get_settings
from pharmacy_auth.database import Database
from pharmacy_auth.kernel.identity.password import PasswordHasher
from pharmacy_auth.kernel.identity.seeds import create_admin_user, seed_default_roles
from pharmacy_auth.logging_config import configure_logging


async def main(admin_email: str | None, create_schema: bool) -> None:
    settings = get_settings()
    configure_logging(log_level=settings.log_level, environment=settings.environment)

    database = Database(settings.database_url, timeout_seconds=settings.store_timeout_seconds)
    database.open()
    try:
        if create_schema:
            await database.create_schema()
        created = await seed_default_roles(database)
        print(f"Roles created: {', '.join(created) or 'none'}")

        if admin_email:
            password = await create_admin_user(
                database,
                PasswordHasher(rounds=settings.bcrypt_rounds),
                admin_email,
            )
            if password is None:
                print(f"Admin {admin_email} already exists")
            else:
                print(f"Admin {admin_email} created with password: {password}")
    finally:
        await database.close()


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[1])
    parser.add_argument("--admin-email", help="create an administrator with this email")
    parser.add_argument("--create-schema", action="store_true", help="create tables first")
    args = parser.parse_args()
    asyncio.run(main(args.admin_email, args.create_schema))
