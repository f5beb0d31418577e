"""Unit tests for seeding helpers and settings checks."""

import pytest
from pydantic import ValidationError

from pharmacy_auth.config import Settings
from pharmacy_auth.kernel.identity.seeds import (
    ADMIN_ROLE,
    create_admin_user,
    seed_default_roles,
)
from pharmacy_auth.kernel.identity.validation import validate_password_strength


class TestSeeds:

    @pytest.mark.asyncio
    async def test_seeding_roles_is_idempotent(self, database):
        assert await seed_default_roles(database) == []

    @pytest.mark.asyncio
    async def test_admin_with_generated_password(self, database, store, hasher):
        password = await create_admin_user(database, hasher, "admin@test.com")

        assert password is not None
        assert validate_password_strength(password) == []
        admin = await store.find_by_email("admin@test.com")
        assert admin.role_name == ADMIN_ROLE
        assert hasher.verify(password, admin.password_hash) is True

    @pytest.mark.asyncio
    async def test_existing_admin_untouched(self, database, hasher):
        await create_admin_user(database, hasher, "admin@test.com", password="Adm1n!Pass")

        assert await create_admin_user(database, hasher, "admin@test.com") is None


class TestSettings:

    def test_identical_token_secrets_rejected(self):
        with pytest.raises(ValidationError):
            Settings(_env_file=None, jwt_access_secret="same", jwt_refresh_secret="same")

    def test_bcrypt_rounds_bounded(self):
        with pytest.raises(ValidationError):
            Settings(_env_file=None, bcrypt_rounds=3)
