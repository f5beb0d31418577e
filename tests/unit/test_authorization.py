"""Unit tests for bearer-token authorization."""

from datetime import timedelta

import pytest

from pharmacy_auth.kernel.identity.authorization import (
    INSUFFICIENT_PERMISSIONS,
    TOKEN_INVALID,
    TOKEN_REQUIRED,
    AuthorizationHelper,
    extract_bearer_token,
)
from pharmacy_auth.kernel.identity.jwt import IdentityClaims, TokenCodec


@pytest.fixture
def codec() -> TokenCodec:
    return TokenCodec("access-secret", "refresh-secret", "pharmacy-control-system", "pharmacy-users")


@pytest.fixture
def helper(codec) -> AuthorizationHelper:
    return AuthorizationHelper(codec)


def _headers(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}


def _identity(*roles: str) -> IdentityClaims:
    return IdentityClaims(user_id=3, email="a@test.com", roles=list(roles))


class TestExtractBearerToken:

    def test_key_is_case_insensitive(self):
        assert extract_bearer_token({"AUTHORIZATION": "Bearer abc"}) == "abc"
        assert extract_bearer_token({"authorization": "bearer abc"}) == "abc"

    def test_missing_header(self):
        assert extract_bearer_token({}) is None

    def test_other_scheme(self):
        assert extract_bearer_token({"authorization": "Basic dXNlcjpwYXNz"}) is None

    def test_empty_token(self):
        assert extract_bearer_token({"authorization": "Bearer "}) is None


class TestAuthenticate:

    def test_valid_token(self, helper, codec):
        check = helper.authenticate(_headers(codec.issue_access(_identity("Analista"))))

        assert check.valid is True
        assert check.user_id == 3
        assert check.roles == ["Analista"]
        assert check.error is None

    def test_missing_token(self, helper):
        check = helper.authenticate({})

        assert check.valid is False
        assert check.error == TOKEN_REQUIRED

    def test_expired_token(self, helper, codec):
        token = codec.issue_access(_identity("Analista"), expires_delta=timedelta(seconds=-5))

        check = helper.authenticate(_headers(token))

        assert check.valid is False
        assert check.error == TOKEN_INVALID

    def test_refresh_token_refused(self, helper, codec):
        check = helper.authenticate(_headers(codec.issue_refresh(_identity("Analista"))))

        assert check.valid is False
        assert check.error == TOKEN_INVALID


class TestAuthorizeRoles:

    def test_allowed_role(self, helper, codec):
        admins_only = helper.authorize_roles(["Administrador"])
        token = codec.issue_access(_identity("Administrador"))

        assert admins_only(_headers(token)).authorized is True

    def test_other_role_refused(self, helper, codec):
        admins_only = helper.authorize_roles(["Administrador", "Supervisor"])
        token = codec.issue_access(_identity("Analista"))

        check = admins_only(_headers(token))

        assert check.authorized is False
        assert check.error == INSUFFICIENT_PERMISSIONS

    def test_unauthenticated_refused(self, helper):
        check = helper.authorize_roles(["Administrador"])({})

        assert check.authorized is False
        assert check.error == TOKEN_REQUIRED
