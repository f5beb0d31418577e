"""Unit tests for the token codec."""

from datetime import datetime, timedelta, timezone

import pytest
from jose import jwt

from pharmacy_auth.kernel.identity.errors import TokenVerificationError
from pharmacy_auth.kernel.identity.jwt import IdentityClaims, TokenCodec

ACCESS_SECRET = "access-secret-for-tests"
REFRESH_SECRET = "refresh-secret-for-tests"


@pytest.fixture
def codec() -> TokenCodec:
    return TokenCodec(
        access_secret=ACCESS_SECRET,
        refresh_secret=REFRESH_SECRET,
        issuer="pharmacy-control-system",
        audience="pharmacy-users",
    )


@pytest.fixture
def identity() -> IdentityClaims:
    return IdentityClaims(user_id=7, email="a@test.com", roles=["Analista"])


class TestTokenCodec:
    """Tests for issuing and verifying tokens."""

    def test_access_round_trip(self, codec, identity):
        claims = codec.verify_access(codec.issue_access(identity))

        assert claims.user_id == 7
        assert claims.email == "a@test.com"
        assert claims.roles == ["Analista"]
        assert claims.token_type == "access"
        assert claims.issuer == "pharmacy-control-system"
        assert claims.audience == "pharmacy-users"

    def test_access_lifetime_is_fifteen_minutes(self, codec, identity):
        claims = codec.verify_access(codec.issue_access(identity))

        assert claims.expires_at - claims.issued_at == timedelta(minutes=15)

    def test_refresh_lifetime_is_seven_days(self, codec, identity):
        claims = codec.verify_refresh(codec.issue_refresh(identity))

        assert claims.expires_at - claims.issued_at == timedelta(days=7)

    def test_each_token_has_unique_id(self, codec, identity):
        first = codec.verify_access(codec.issue_access(identity))
        second = codec.verify_access(codec.issue_access(identity))

        assert first.jti != second.jti

    def test_pair(self, codec, identity):
        pair = codec.issue_pair(identity)

        assert pair.token_type == "bearer"
        assert pair.expires_in == 15 * 60
        assert codec.verify_access(pair.access_token).user_id == 7
        assert codec.verify_refresh(pair.refresh_token).user_id == 7

    def test_refresh_token_is_not_an_access_token(self, codec, identity):
        with pytest.raises(TokenVerificationError):
            codec.verify_access(codec.issue_refresh(identity))

    def test_access_token_is_not_a_refresh_token(self, codec, identity):
        with pytest.raises(TokenVerificationError):
            codec.verify_refresh(codec.issue_access(identity))

    def test_access_token_signed_with_refresh_secret_rejected(self, codec):
        """Even with type=access, the refresh secret must not verify as access."""
        now = datetime.now(timezone.utc)
        forged = jwt.encode(
            {
                "sub": "7", "email": "a@test.com", "roles": [], "type": "access",
                "iss": codec.issuer, "aud": codec.audience,
                "exp": now + timedelta(minutes=5), "iat": now, "jti": "x",
            },
            REFRESH_SECRET,
            algorithm="HS256",
        )
        with pytest.raises(TokenVerificationError):
            codec.verify_access(forged)

    def test_wrong_audience_rejected(self, codec, identity):
        other = TokenCodec(ACCESS_SECRET, REFRESH_SECRET, codec.issuer, "someone-else")

        with pytest.raises(TokenVerificationError):
            codec.verify_access(other.issue_access(identity))

    def test_wrong_issuer_rejected(self, codec, identity):
        other = TokenCodec(ACCESS_SECRET, REFRESH_SECRET, "another-system", codec.audience)

        with pytest.raises(TokenVerificationError):
            codec.verify_access(other.issue_access(identity))

    def test_expired_token_rejected(self, codec, identity):
        token = codec.issue_access(identity, expires_delta=timedelta(seconds=-30))

        with pytest.raises(TokenVerificationError):
            codec.verify_access(token)

    def test_garbage_rejected(self, codec):
        with pytest.raises(TokenVerificationError):
            codec.verify_access("not.a.token")

    def test_equal_secrets_refused(self):
        with pytest.raises(ValueError):
            TokenCodec("same", "same", "iss", "aud")


class TestPeekExpiry:
    """Tests for unverified expiry inspection."""

    def test_reads_expiry_of_expired_token(self, codec, identity):
        token = codec.issue_access(identity, expires_delta=timedelta(seconds=-30))

        expiry = TokenCodec.peek_expiry(token)

        assert expiry is not None
        assert expiry < datetime.now(timezone.utc)

    def test_reads_expiry_regardless_of_secret(self, identity):
        other = TokenCodec("x-secret", "y-secret", "iss", "aud")

        assert TokenCodec.peek_expiry(other.issue_access(identity)) is not None

    def test_garbage_gives_none(self):
        assert TokenCodec.peek_expiry("garbage") is None
