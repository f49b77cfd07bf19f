"""Unit tests for JWT issuing/verification and the Redis-backed token blacklist."""

from __future__ import annotations

import time

import jwt
import pytest

from ideation.auth.blacklist import TokenBlacklist
from ideation.auth.jwt import create_access_token, verify_token
from ideation.config import get_settings
from ideation.db.enums import UserRole


class TestJwt:
    def test_round_trip_claims(self):
        token = create_access_token(7, UserRole.ADMIN, "admin@example.com", token_id="abc123")
        payload = verify_token(token)
        assert payload["sub"] == "7"
        assert payload["role"] == "ADMIN"
        assert payload["email"] == "admin@example.com"
        assert payload["jti"] == "abc123"
        assert payload["iss"] == get_settings().jwt_issuer
        assert payload["type"] == "access"

    def test_each_token_gets_its_own_jti(self):
        first = verify_token(create_access_token(1, UserRole.USER, "a@example.com"))
        second = verify_token(create_access_token(1, UserRole.USER, "a@example.com"))
        assert first["jti"] != second["jti"]

    def test_expired_token(self):
        token = create_access_token(1, UserRole.USER, "a@example.com", expires_minutes=-1)
        with pytest.raises(jwt.InvalidTokenError, match="Token has expired"):
            verify_token(token)

    def test_wrong_signature(self):
        forged = jwt.encode(
            {"sub": "1", "exp": int(time.time()) + 60, "jti": "x", "type": "access", "iss": "ideation-platform"},
            "another-secret-another-secret-another-secret-0000",
            algorithm="HS256",
        )
        with pytest.raises(jwt.InvalidTokenError):
            verify_token(forged)

    def test_wrong_type(self):
        token = create_access_token(1, UserRole.USER, "a@example.com")
        with pytest.raises(jwt.InvalidTokenError, match="Expected token type 'refresh'"):
            verify_token(token, expected_type="refresh")


class TestTokenBlacklist:
    @pytest.mark.asyncio
    async def test_revoke_then_check(self, fake_redis):
        blacklist = TokenBlacklist(fake_redis, get_settings())
        assert not await blacklist.is_revoked("jti-1")
        await blacklist.revoke("jti-1", int(time.time()) + 120)
        assert await blacklist.is_revoked("jti-1")
        assert not await blacklist.is_revoked("jti-2")

    @pytest.mark.asyncio
    async def test_revocation_expires_with_token(self, fake_redis):
        blacklist = TokenBlacklist(fake_redis, get_settings())
        await blacklist.revoke("jti-1", int(time.time()) + 120)
        assert 0 < fake_redis.expiry["auth:revoked:jti-1"] - time.time() <= 120

    @pytest.mark.asyncio
    async def test_invalid_tokens_mark_client_suspicious(self, fake_redis, monkeypatch):
        monkeypatch.setenv("IDEATION_SUSPICIOUS_TOKEN_THRESHOLD", "3")
        get_settings.cache_clear()
        blacklist = TokenBlacklist(fake_redis, get_settings())

        for expected in (1, 2):
            assert await blacklist.record_invalid_token("10.0.0.1") == expected
            assert not await blacklist.is_suspicious("10.0.0.1")

        assert await blacklist.record_invalid_token("10.0.0.1") == 3
        assert await blacklist.is_suspicious("10.0.0.1")
        assert not await blacklist.is_suspicious("10.0.0.2")
        assert "auth:invalid:10.0.0.1" in fake_redis.expiry
