"""Revoked tokens and suspicious clients, kept in Redis.

Both maps expire on their own: a revoked ``jti`` lives until the token would
have expired anyway, and the invalid-token counter per client IP lives for
``suspicious_token_window_seconds`` after its first hit.
"""

from __future__ import annotations

import time
from typing import Any

import structlog

from ideation.config import Settings, get_settings
from ideation.redis_client import get_redis

logger = structlog.get_logger()

_REVOKED_PREFIX = "auth:revoked:"
_INVALID_PREFIX = "auth:invalid:"


class TokenBlacklist:
    def __init__(self, redis: Any, settings: Settings) -> None:  # noqa: ANN401
        self.redis = redis
        self.threshold = settings.suspicious_token_threshold
        self.window_seconds = settings.suspicious_token_window_seconds

    async def revoke(self, jti: str, expires_at: int) -> None:
        """Blacklist ``jti`` until ``expires_at`` (unix seconds)."""
        ttl = max(int(expires_at - time.time()), 1)
        await self.redis.set(f"{_REVOKED_PREFIX}{jti}", "1", ex=ttl)
        logger.info("token_revoked", jti=jti, ttl=ttl)

    async def is_revoked(self, jti: str) -> bool:
        return bool(await self.redis.exists(f"{_REVOKED_PREFIX}{jti}"))

    async def record_invalid_token(self, client_ip: str) -> int:
        """Count one invalid token from ``client_ip``; returns the running count."""
        key = f"{_INVALID_PREFIX}{client_ip}"
        count = int(await self.redis.incr(key))
        if count == 1:
            await self.redis.expire(key, self.window_seconds)
        if count == self.threshold:
            logger.warning("suspicious_client", client_ip=client_ip, invalid_tokens=count)
        return count

    async def is_suspicious(self, client_ip: str) -> bool:
        raw = await self.redis.get(f"{_INVALID_PREFIX}{client_ip}")
        return raw is not None and int(raw) >= self.threshold


def get_token_blacklist() -> TokenBlacklist:
    """FastAPI dependency; tests override it or install a Redis double."""
    return TokenBlacklist(get_redis(), get_settings())
