"""Redis client lifecycle.

Redis holds the cross-instance auth state (revoked tokens, invalid-token
counters). Everything else lives in the relational database.
"""

from __future__ import annotations

from typing import Any

import redis.asyncio as redis

_client: Any = None


async def init_redis(url: str) -> None:
    """Create the shared Redis client from a URL."""
    global _client  # noqa: PLW0603
    _client = redis.from_url(  # type: ignore[no-untyped-call]
        url,
        encoding="utf-8",
        decode_responses=True,
        max_connections=50,
    )


def set_redis(client: Any) -> None:  # noqa: ANN401
    """Install an already-built client (tests inject an in-memory double)."""
    global _client  # noqa: PLW0603
    _client = client


async def close_redis() -> None:
    """Close the shared client, if any."""
    global _client  # noqa: PLW0603
    if _client is not None:
        await _client.aclose()
        _client = None


def get_redis() -> Any:  # noqa: ANN401
    """Return the shared client or raise if the app has not started it."""
    if _client is None:
        msg = "Redis not initialized. Call init_redis() first."
        raise RuntimeError(msg)
    return _client


async def ping_redis() -> bool:
    """Readiness helper: True when Redis answers PING."""
    return bool(await get_redis().ping())
