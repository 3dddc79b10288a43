from __future__ import annotations

from typing import Optional

from redis.asyncio import Redis

from mailotp.settings import Settings, get_settings

_client: Optional[Redis] = None


def redis_from_settings(settings: Settings) -> Redis:
    """
    Challenge records are plain str hashes (decode_responses=True).
    A short socket timeout turns a stalled Redis into StoreUnavailable
    instead of a hung request.
    """
    return Redis.from_url(
        settings.redis_url,
        encoding="utf-8",
        decode_responses=True,
        socket_timeout=settings.redis_socket_timeout_seconds,
        socket_connect_timeout=settings.redis_socket_timeout_seconds,
        health_check_interval=30,
    )


def get_redis() -> Redis:
    global _client
    if _client is None:
        _client = redis_from_settings(get_settings())
    return _client


async def close_redis() -> None:
    global _client
    client, _client = _client, None
    if client is not None:
        await client.aclose()
