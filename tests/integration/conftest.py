# tests/integration/conftest.py
import pytest_asyncio

from mailotp.infrastructure.redis_cache.pool import redis_from_settings
from mailotp.settings import get_settings


@pytest_asyncio.fixture
async def redis_client():
    """Client built the way the app builds it (REDIS_URL, socket timeouts)."""
    r = redis_from_settings(get_settings())
    try:
        yield r
    finally:
        await r.aclose()
