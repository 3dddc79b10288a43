from __future__ import annotations

from typing import Optional

from psycopg_pool import AsyncConnectionPool

from mailotp.settings import Settings, get_settings

_pool: Optional[AsyncConnectionPool] = None


def with_connect_timeout(dsn: str, seconds: int) -> str:
    """Append libpq's connect_timeout unless the DSN already sets one."""
    if "connect_timeout=" in dsn:
        return dsn
    if "://" not in dsn:
        # key=value conninfo
        return f"{dsn} connect_timeout={seconds}"
    sep = "&" if "?" in dsn else "?"
    return f"{dsn}{sep}connect_timeout={seconds}"


def pool_from_settings(settings: Settings) -> AsyncConnectionPool:
    return AsyncConnectionPool(
        with_connect_timeout(settings.database_url, settings.db_connect_timeout_seconds),
        min_size=1,
        max_size=settings.db_pool_max_size,
        timeout=5,
        name="accounts",
        open=False,
    )


def get_pool() -> AsyncConnectionPool:
    """Process-wide accounts pool, created closed; the app lifespan opens it."""
    global _pool
    if _pool is None:
        _pool = pool_from_settings(get_settings())
    return _pool


async def close_pool() -> None:
    global _pool
    pool, _pool = _pool, None
    if pool is not None:
        await pool.close()
