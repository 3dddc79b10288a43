from __future__ import annotations

from typing import Optional

import httpx

USER_AGENT = "mailotp/0.1"

_client: Optional[httpx.AsyncClient] = None


def build_http_client(timeout: float = 10.0, *, connect_timeout: float = 3.0) -> httpx.AsyncClient:
    # the connect phase is capped separately so an unreachable mail relay fails fast
    return httpx.AsyncClient(
        timeout=httpx.Timeout(timeout, connect=min(connect_timeout, timeout)),
        limits=httpx.Limits(max_connections=50, max_keepalive_connections=10),
        headers={"User-Agent": USER_AGENT},
    )


async def open_http_client(timeout: float = 10.0) -> httpx.AsyncClient:
    """Open the process-wide client used to reach the mail relay. Idempotent."""
    global _client
    if _client is None or _client.is_closed:
        _client = build_http_client(timeout)
    return _client


async def close_http_client() -> None:
    global _client
    client, _client = _client, None
    if client is not None:
        await client.aclose()
