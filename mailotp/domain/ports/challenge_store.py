from __future__ import annotations

from datetime import datetime
from typing import AsyncContextManager, Protocol

from mailotp.domain.entities import OtpChallenge


class ChallengeStorePort(Protocol):
    """
    Keyed storage of outstanding challenges, one record per identity.

    Usage (read-modify-write for one identity):
        async with store.lock(identity):
            challenge = await store.get(identity)
            ...
            await store.put(challenge)
    """

    def lock(self, identity: str) -> AsyncContextManager[None]:
        """Mutual exclusion for one identity. Other identities never wait on it."""

    async def put(self, challenge: OtpChallenge) -> None:
        """Store/replace the challenge for challenge.identity, kept until expires_at."""

    async def get(self, identity: str) -> OtpChallenge | None:
        """Return the stored challenge or None."""

    async def delete(self, identity: str) -> None:
        """Delete any stored challenge. Idempotent."""

    async def purge_expired(self, now: datetime) -> int:
        """Reclaim expired records, return how many were dropped."""

    async def ping(self) -> None:
        """Raise StoreUnavailable when the backend cannot serve requests."""
