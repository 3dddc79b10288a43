from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager
from dataclasses import replace
from datetime import datetime
from typing import AsyncIterator, Callable

from mailotp.domain.entities import OtpChallenge, normalize_email
from mailotp.domain.ports.challenge_store import ChallengeStorePort
from mailotp.domain.services import utcnow


class InMemoryChallengeStore(ChallengeStorePort):
    """
    Process-local store for single-instance deployments and tests.

    Records are copied on the way in and out, so a caller only changes the
    stored state through put(). Expired records are skipped on read and
    reclaimed by purge_expired() (see ChallengeJanitor).
    """

    def __init__(self, *, clock: Callable[[], datetime] = utcnow) -> None:
        self._clock = clock
        self._records: dict[str, OtpChallenge] = {}
        self._locks: dict[str, asyncio.Lock] = {}
        self._lock_users: dict[str, int] = {}

    @asynccontextmanager
    async def lock(self, identity: str) -> AsyncIterator[None]:
        key = normalize_email(identity)
        lock = self._locks.get(key)
        if lock is None:
            lock = self._locks[key] = asyncio.Lock()
        self._lock_users[key] = self._lock_users.get(key, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._lock_users[key] -= 1
            if self._lock_users[key] == 0:
                del self._lock_users[key]
                del self._locks[key]

    async def put(self, challenge: OtpChallenge) -> None:
        self._records[challenge.identity] = replace(challenge)

    async def get(self, identity: str) -> OtpChallenge | None:
        key = normalize_email(identity)
        stored = self._records.get(key)
        if stored is None:
            return None
        if stored.is_expired(self._clock()):
            self._records.pop(key, None)
            return None
        return replace(stored)

    async def delete(self, identity: str) -> None:
        self._records.pop(normalize_email(identity), None)

    async def purge_expired(self, now: datetime) -> int:
        expired = [k for k, c in self._records.items() if c.is_expired(now)]
        for key in expired:
            del self._records[key]
        return len(expired)

    async def ping(self) -> None:
        return None

    def __len__(self) -> int:
        return len(self._records)
