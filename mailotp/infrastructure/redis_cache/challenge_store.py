from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from datetime import datetime
from typing import AsyncIterator

from redis.asyncio import Redis
from redis.exceptions import LockError, RedisError

from mailotp.domain.entities import OtpChallenge, normalize_email
from mailotp.domain.errors import StoreUnavailable
from mailotp.domain.ports.challenge_store import ChallengeStorePort

logger = logging.getLogger(__name__)


def _to_mapping(challenge: OtpChallenge) -> dict[str, str]:
    return {
        "identity": challenge.identity,
        "challenge_id": challenge.challenge_id,
        "salt": challenge.salt_b64,
        "digest": challenge.digest_b64,
        "created_at": challenge.created_at.isoformat(),
        "expires_at": challenge.expires_at.isoformat(),
        "attempts_remaining": str(challenge.attempts_remaining),
        "resend_count": str(challenge.resend_count),
        "last_sent_at": (
            challenge.last_sent_at.isoformat() if challenge.last_sent_at else ""
        ),
        "consumed": "1" if challenge.consumed else "0",
        "superseded": ",".join(challenge.superseded),
    }


def _from_mapping(stored: dict[str, str]) -> OtpChallenge:
    last_sent_at = stored.get("last_sent_at") or None
    return OtpChallenge(
        identity=stored["identity"],
        challenge_id=stored["challenge_id"],
        salt_b64=stored["salt"],
        digest_b64=stored["digest"],
        created_at=datetime.fromisoformat(stored["created_at"]),
        expires_at=datetime.fromisoformat(stored["expires_at"]),
        attempts_remaining=int(stored["attempts_remaining"]),
        resend_count=int(stored.get("resend_count", "0")),
        last_sent_at=datetime.fromisoformat(last_sent_at) if last_sent_at else None,
        consumed=stored.get("consumed") == "1",
        superseded=tuple(s for s in stored.get("superseded", "").split(",") if s),
    )


class RedisChallengeStore(ChallengeStorePort):
    """
    One hash per identity (`otp:<email>`), expiring at the challenge's
    expires_at. Per-identity mutual exclusion uses a redis-py Lock on
    `otp:lock:<email>` so several API processes can share one Redis.
    """

    def __init__(
        self,
        redis: Redis,
        *,
        key_prefix: str = "otp:",
        lock_timeout: float = 5.0,
        blocking_timeout: float = 5.0,
    ) -> None:
        self._redis = redis
        self._prefix = key_prefix
        self._lock_timeout = lock_timeout
        self._blocking_timeout = blocking_timeout

    def _key(self, identity: str) -> str:
        return f"{self._prefix}{normalize_email(identity)}"

    def _lock_key(self, identity: str) -> str:
        return f"{self._prefix}lock:{normalize_email(identity)}"

    @asynccontextmanager
    async def lock(self, identity: str) -> AsyncIterator[None]:
        lock = self._redis.lock(
            self._lock_key(identity),
            timeout=self._lock_timeout,
            blocking_timeout=self._blocking_timeout,
        )
        try:
            acquired = await lock.acquire()
        except RedisError as e:
            raise StoreUnavailable() from e
        if not acquired:
            logger.warning("challenge lock not acquired", extra={"identity": identity})
            raise StoreUnavailable()
        try:
            yield
        finally:
            try:
                await lock.release()
            except LockError:
                # lease ran out while we held it; the next holder already owns it
                logger.warning(
                    "challenge lock expired before release",
                    extra={"identity": identity},
                )

    async def put(self, challenge: OtpChallenge) -> None:
        key = self._key(challenge.identity)
        pipe = self._redis.pipeline(transaction=True)
        pipe.delete(key)
        pipe.hset(key, mapping=_to_mapping(challenge))
        pipe.pexpireat(key, challenge.expires_at)
        try:
            await pipe.execute()
        except RedisError as e:
            raise StoreUnavailable() from e

    async def get(self, identity: str) -> OtpChallenge | None:
        try:
            stored = await self._redis.hgetall(self._key(identity))
        except RedisError as e:
            raise StoreUnavailable() from e
        if not stored or "digest" not in stored:
            return None
        return _from_mapping(stored)

    async def delete(self, identity: str) -> None:
        try:
            await self._redis.delete(self._key(identity))
        except RedisError as e:
            raise StoreUnavailable() from e

    async def purge_expired(self, now: datetime) -> int:
        # keys carry their own TTL
        return 0

    async def ping(self) -> None:
        try:
            await self._redis.ping()
        except RedisError as e:
            raise StoreUnavailable() from e
