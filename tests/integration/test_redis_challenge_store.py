import asyncio
from datetime import timedelta
from uuid import uuid4

import pytest
from redis.asyncio import Redis

from mailotp.application.otp_service import OtpService
from mailotp.domain.entities import OtpChallenge
from mailotp.domain.errors import CodeMismatch, InvalidCode, StoreUnavailable
from mailotp.domain.services import utcnow
from mailotp.infrastructure.redis_cache.challenge_store import RedisChallengeStore
from tests.fakes import FakeEmailOK

pytestmark = pytest.mark.integration


def make_challenge(identity: str, ttl: float = 60, **kw) -> OtpChallenge:
    now = utcnow()
    data = dict(
        identity=identity,
        challenge_id=uuid4().hex,
        salt_b64="c2FsdA==",
        digest_b64="ZGlnZXN0",
        created_at=now,
        expires_at=now + timedelta(seconds=ttl),
        attempts_remaining=5,
        last_sent_at=now,
    )
    data.update(kw)
    return OtpChallenge(**data)


def identity() -> str:
    return f"{uuid4().hex}@example.com"


async def test_put_get_delete(redis_client: Redis):
    store = RedisChallengeStore(redis_client)
    await store.ping()
    who = identity()
    c = make_challenge(who, superseded=("YQ==:Yg==",), resend_count=2)

    await store.put(c)
    got = await store.get(who.upper())
    assert got == c

    ttl_ms = await redis_client.pttl(f"otp:{who}")
    assert 0 < ttl_ms <= 60_000

    await store.delete(who)
    await store.delete(who)
    assert await store.get(who) is None


async def test_put_replaces_whole_record(redis_client: Redis):
    store = RedisChallengeStore(redis_client)
    who = identity()
    await store.put(make_challenge(who, superseded=("YQ==:Yg==",)))
    await store.put(make_challenge(who, last_sent_at=None))

    got = await store.get(who)
    assert got.superseded == ()
    assert got.last_sent_at is None


async def test_record_expires_with_challenge(redis_client: Redis):
    store = RedisChallengeStore(redis_client)
    who = identity()
    await store.put(make_challenge(who, ttl=1))
    await asyncio.sleep(1.2)
    assert await store.get(who) is None


async def test_lock_is_exclusive_per_identity(redis_client: Redis):
    store = RedisChallengeStore(redis_client, blocking_timeout=0.2)
    who = identity()

    async with store.lock(who):
        with pytest.raises(StoreUnavailable):
            async with store.lock(who):
                pass
        async with store.lock(identity()):
            pass

    async with store.lock(who):
        pass


async def test_service_end_to_end_on_redis(redis_client: Redis):
    email = FakeEmailOK()
    service = OtpService(store=RedisChallengeStore(redis_client), email=email)
    who = identity()

    await service.issue(who)
    code = email.last_code()
    wrong = "000000" if code != "000000" else "111111"

    with pytest.raises(CodeMismatch):
        await service.verify(who, wrong)

    # concurrent verifies: only one wins
    outcomes = await asyncio.gather(
        service.verify(who, code),
        service.verify(who, code),
        return_exceptions=True,
    )
    assert sum(1 for o in outcomes if isinstance(o, InvalidCode)) == 1
    assert sum(1 for o in outcomes if not isinstance(o, Exception)) == 1
