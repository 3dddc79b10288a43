from datetime import datetime, timezone

import pytest

from mailotp.application.otp_service import OtpService
from mailotp.domain.throttle import ThrottlePolicy
from mailotp.infrastructure.memory.challenge_store import InMemoryChallengeStore
from tests.fakes import FakeClock, FakeEmailOK, FakeUoW


@pytest.fixture()
def clock():
    return FakeClock(datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc))


@pytest.fixture()
def store(clock):
    return InMemoryChallengeStore(clock=clock)


@pytest.fixture()
def email():
    return FakeEmailOK()


@pytest.fixture()
def make_service(store, email, clock):
    def _make(**overrides) -> OtpService:
        kwargs = dict(
            store=store,
            email=email,
            throttle=ThrottlePolicy(cooldown_seconds=30, max_attempts=5),
            code_length=6,
            code_ttl_seconds=300,
            delivery_timeout_seconds=1.0,
            clock=clock,
        )
        kwargs.update(overrides)
        return OtpService(**kwargs)

    return _make


@pytest.fixture()
def otp_service(make_service):
    return make_service()


@pytest.fixture()
def uow():
    return FakeUoW()


@pytest.fixture()
def hash_password_stub():
    return lambda p: "hashed-" + p


@pytest.fixture(autouse=True)
def next_codes(monkeypatch):
    """
    Make generated codes deterministic in all tests.
    Codes appended to the returned list are handed out first, in order;
    once it is empty every code is "482913".
    """
    from mailotp.domain import services as domain_services

    queue: list[str] = []
    monkeypatch.setattr(
        domain_services,
        "generate_numeric_code",
        lambda length=6: queue.pop(0) if queue else "482913",
    )
    yield queue
