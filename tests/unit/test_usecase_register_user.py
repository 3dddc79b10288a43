import pytest

from mailotp.application.register_user import register_user
from mailotp.domain.errors import StoreUnavailable, TooSoon
from tests.fakes import FakeErroredChallengeStore


async def test_register_user_happy_path(uow, otp_service, store, email, hash_password_stub):
    result = await register_user(
        uow,
        otp_service,
        name=" Jeremy ",
        email=" Jeremy@Example.COM ",
        password="s3cret",
        hash_password=hash_password_stub,
    )

    user = uow.accounts.by_email["jeremy@example.com"]
    assert user.name == "Jeremy" and user.status == "pending"
    assert uow.accounts.password_hash_by_email["jeremy@example.com"] == "hashed-s3cret"
    assert uow.committed is True

    assert result is not None and result.identity == "jeremy@example.com"
    assert await store.get("jeremy@example.com") is not None
    assert email.calls[0]["to"] == "jeremy@example.com"
    assert "482913" in email.calls[0]["body"]


async def test_register_verified_account_sends_nothing(
    uow, otp_service, email, hash_password_stub
):
    await uow.accounts.create_or_update_pending("a@x.com", "A", "h")
    uow.accounts.by_email["a@x.com"].status = "verified"

    result = await register_user(
        uow,
        otp_service,
        name="A",
        email="a@x.com",
        password="s3cret",
        hash_password=hash_password_stub,
    )

    assert result is None
    assert email.calls == []
    assert uow.accounts.password_hash_by_email["a@x.com"] == "h"


async def test_register_within_cooldown_leaves_account_untouched(
    uow, otp_service, email, hash_password_stub
):
    await register_user(
        uow, otp_service, name="A", email="a@x.com", password="first", hash_password=hash_password_stub
    )
    commits = uow.commits

    with pytest.raises(TooSoon):
        await register_user(
            uow,
            otp_service,
            name="Mallory",
            email="A@X.com",
            password="second",
            hash_password=hash_password_stub,
        )

    assert uow.commits == commits
    assert uow.accounts.by_email["a@x.com"].name == "A"
    assert uow.accounts.password_hash_by_email["a@x.com"] == "hashed-first"
    assert len(email.calls) == 1


async def test_register_user_error_in_challenge_store(
    uow, make_service, email, hash_password_stub
):
    service = make_service(store=FakeErroredChallengeStore())
    with pytest.raises(StoreUnavailable):
        await register_user(
            uow,
            service,
            name="Jeremy",
            email="jeremy@example.com",
            password="s3cret",
            hash_password=hash_password_stub,
        )

    # the pending account is kept, a retried registration is an upsert
    assert uow.committed is True
    assert email.calls == []
