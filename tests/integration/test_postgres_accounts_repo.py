import pytest

from mailotp.infrastructure.db.accounts_repo import PgAccountRepository
from mailotp.infrastructure.db.uow import PgUnitOfWork

pytest_plugins = ["tests.integration.db_fixtures"]
pytestmark = [pytest.mark.integration, pytest.mark.usefixtures("clean_accounts")]


async def _password_hash(pool, email: str) -> str | None:
    async with pool.connection() as conn:
        async with conn.cursor() as cur:
            await cur.execute(
                "SELECT password_hash FROM accounts WHERE email = %s;", (email,)
            )
            row = await cur.fetchone()
    return row[0] if row else None


async def test_create_or_update_pending_then_verified_is_frozen(pool):
    async with pool.connection() as conn:
        repo = PgAccountRepository(conn)

        u1 = await repo.create_or_update_pending(" Jeremy@Example.COM ", "Jeremy", "hash-1")
        assert u1.email == "jeremy@example.com"
        assert u1.status == "pending"
        assert u1.id is not None

        u2 = await repo.create_or_update_pending("jeremy@example.com", "J", "hash-2")
        assert u2.id == u1.id and u2.name == "J"

        await repo.set_verified(u1.id)
        u3 = await repo.create_or_update_pending("JEREMY@EXAMPLE.COM", "Other", "hash-3")
        assert u3.id == u1.id
        assert u3.status == "verified"
        assert u3.name == "J"
        await conn.commit()

    assert await _password_hash(pool, "jeremy@example.com") == "hash-2"


async def test_unit_of_work_rolls_back_without_commit(pool):
    uow = PgUnitOfWork(pool)
    async with uow as tx:
        await tx.accounts.create_or_update_pending("gone@example.com", "Gone", "h")

    assert await _password_hash(pool, "gone@example.com") is None

    async with uow as tx:
        user = await tx.accounts.create_or_update_pending("kept@example.com", "Kept", "h")
        await tx.commit()

    async with uow as tx:
        found = await tx.accounts.get_by_email_for_update(" KEPT@example.com")
        assert found is not None and found.id == user.id
        assert await tx.accounts.get_by_email_for_update("nobody@example.com") is None
