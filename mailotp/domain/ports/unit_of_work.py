from __future__ import annotations

from types import TracebackType
from typing import Protocol

from mailotp.domain.ports.account_repository import AccountRepositoryPort


class UnitOfWorkPort(Protocol):
    """
    One transaction over the accounts table. Nothing is kept unless
    commit() is called before the block exits:

        async with uow as tx:
            await tx.accounts.set_verified(user.id)
            await tx.commit()

    Challenge state lives in the challenge store and is never part of it.
    """

    accounts: AccountRepositoryPort

    async def __aenter__(self) -> "UnitOfWorkPort": ...

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_value: BaseException | None,
        traceback: TracebackType | None,
    ) -> None: ...

    async def commit(self) -> None: ...

    async def rollback(self) -> None: ...
