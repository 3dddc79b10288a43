from __future__ import annotations

from typing import Optional, Protocol

from mailotp.domain.entities import User


class AccountRepositoryPort(Protocol):
    async def create_or_update_pending(
        self, email: str, name: str, password_hash: str
    ) -> User:
        """
        Create account as 'pending' if not exists.
        If exists and status == 'pending', update name and password_hash.
        If exists and status == 'verified', leave unchanged.
        Return the current User record in all cases.
        """

    async def get_by_email_for_update(self, email: str) -> Optional[User]:
        """
        Fetch account by email and lock the row for update (transaction-scoped).
        Return None if not found.
        """

    async def set_verified(self, user_id: str) -> None:
        """Mark account as verified."""
