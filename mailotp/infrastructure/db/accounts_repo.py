from __future__ import annotations

from typing import Optional

import psycopg

from mailotp.domain.entities import User
from mailotp.domain.ports.account_repository import AccountRepositoryPort


class PgAccountRepository(AccountRepositoryPort):
    """
    Postgres implementation of AccountRepositoryPort.

    NOTE:
    - This repo is constructed with an *active async connection* supplied by the UoW.
    - It does not commit; the UnitOfWork controls the transaction boundary.
    """

    def __init__(self, conn: psycopg.AsyncConnection) -> None:
        self._conn = conn

    async def create_or_update_pending(
        self, email: str, name: str, password_hash: str
    ) -> User:
        sql = """
        WITH upsert AS (
        INSERT INTO accounts (email, name, password_hash, status)
        VALUES (LOWER(TRIM(%s)), %s, %s, 'pending')
        ON CONFLICT (email) DO UPDATE
            SET name = EXCLUDED.name,
                password_hash = EXCLUDED.password_hash,
                updated_at = NOW()
            WHERE accounts.status = 'pending'
        RETURNING id, email, name, status
        )
        SELECT id, email, name, status
        FROM upsert
        UNION ALL
        SELECT id, email, name, status
        FROM accounts
        WHERE email = LOWER(TRIM(%s)) AND NOT EXISTS (SELECT 1 FROM upsert)
        LIMIT 1;
        """
        async with self._conn.cursor() as cur:
            await cur.execute(sql, (email, name, password_hash, email))
            row = await cur.fetchone()

        if not row:
            raise RuntimeError("create_or_update_pending returned no row")

        uid, eml, db_name, status = row
        return User(id=str(uid), email=str(eml), name=db_name or "", status=status)

    async def get_by_email_for_update(self, email: str) -> Optional[User]:
        sql = """
        SELECT id, email, name, status
        FROM accounts
        WHERE email = LOWER(TRIM(%s))
        FOR UPDATE
        """
        async with self._conn.cursor() as cur:
            await cur.execute(sql, (email,))
            row = await cur.fetchone()
        if not row:
            return None

        id_, db_email, db_name, db_status = row
        return User(
            id=str(id_), email=str(db_email), name=db_name or "", status=db_status
        )

    async def set_verified(self, user_id: str) -> None:
        sql = """
        UPDATE accounts
        SET status = 'verified', verified_at = NOW(), updated_at = NOW()
        WHERE id = %s AND status = 'pending';
        """
        async with self._conn.cursor() as cur:
            await cur.execute(sql, (user_id,))
