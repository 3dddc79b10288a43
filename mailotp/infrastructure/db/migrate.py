"""
Tiny forward-only SQL migration runner for the accounts schema.

    python -m mailotp.infrastructure.db.migrate up
    python -m mailotp.infrastructure.db.migrate status
"""

from __future__ import annotations

import logging
import os
import sys
from pathlib import Path

import psycopg

from mailotp.logging import setup_logging
from mailotp.settings import get_settings

logger = logging.getLogger(__name__)

MIGRATIONS_DIR = Path(
    os.environ.get(
        "MIGRATIONS_DIR", Path(__file__).resolve().parents[3] / "migrations"
    )
)
SCHEMA_TABLE_SQL = """
CREATE TABLE IF NOT EXISTS schema_migrations (
  version    text PRIMARY KEY,
  applied_at timestamptz NOT NULL DEFAULT now()
);
"""


def list_migrations(directory: Path = MIGRATIONS_DIR) -> list[Path]:
    if not directory.exists():
        raise FileNotFoundError(f"migrations dir not found: {directory}")
    return sorted(directory.glob("*.sql"))


def pending_migrations(applied: set[str], available: list[Path]) -> list[Path]:
    return [p for p in available if p.stem not in applied]


def applied_versions(conn: psycopg.Connection) -> set[str]:
    with conn.cursor() as cur:
        cur.execute(SCHEMA_TABLE_SQL)
        cur.execute("SELECT version FROM schema_migrations ORDER BY version;")
        rows = cur.fetchall()
    return {r[0] for r in rows}


def apply_one(conn: psycopg.Connection, path: Path) -> None:
    version = path.stem
    logger.info("applying migration", extra={"version": version})
    with conn.cursor() as cur:
        cur.execute(path.read_text(encoding="utf-8"))
        cur.execute(
            "INSERT INTO schema_migrations (version, applied_at) VALUES (%s, now());",
            (version,),
        )
    conn.commit()


def cmd_up(dsn: str) -> int:
    with psycopg.connect(dsn, autocommit=False) as conn:
        to_run = pending_migrations(applied_versions(conn), list_migrations())
        conn.commit()
        if not to_run:
            logger.info("no pending migrations")
            return 0
        for path in to_run:
            try:
                apply_one(conn, path)
            except psycopg.Error:
                conn.rollback()
                logger.exception("migration failed", extra={"version": path.stem})
                return 1
    return 0


def cmd_status(dsn: str) -> int:
    with psycopg.connect(dsn) as conn:
        applied = applied_versions(conn)
    for path in list_migrations():
        state = "applied" if path.stem in applied else "pending"
        logger.info("migration", extra={"version": path.stem, "state": state})
    return 0


def main(argv: list[str]) -> int:
    settings = get_settings()
    setup_logging(settings.log_level, app_env=settings.app_env)
    commands = {"up": cmd_up, "status": cmd_status}
    if len(argv) < 2 or argv[1] not in commands:
        print(
            "usage: python -m mailotp.infrastructure.db.migrate [up|status]",
            file=sys.stderr,
        )
        return 2
    return commands[argv[1]](settings.database_url)


if __name__ == "__main__":
    raise SystemExit(main(sys.argv))
