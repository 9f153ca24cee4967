"""
PostgreSQL repository adapter - Implements CredentialStore protocol.

This module provides the PostgreSQL implementation of the domain's
credential store port using psycopg3 with raw SQL.

Concurrency Design:
------------------
Email uniqueness is enforced by the UNIQUE constraint on identities.email,
not by a read-then-write check. create() uses INSERT ... ON CONFLICT DO
NOTHING RETURNING, so of two sagas committing the same email concurrently
exactly one gets a row back; the other sees no row and raises DuplicateEmail.

delete() is a plain DELETE without an existence check, which makes it
idempotent and safe to repeat during compensation.
"""

import logging
from pathlib import Path

from psycopg_pool import ConnectionPool

from src.domain.exceptions import DuplicateEmail
from src.domain.models import Identity, Role

logger = logging.getLogger(__name__)

_COLUMNS = "subject_id, email, password_hash, role, created_at, updated_at"


class PostgresCredentialStore:
    """
    Implements CredentialStore protocol via psycopg3.

    Uses structural subtyping - no explicit inheritance from Protocol.
    All SQL uses parameterized queries for security.
    """

    def __init__(self, pool: ConnectionPool) -> None:
        """
        Initialize store with connection pool.

        Args:
            pool: psycopg3 ConnectionPool for database connections
        """
        self._pool = pool

    def create(self, identity: Identity) -> Identity:
        """
        Insert a new identity row.

        Args:
            identity: Identity with subject_id already assigned

        Returns:
            The stored identity with database timestamps

        Raises:
            DuplicateEmail: If another identity already owns the email
        """
        sql = f"""
            INSERT INTO identities (subject_id, email, password_hash, role, created_at, updated_at)
            VALUES (%s, %s, %s, %s, NOW(), NOW())
            ON CONFLICT (email) DO NOTHING
            RETURNING {_COLUMNS}
        """

        with self._pool.connection() as conn, conn.cursor() as cursor:
            cursor.execute(
                sql,
                (identity.subject_id, identity.email, identity.password_hash, identity.role.value),
            )
            row = cursor.fetchone()
            conn.commit()

        if row is None:
            raise DuplicateEmail(identity.email)

        logger.info("Identity %s created (%s)", identity.subject_id, identity.role.value)
        return _row_to_identity(row)

    def find_by_email(self, email: str) -> Identity | None:
        sql = f"SELECT {_COLUMNS} FROM identities WHERE email = %s"
        with self._pool.connection() as conn, conn.cursor() as cursor:
            cursor.execute(sql, (email,))
            row = cursor.fetchone()
        return _row_to_identity(row) if row is not None else None

    def find_by_id(self, subject_id: str) -> Identity | None:
        sql = f"SELECT {_COLUMNS} FROM identities WHERE subject_id = %s"
        with self._pool.connection() as conn, conn.cursor() as cursor:
            cursor.execute(sql, (subject_id,))
            row = cursor.fetchone()
        return _row_to_identity(row) if row is not None else None

    def delete(self, subject_id: str) -> None:
        """Delete an identity. A missing subject_id is not an error."""
        with self._pool.connection() as conn, conn.cursor() as cursor:
            cursor.execute("DELETE FROM identities WHERE subject_id = %s", (subject_id,))
            deleted = cursor.rowcount
            conn.commit()
        logger.info("Identity %s delete requested (rows=%d)", subject_id, deleted)

    def update_password_hash(self, subject_id: str, password_hash: str) -> bool:
        """
        Replace the password hash of a password-bearing identity.

        Returns:
            True if exactly one row was updated
        """
        sql = """
            UPDATE identities
            SET password_hash = %s, updated_at = NOW()
            WHERE subject_id = %s AND role <> 'partner'
        """
        with self._pool.connection() as conn, conn.cursor() as cursor:
            cursor.execute(sql, (password_hash, subject_id))
            conn.commit()
            return cursor.rowcount == 1


def _row_to_identity(row: tuple) -> Identity:
    return Identity(
        subject_id=row[0],
        email=row[1],
        password_hash=row[2],
        role=Role(row[3]),
        created_at=row[4],
        updated_at=row[5],
    )


def run_migrations(pool: ConnectionPool) -> None:
    """
    Execute all SQL migration files from the migrations directory.

    Migrations are executed in sorted order (alphabetically by filename).
    Each migration should be idempotent (use IF NOT EXISTS, etc.).

    Args:
        pool: psycopg3 ConnectionPool instance
    """
    # Structure: src/adapters/repository/postgres.py -> migrations/
    migrations_dir = Path(__file__).parent.parent.parent.parent / "migrations"

    if not migrations_dir.exists():
        logger.warning("Migrations directory not found: %s", migrations_dir)
        return

    sql_files = sorted(migrations_dir.glob("*.sql"))

    if not sql_files:
        logger.info("No migration files found")
        return

    logger.info("Running %d migration(s)", len(sql_files))

    for sql_file in sql_files:
        logger.info("Executing migration: %s", sql_file.name)
        try:
            sql_content = sql_file.read_text()

            with pool.connection() as conn:
                conn.execute(sql_content)

            logger.info("Migration complete: %s", sql_file.name)
        except Exception as e:
            logger.error("Migration failed: %s - %s", sql_file.name, e)
            raise RuntimeError(f"Database migration failed: {sql_file.name}") from e
