"""
Centralized SQLite Schema Initialization.

Defines the canonical schema for the AuthShell local database and provides
a single entry-point -- :func:`initialize_schema` -- that creates all
required tables idempotently.  A ``schema_version`` row records the version
the file was created at, so a later release can tell whether it needs to
upgrade it.

Usage::

    from authshell.logger import get_logger
    from authshell.schema import initialize_schema

    initialize_schema(db.sqlite, get_logger("schema"))
"""

from __future__ import annotations

import sqlite3

from authshell.logger import StructuredLogger

__all__ = ["CURRENT_SCHEMA_VERSION", "initialize_schema"]

CURRENT_SCHEMA_VERSION: int = 1

# ---------------------------------------------------------------------------
# DDL statements for every table in the local database.
# ---------------------------------------------------------------------------
_TABLE_DEFINITIONS: list[str] = [
    # -- app_settings (remember-me flag, serialised backend session) ---------
    """
    CREATE TABLE IF NOT EXISTS app_settings (
        key TEXT PRIMARY KEY,
        value TEXT NOT NULL,
        updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
    )
    """,
    # -- audit_log (profile creation and edits) ------------------------------
    """
    CREATE TABLE IF NOT EXISTS audit_log (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        timestamp TEXT NOT NULL,
        action TEXT NOT NULL,
        entity_type TEXT NOT NULL,
        entity_id TEXT NOT NULL,
        user_id TEXT NOT NULL,
        details TEXT NOT NULL DEFAULT '{}'
    )
    """,
]


def _ensure_version_table(conn: sqlite3.Connection) -> None:
    conn.execute(
        """
        CREATE TABLE IF NOT EXISTS schema_version (
            id INTEGER PRIMARY KEY CHECK (id = 1),
            version INTEGER NOT NULL,
            applied_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
        )
        """
    )
    conn.commit()


def _get_schema_version(conn: sqlite3.Connection) -> int:
    """Return the recorded schema version, or ``0`` for a new file."""
    row = conn.execute("SELECT version FROM schema_version WHERE id = 1").fetchone()
    return row[0] if row is not None else 0


def initialize_schema(conn: sqlite3.Connection, logger: StructuredLogger) -> None:
    """Create any missing tables and record :data:`CURRENT_SCHEMA_VERSION`.

    Called on every startup.  Table creation and the version row commit
    together, or roll back together so the next startup retries.

    Args:
        conn: An open SQLite connection.
        logger: Structured logger for progress output.
    """
    _ensure_version_table(conn)
    current = _get_schema_version(conn)

    if current >= CURRENT_SCHEMA_VERSION:
        logger.info(f"Schema is up to date (version {current}).")
        return

    try:
        for ddl in _TABLE_DEFINITIONS:
            conn.execute(ddl)
        conn.execute(
            "INSERT INTO schema_version (id, version) VALUES (1, ?)",
            (CURRENT_SCHEMA_VERSION,),
        )
        conn.commit()
    except Exception:
        conn.rollback()
        logger.error("Schema creation failed; rolled back.")
        raise

    logger.info(
        f"Schema initialised at version {CURRENT_SCHEMA_VERSION} "
        f"({len(_TABLE_DEFINITIONS)} tables)."
    )
