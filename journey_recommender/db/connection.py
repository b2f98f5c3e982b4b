"""
SQLite connection management for the journey store.

``get_connection()`` yields a connection with:
  - ``sqlite3.Row`` rows (dict-style access in every repository);
  - foreign keys enforced;
  - a busy timeout, and WAL journaling unless disabled;
  - commit on clean exit, rollback on exception.

Usage::

    from journey_recommender.db.connection import get_connection

    with get_connection(config.database.db_path) as conn:
        source = SqliteStepDataSource(conn)
        engine = RecommendationEngine(source)
"""

from __future__ import annotations

import logging
import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import Generator

logger = logging.getLogger(__name__)

MEMORY_DB = ":memory:"


def configure_connection(
    conn: sqlite3.Connection,
    wal_mode: bool = True,
    busy_timeout_ms: int = 5000,
) -> sqlite3.Connection:
    """Apply row factory and pragmas to an open connection and return it."""
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA foreign_keys = ON;")
    conn.execute(f"PRAGMA busy_timeout = {int(busy_timeout_ms)};")
    if wal_mode:
        conn.execute("PRAGMA journal_mode = WAL;")
    return conn


@contextmanager
def get_connection(
    db_path: str,
    wal_mode: bool = True,
    busy_timeout_ms: int = 5000,
) -> Generator[sqlite3.Connection, None, None]:
    """Open ``db_path`` (creating parent directories), yield, then commit.

    Args:
        db_path: Database file, or ``":memory:"``.
        wal_mode: Enable WAL journaling (ignored by SQLite for in-memory DBs).
        busy_timeout_ms: Lock wait before ``OperationalError``.

    Yields:
        A configured ``sqlite3.Connection``. It is closed on exit.
    """
    if db_path != MEMORY_DB:
        Path(db_path).parent.mkdir(parents=True, exist_ok=True)

    conn = sqlite3.connect(db_path, timeout=busy_timeout_ms / 1000)
    try:
        configure_connection(conn, wal_mode=wal_mode, busy_timeout_ms=busy_timeout_ms)
        yield conn
        conn.commit()
    except Exception:
        logger.debug("Rolling back transaction on %s", db_path)
        conn.rollback()
        raise
    finally:
        conn.close()
