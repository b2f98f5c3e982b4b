"""
Shared SQL helpers for the journey repositories.

Repositories receive an open ``sqlite3.Connection`` (normally from
``get_connection()``, so rows are ``sqlite3.Row``) and never commit or close
it themselves. SQL is written out explicitly in each repository; results are
returned as pydantic models.
"""

from __future__ import annotations

import json
import logging
import sqlite3
from typing import Any, Iterable, Optional, Sequence

logger = logging.getLogger(__name__)

Params = tuple[Any, ...] | dict[str, Any]


class BaseRepository:
    """Execution helpers shared by every repository.

    Attributes:
        conn: Caller-managed connection.
    """

    def __init__(self, conn: sqlite3.Connection) -> None:
        self.conn = conn

    def execute(self, sql: str, params: Params = ()) -> sqlite3.Cursor:
        logger.debug("SQL: %s | params: %s", " ".join(sql.split()), params)
        return self.conn.execute(sql, params)

    def executemany(self, sql: str, params_list: Sequence[Params]) -> sqlite3.Cursor:
        logger.debug("SQL (many): %s | rows: %d", " ".join(sql.split()), len(params_list))
        return self.conn.executemany(sql, params_list)

    def fetchone(self, sql: str, params: Params = ()) -> Optional[sqlite3.Row]:
        return self.execute(sql, params).fetchone()

    def fetchall(self, sql: str, params: Params = ()) -> list[sqlite3.Row]:
        return self.execute(sql, params).fetchall()

    def scalar(self, sql: str, params: Params = (), default: Any = None) -> Any:
        """First column of the first row, or ``default`` when there is no row."""
        row = self.fetchone(sql, params)
        if row is None or row[0] is None:
            return default
        return row[0]


# ── Column helpers ────────────────────────────────────────────────────────────

def placeholders(values: Sequence[Any]) -> str:
    """``?, ?, ?`` for an ``IN (...)`` clause over ``values``."""
    return ", ".join("?" for _ in values)


def dump_list(values: Iterable[str]) -> str:
    """Serialise a list column as JSON text."""
    return json.dumps(list(values))


def load_list(raw: Optional[str]) -> tuple[str, ...]:
    """Parse a JSON list column; NULL or empty text becomes ``()``."""
    if not raw:
        return ()
    return tuple(str(v) for v in json.loads(raw))
