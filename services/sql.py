"""
services/sql.py — Read-only SQL access

SqlConnectionFactory opens a sqlite3 connection per query and runs it in
the default executor so the event loop never blocks. Only SELECT/WITH
statements are accepted.

Connection strings:
    sqlite:///absolute/or/relative/path.db
    /path/to/file.db
"""

from __future__ import annotations

import asyncio
import re
import sqlite3
from pathlib import Path

from exceptions import SqlQueryError
from observability.logger import get_logger

log = get_logger(__name__)

_READ_PATTERN = re.compile(r"^\s*(SELECT|WITH)\b", re.IGNORECASE)
_SQLITE_PREFIX = "sqlite:///"


class SqlConnectionFactory:

    def __init__(self, connection_string: str, max_rows: int = 50) -> None:
        if connection_string.startswith(_SQLITE_PREFIX):
            connection_string = connection_string[len(_SQLITE_PREFIX):]
        self._path = Path(connection_string).expanduser()
        self._max_rows = max_rows

    @property
    def path(self) -> Path:
        return self._path

    def connect(self) -> sqlite3.Connection:
        # mode=ro: the database is never written through this factory
        conn = sqlite3.connect(f"file:{self._path}?mode=ro", uri=True)
        conn.row_factory = sqlite3.Row
        return conn

    async def query(self, sql: str) -> list[dict]:
        """Run a read-only query and return up to max_rows rows as dicts."""
        if not _READ_PATTERN.match(sql):
            raise SqlQueryError("Only SELECT queries are allowed.", service="sql")

        def _run() -> list[dict]:
            conn = self.connect()
            try:
                cur = conn.execute(sql)
                return [dict(r) for r in cur.fetchmany(self._max_rows)]
            finally:
                conn.close()

        loop = asyncio.get_running_loop()
        try:
            rows = await loop.run_in_executor(None, _run)
        except sqlite3.Error as e:
            log.warning("sql.query_failed", error=str(e), error_type=type(e).__name__)
            raise SqlQueryError(f"{type(e).__name__}: {e}", service="sql") from e

        log.debug("sql.query.complete", rows=len(rows))
        return rows
