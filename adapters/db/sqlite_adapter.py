import sqlite3
import logging
from contextlib import closing, contextmanager
from typing import Any, Iterator, List, Sequence, Tuple
from adapters.db.base import DBAdapter
from pathlib import Path

from sqlboard.errors.exceptions import (
    CorruptDatabaseError,
    DatabaseNotFoundError,
    is_not_a_database,
)

log = logging.getLogger(__name__)


class SQLiteAdapter(DBAdapter):
    name = "sqlite"
    dialect = "sqlite"

    def __init__(self, path: str, timeout: float = 3.0):
        # resolve absolute path for safety
        self.path = Path(path).resolve()
        self.timeout = timeout
        log.debug("SQLiteAdapter initialized with DB path: %s", self.path)

    @contextmanager
    def connect(self) -> Iterator[sqlite3.Connection]:
        """
        Scoped read-only connection: opened on entry, always closed on exit.

        Nothing is shared between requests; concurrent readers rely on
        SQLite's own locking.
        """
        if not self.path.is_file():
            raise DatabaseNotFoundError(f"SQLite DB does not exist: {self.path}")
        # use proper SQLite URI (not .as_uri())
        uri = f"file:{self.path}?mode=ro"
        log.debug("SQLiteAdapter opening read-only connection to: %s", uri)
        with closing(sqlite3.connect(uri, uri=True, timeout=self.timeout)) as conn:
            try:
                conn.execute("PRAGMA query_only = ON;")
            except sqlite3.DatabaseError as exc:
                # The first statement is where SQLite notices a non-database file.
                if is_not_a_database(exc):
                    raise CorruptDatabaseError(
                        "Database file is corrupted or invalid"
                    ) from exc
                raise
            yield conn

    def execute(
        self, sql: str, params: Sequence[Any] = ()
    ) -> Tuple[List[Tuple[Any, ...]], List[str]]:
        with self.connect() as conn:
            cur = conn.cursor()
            log.debug("Executing SQL: %s", sql.strip().replace("\n", " "))
            cur.execute(sql, tuple(params))
            rows = cur.fetchall()
            cols = [desc[0] for desc in (cur.description or [])]
            log.debug("Query executed successfully. Returned %d rows.", len(rows))
            return rows, cols

    def ping(self) -> None:
        with self.connect() as conn:
            conn.execute("SELECT 1 FROM sqlite_master LIMIT 1").fetchall()


SQLITE_HEADER = b"SQLite format 3\x00"


def looks_like_sqlite(data: bytes) -> bool:
    """SQLite files start with the 16-byte magic string "SQLite format 3\\0"."""
    return data[: len(SQLITE_HEADER)] == SQLITE_HEADER
