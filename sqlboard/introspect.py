from __future__ import annotations

import logging
import sqlite3
import time
from typing import List

from sqlboard.errors.exceptions import (
    CorruptDatabaseError,
    SchemaError,
    is_not_a_database,
)
from sqlboard.types import ColumnInfo, Schema, TableInfo

log = logging.getLogger(__name__)

# Engine-internal tables (sqlite_sequence, sqlite_stat1, ...) are not user data.
_TABLES_SQL = (
    "SELECT name FROM sqlite_master "
    "WHERE type='table' AND name NOT LIKE 'sqlite_%'"
)


def _quote_ident(name: str) -> str:
    return '"' + name.replace('"', '""') + '"'


def _read_columns(conn: sqlite3.Connection, table: str) -> List[ColumnInfo]:
    # PRAGMA table_info rows: (cid, name, type, notnull, dflt_value, pk)
    cur = conn.execute(f"PRAGMA table_info({_quote_ident(table)})")
    return [
        ColumnInfo(
            name=row[1],
            type=row[2] or "",
            primary_key=bool(row[5]),
            nullable=not bool(row[3]),
            default_value=row[4],
        )
        for row in cur.fetchall()
    ]


def get_schema(conn: sqlite3.Connection) -> Schema:
    """
    Snapshot every user table: columns in declared order plus an exact row count.

    Read-only. Raises CorruptDatabaseError when the file is not a database and
    SchemaError for any other engine failure.
    """
    t0 = time.perf_counter()
    try:
        tables = [row[0] for row in conn.execute(_TABLES_SQL).fetchall()]
        schema: Schema = {}
        for table in tables:
            columns = _read_columns(conn, table)
            (count,) = conn.execute(
                f"SELECT COUNT(*) FROM {_quote_ident(table)}"
            ).fetchone()
            schema[table] = TableInfo(columns=columns, row_count=int(count))
    except sqlite3.DatabaseError as exc:
        if is_not_a_database(exc):
            raise CorruptDatabaseError(
                "Database file is corrupted or invalid"
            ) from exc
        raise SchemaError(f"Failed to read database schema: {exc}") from exc

    log.debug(
        "Schema introspected",
        extra={
            "tables": len(schema),
            "duration_ms": int((time.perf_counter() - t0) * 1000),
        },
    )
    return schema
