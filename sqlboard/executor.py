from __future__ import annotations

import logging
import sqlite3
import time
from typing import Any, List, Optional, Tuple

from adapters.metrics.base import CountStrategy, Metrics
from adapters.metrics.noop import NoOpMetrics
from sqlboard.errors.codes import ErrorCode
from sqlboard.errors.exceptions import (
    CorruptDatabaseError,
    QueryError,
    SqlboardError,
    is_not_a_database,
)
from sqlboard.pagination import DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE, PageWindow
from sqlboard.types import QueryResult, Row, StageTrace

log = logging.getLogger(__name__)


def translate_engine_error(exc: sqlite3.Error) -> SqlboardError:
    """Map a raw sqlite3 error onto the core taxonomy with a user-facing hint."""
    msg = str(exc)
    lowered = msg.lower()
    if is_not_a_database(exc):
        return CorruptDatabaseError("Database file is corrupted or invalid")
    if "database is locked" in lowered:
        return QueryError("Database is busy, try again", ErrorCode.DB_LOCKED)
    if "no such table" in lowered:
        return QueryError(
            "Table not found in database. "
            "Use the schema endpoint to see available tables."
        )
    if "no such column" in lowered:
        return QueryError(
            "Column not found. Use the schema endpoint to see available columns."
        )
    if "syntax error" in lowered or "incomplete input" in lowered:
        return QueryError(f"SQL syntax error: {msg}")
    return QueryError(f"Query execution failed: {msg}")


def _fetch(
    conn: sqlite3.Connection, sql: str, params: Tuple[Any, ...] = ()
) -> Tuple[List[Row], List[str]]:
    cur = conn.execute(sql, params)
    rows = [list(r) for r in cur.fetchall()]
    cols = [desc[0] for desc in (cur.description or [])]
    return rows, cols


def _columns(conn: sqlite3.Connection, sql: str) -> List[str]:
    """Result column names of `sql` as written, without fetching any rows."""
    cur = conn.execute(sql)
    try:
        return [desc[0] for desc in (cur.description or [])]
    finally:
        cur.close()


class Executor:
    """
    Paginated execution of an already-validated SELECT.

    totalRows comes from ``SELECT COUNT(*) FROM (<query>)``. When the engine
    refuses that wrapping (trailing comments, constructs that are not valid
    as a subquery) the query is run once in full and both the count and the
    page window are taken in memory.
    """

    name = "executor"

    def __init__(
        self,
        metrics: Optional[Metrics] = None,
        *,
        default_page_size: int = DEFAULT_PAGE_SIZE,
        max_page_size: int = MAX_PAGE_SIZE,
    ) -> None:
        self.metrics = metrics or NoOpMetrics()
        self.default_page_size = default_page_size
        self.max_page_size = max_page_size

    # ------------------------------------------------------------------ count

    def wrapped_count(self, conn: sqlite3.Connection, query: str) -> Optional[int]:
        """COUNT(*) over the query as a subquery, or None if the wrap fails."""
        try:
            row = conn.execute(
                f"SELECT COUNT(*) FROM ({query}) AS count_query"
            ).fetchone()
        except sqlite3.Error as exc:
            if is_not_a_database(exc):
                raise CorruptDatabaseError(
                    "Database file is corrupted or invalid"
                ) from exc
            log.debug("Count wrapping failed, falling back", extra={"error": str(exc)})
            return None
        return int(row[0])

    # -------------------------------------------------------------- execution

    def execute(
        self,
        conn: sqlite3.Connection,
        query: str,
        page: Any = 1,
        page_size: Any = None,
    ) -> QueryResult:
        t0 = time.perf_counter()
        window = PageWindow.from_request(
            page,
            page_size,
            default_size=self.default_page_size,
            max_size=self.max_page_size,
        )

        strategy: CountStrategy
        try:
            total = self.wrapped_count(conn, query)
            if total is not None:
                strategy = "wrapped"
                if window.offset >= total:
                    rows, cols = [], []
                else:
                    rows, _ = _fetch(
                        conn,
                        f"SELECT * FROM ({query}) LIMIT ? OFFSET ?",
                        (window.page_size, window.offset),
                    )
                    # The subquery wrap renames duplicate output columns.
                    cols = _columns(conn, query)
            else:
                strategy = "in_memory"
                all_rows, cols = _fetch(conn, query)
                total = len(all_rows)
                rows = window.slice(all_rows)
        except sqlite3.Error as exc:
            err = translate_engine_error(exc)
            self._record(t0, ok=False, error_code=err.code.value)
            raise err from exc

        self.metrics.inc_count_strategy(strategy=strategy)
        dt_ms = self._record(t0, ok=True)

        log.debug(
            "Paginated query executed",
            extra={
                "page": window.page,
                "page_size": window.page_size,
                "offset": window.offset,
                "total_rows": total,
                "returned_rows": len(rows),
                "count_strategy": strategy,
            },
        )
        return QueryResult(
            # Column names are not inferable from an empty page in general.
            columns=cols if rows else [],
            rows=rows,
            total_rows=total,
            page=window.page,
            page_size=window.page_size,
            trace=StageTrace(
                stage=self.name,
                duration_ms=dt_ms,
                notes={
                    "count_strategy": strategy,
                    "offset": window.offset,
                    "row_count": len(rows),
                },
            ),
        )

    def execute_unpaginated(self, conn: sqlite3.Connection, query: str) -> QueryResult:
        """
        Run a query that manages its own LIMIT/OFFSET exactly as written.

        The true total is unknowable here, so the result describes itself as
        a single page holding everything that came back.
        """
        t0 = time.perf_counter()
        try:
            rows, cols = _fetch(conn, query)
        except sqlite3.Error as exc:
            err = translate_engine_error(exc)
            self._record(t0, ok=False, error_code=err.code.value)
            raise err from exc

        dt_ms = self._record(t0, ok=True)
        return QueryResult(
            columns=cols if rows else [],
            rows=rows,
            total_rows=len(rows),
            page=1,
            page_size=len(rows),
            trace=StageTrace(
                stage=self.name,
                duration_ms=dt_ms,
                notes={"count_strategy": "as_is", "row_count": len(rows)},
            ),
        )

    def _record(self, t0: float, *, ok: bool, error_code: str = "") -> float:
        dt_ms = (time.perf_counter() - t0) * 1000
        self.metrics.observe_stage_duration_ms(stage=self.name, dt_ms=dt_ms)
        self.metrics.inc_stage_call(stage=self.name, ok=ok)
        if not ok:
            self.metrics.inc_stage_error(stage=self.name, error_code=error_code)
        return dt_ms
