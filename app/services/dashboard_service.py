from __future__ import annotations

import logging
import sqlite3
import time
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Any, Iterator, Optional

from adapters.db.sqlite_adapter import SQLiteAdapter
from adapters.metrics.base import Metrics
from adapters.metrics.prometheus import PrometheusMetrics
from sqlboard.chart_contract import ChartOutcome, prepare_submission
from sqlboard.errors.codes import ErrorCode
from sqlboard.errors.exceptions import (
    CorruptDatabaseError,
    DatabaseNotFoundError,
    SchemaError,
    SqlboardError,
)
from sqlboard.errors.mapper import map_error
from sqlboard.executor import Executor, translate_engine_error
from sqlboard.introspect import get_schema
from sqlboard.sql_guard import (
    has_pagination_clause,
    validate_sql_for_tool,
    validate_sql_for_widget,
)
from sqlboard.types import QueryResult, Schema, ValidationResult

from app.errors import AppError, DbNotFound, from_core
from app.settings import Settings
from app.state import UploadStore

log = logging.getLogger(__name__)


def _rejected(verdict: ValidationResult) -> AppError:
    code = verdict.error_code or ErrorCode.BAD_REQUEST
    status, retryable = map_error(code)
    return AppError(
        message=verdict.reason or "Invalid request",
        http_status=status,
        code=code.value,
        retryable=retryable,
    )


@dataclass
class DashboardService:
    """
    Application-level service behind the schema, query and chart endpoints.

    Responsibilities:
        - Resolve an upload filename to a scoped read-only connection.
        - Validate SQL before anything touches the database.
        - Run introspection / paginated execution and translate core errors.
    """

    settings: Settings
    store: UploadStore
    metrics: Metrics = field(default_factory=PrometheusMetrics)

    def __post_init__(self) -> None:
        self.executor = Executor(
            self.metrics,
            default_page_size=self.settings.default_page_size,
            max_page_size=self.settings.max_page_size,
        )

    @contextmanager
    def _open(self, filename: Optional[str]) -> Iterator[sqlite3.Connection]:
        path = self.store.resolve(filename)
        adapter = SQLiteAdapter(str(path), timeout=self.settings.sqlite_timeout_sec)
        try:
            with adapter.connect() as conn:
                yield conn
        except DatabaseNotFoundError as exc:
            # Deleted between resolve() and open.
            raise DbNotFound("Database file not found") from exc
        except SqlboardError as exc:
            raise from_core(exc) from exc
        except sqlite3.Error as exc:
            raise from_core(translate_engine_error(exc)) from exc

    # ----------------------------------------------------------------- schema

    def get_schema(self, filename: Optional[str]) -> Schema:
        with self._open(filename) as conn:
            t0 = time.perf_counter()
            try:
                schema = get_schema(conn)
            except SchemaError as exc:
                self._record_stage("introspect", t0, error_code=exc.code.value)
                if isinstance(exc, CorruptDatabaseError):
                    raise
                log.debug("Schema introspection failed", extra={"error": str(exc)})
                raise from_core(exc, message="Failed to read database schema") from exc
            self._record_stage("introspect", t0)
            return schema

    def _record_stage(self, stage: str, t0: float, error_code: str = "") -> None:
        self.metrics.observe_stage_duration_ms(
            stage=stage, dt_ms=(time.perf_counter() - t0) * 1000
        )
        self.metrics.inc_stage_call(stage=stage, ok=not error_code)
        if error_code:
            self.metrics.inc_stage_error(stage=stage, error_code=error_code)

    # ------------------------------------------------------------------ query

    def run_query(
        self,
        *,
        filename: Optional[str],
        query: Any,
        page: Any = 1,
        page_size: Any = None,
    ) -> QueryResult:
        # Filename shape and existence are checked before the SQL is looked at.
        self.store.resolve(filename)

        verdict = validate_sql_for_widget(query)
        if not verdict.ok:
            log.debug("Query rejected", extra={"reason": verdict.reason})
            raise _rejected(verdict)

        with self._open(filename) as conn:
            return self.executor.execute(conn, query, page, page_size)

    def run_tool_query(
        self,
        *,
        filename: Optional[str],
        query: Any,
        page_size: Any = None,
    ) -> QueryResult:
        """
        Query path for AI tools: LIMIT/OFFSET are allowed, and a query that
        carries its own runs exactly as written. Otherwise page 1 only, with a
        smaller page-size cap.
        """
        self.store.resolve(filename)

        verdict = validate_sql_for_tool(query)
        if not verdict.ok:
            raise _rejected(verdict)

        with self._open(filename) as conn:
            if has_pagination_clause(query):
                return self.executor.execute_unpaginated(conn, query)
            tool_executor = Executor(
                self.metrics,
                default_page_size=self.settings.default_page_size,
                max_page_size=self.settings.tool_max_page_size,
            )
            return tool_executor.execute(conn, query, 1, page_size)

    # ------------------------------------------------------------------ chart

    def submit_chart(self, *, source: Any, query_result: Any) -> ChartOutcome:
        outcome = prepare_submission(
            source,
            query_result or {},
            preview_rows=self.settings.preview_rows,
        )
        if not outcome.ok:
            code = outcome.error_code or ErrorCode.CHART_SYNTAX_ERROR
            status, retryable = map_error(code)
            payload = outcome.to_dict()
            raise AppError(
                message=outcome.error or "Invalid chart function",
                http_status=status,
                code=code.value,
                retryable=retryable,
                extra={"preview": payload.get("preview")},
            )
        return outcome
