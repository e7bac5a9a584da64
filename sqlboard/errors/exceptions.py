from __future__ import annotations

from typing import Optional

from sqlboard.errors.codes import ErrorCode


class SqlboardError(Exception):
    """Base class for core errors. Each carries a stable ErrorCode."""

    code: ErrorCode = ErrorCode.INTERNAL

    def __init__(self, message: str, code: Optional[ErrorCode] = None) -> None:
        super().__init__(message)
        self.message = message
        if code is not None:
            self.code = code


class DatabaseNotFoundError(SqlboardError):
    code = ErrorCode.DB_NOT_FOUND


class SchemaError(SqlboardError):
    code = ErrorCode.SCHEMA_FAILED


class QueryError(SqlboardError):
    code = ErrorCode.QUERY_FAILED


class CorruptDatabaseError(SchemaError, QueryError):
    """The file exists but the engine reports it is not a database."""

    code = ErrorCode.DB_CORRUPT


class QueryValidationError(SqlboardError):
    code = ErrorCode.SQL_NON_SELECT


class ChartValidationError(SqlboardError):
    code = ErrorCode.CHART_SYNTAX_ERROR


def is_not_a_database(exc: BaseException) -> bool:
    """True when the engine says the file is not an SQLite database."""
    # Older builds say "file is encrypted or is not a database".
    return "not a database" in str(exc).lower()
