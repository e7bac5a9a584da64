from enum import Enum


class ErrorCode(str, Enum):
    # --- Request shape ---
    BAD_REQUEST = "BAD_REQUEST"

    # --- SQL validator ---
    SQL_EMPTY = "SQL_EMPTY"
    SQL_MULTI_STATEMENT = "SQL_MULTI_STATEMENT"
    SQL_NON_SELECT = "SQL_NON_SELECT"
    SQL_FORBIDDEN_CLAUSE = "SQL_FORBIDDEN_CLAUSE"

    # --- Database file ---
    DB_NOT_FOUND = "DB_NOT_FOUND"
    DB_CORRUPT = "DB_CORRUPT"
    DB_LOCKED = "DB_LOCKED"

    # --- Execution ---
    QUERY_FAILED = "QUERY_FAILED"
    SCHEMA_FAILED = "SCHEMA_FAILED"

    # --- Chart functions ---
    CHART_EMPTY = "CHART_EMPTY"
    CHART_SYNTAX_ERROR = "CHART_SYNTAX_ERROR"
    CHART_BAD_SIGNATURE = "CHART_BAD_SIGNATURE"
    CHART_UNSAFE_LOOP = "CHART_UNSAFE_LOOP"
    CHART_RUNTIME_ERROR = "CHART_RUNTIME_ERROR"
    CHART_BAD_RETURN = "CHART_BAD_RETURN"

    # --- Internal ---
    INTERNAL = "INTERNAL"
