from sqlboard.errors.codes import ErrorCode

ERROR_MAP = {
    ErrorCode.BAD_REQUEST: (400, False),
    ErrorCode.SQL_EMPTY: (400, False),
    ErrorCode.SQL_MULTI_STATEMENT: (400, False),
    ErrorCode.SQL_NON_SELECT: (400, False),
    ErrorCode.SQL_FORBIDDEN_CLAUSE: (400, False),
    ErrorCode.DB_NOT_FOUND: (404, False),
    # A corrupt upload is fixed by uploading again, so it is the client's problem.
    ErrorCode.DB_CORRUPT: (400, False),
    ErrorCode.DB_LOCKED: (503, True),
    ErrorCode.QUERY_FAILED: (500, False),
    ErrorCode.SCHEMA_FAILED: (500, False),
    ErrorCode.CHART_EMPTY: (400, False),
    ErrorCode.CHART_SYNTAX_ERROR: (400, False),
    ErrorCode.CHART_BAD_SIGNATURE: (400, False),
    ErrorCode.CHART_UNSAFE_LOOP: (400, False),
    ErrorCode.CHART_RUNTIME_ERROR: (422, False),
    ErrorCode.CHART_BAD_RETURN: (422, False),
    ErrorCode.INTERNAL: (500, False),
}


def map_error(code: ErrorCode | None) -> tuple[int, bool]:
    if code is None:
        return (500, False)
    return ERROR_MAP.get(code, (500, False))
