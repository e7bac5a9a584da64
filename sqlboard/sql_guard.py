from __future__ import annotations

import re
import time
from typing import Any, Optional, Pattern

import sqlglot
from sqlglot import exp

from sqlboard.errors.codes import ErrorCode
from sqlboard.errors.exceptions import QueryValidationError
from sqlboard.metrics import sql_blocks_total, sql_checks_total
from sqlboard.types import StageTrace, ValidationResult


# ------------------------- Zero-width & basic regexes -------------------------

_ZERO_WIDTH = [
    "\u200b",
    "\u200c",
    "\u200d",
    "\ufeff",
    "\u2060",
    "\u180e",
    "\u200e",
    "\u200f",
]
_ZERO_WIDTH_RE = re.compile("|".join(map(re.escape, _ZERO_WIDTH)))

# One left-to-right scan so a quote inside a comment (or "--" inside a string)
# is attributed to the right lexical element. SQLite escapes quotes by doubling.
_LEXEME_RE = re.compile(
    r"""
      (?P<single>'(?:[^']|'')*')
    | (?P<double>"(?:[^"]|"")*")
    | (?P<backtick>`[^`]*`)
    | (?P<bracket>\[[^\]]*\])
    | (?P<line_comment>--[^\n]*)
    | (?P<block_comment>/\*.*?(?:\*/|\Z))
    """,
    re.DOTALL | re.VERBOSE,
)

_LEADING_WORD_RE = re.compile(r"\s*([A-Za-z_]+)")

# Statements/clauses that reach outside the read path of the open file.
_ENGINE_CLAUSES = ("attach", "detach", "pragma", "vacuum", "reindex")
# Clauses that fight with the pagination wrapper.
_PAGINATION_CLAUSES = ("limit", "offset")


def _clause_re(words: tuple[str, ...]) -> Pattern[str]:
    return re.compile(r"\b(" + "|".join(words) + r")\b", re.IGNORECASE)


_ENGINE_CLAUSE_RE = _clause_re(_ENGINE_CLAUSES)
_ANY_CLAUSE_RE = _clause_re(_ENGINE_CLAUSES + _PAGINATION_CLAUSES)

# sqlglot node types that write to or reshape the database -> operation name.
_FORBIDDEN_NODES = {
    "insert": "insert",
    "update": "update",
    "delete": "delete",
    "drop": "drop",
    "create": "create",
    "alter": "alter",
    "altertable": "alter",
    "truncatetable": "truncate",
    "merge": "merge",
}

_MAX_SQL_LEN = 200_000  # characters, after stripping

EMPTY_QUERY = "Query must be a non-empty string"
BLANK_QUERY = "Query cannot be empty"
SEMICOLONS = "Semicolons are not allowed. Please write a single SQL statement."


def _ms(t0: float) -> int:
    return int((time.perf_counter() - t0) * 1000)


def _mask(body: str, *, keep_comments: bool) -> str:
    """
    Blank out string literals and quoted identifiers (keeping their quotes).
    Comments are either kept verbatim or replaced by a space, which is how
    SQLite itself reads them.
    """

    def repl(m: "re.Match[str]") -> str:
        kind = m.lastgroup
        text = m.group(0)
        if kind in ("line_comment", "block_comment"):
            return text if keep_comments else " "
        return text[0] + text[-1] if len(text) > 1 else text

    return _LEXEME_RE.sub(repl, body)


def operation_reason(op: str) -> str:
    return f"{op.upper()} operations are not allowed. Only SELECT queries permitted."


def clause_reason(clause: str) -> str:
    clause = clause.upper()
    if clause.lower() in _PAGINATION_CLAUSES:
        return f"{clause} clauses are not allowed. We handle pagination automatically."
    return f"{clause} clauses are not allowed."


def _forbidden_ast(body: str) -> tuple[Optional[str], Optional[str]]:
    """
    Return (operation, clause) for the first mutating node or engine command
    found in the parsed tree. Unparseable SQL is not this layer's concern:
    syntax errors surface at execution.
    """
    try:
        trees: list[Any] = sqlglot.parse(body, read="sqlite")
    except Exception:
        return None, None

    for tree in trees:
        if tree is None:
            continue
        for node in tree.walk():
            name = type(node).__name__.lower()
            if name in _FORBIDDEN_NODES:
                return _FORBIDDEN_NODES[name], None
            if isinstance(node, exp.Command):
                head = str(node.this or "").strip().lower()
                if head in _ENGINE_CLAUSES:
                    return None, head
    return None, None


class QueryValidator:
    """
    Conservative allow-list: a single read-only SELECT and nothing else.

    Rules run in order and the first violation wins:
      1. no semicolon outside a string literal,
      2. the leading keyword is SELECT,
      3. no engine clauses (ATTACH, PRAGMA, VACUUM, ...) anywhere, and no
         LIMIT/OFFSET unless allow_limit_offset is set.
    """

    name = "sql_guard"

    def __init__(self, allow_limit_offset: bool = False) -> None:
        self.allow_limit_offset = allow_limit_offset

    def _block(
        self, t0: float, metric_reason: str, reason: str, code: ErrorCode
    ) -> ValidationResult:
        sql_blocks_total.labels(reason=metric_reason).inc()
        sql_checks_total.labels(ok="false").inc()
        return ValidationResult.reject(
            reason,
            code,
            trace=StageTrace(
                stage=self.name, duration_ms=_ms(t0), notes={"rule": metric_reason}
            ),
        )

    def validate(self, query: Any) -> ValidationResult:
        t0 = time.perf_counter()

        # 0) shape guards
        if not isinstance(query, str) or not query:
            return self._block(t0, "empty_sql", EMPTY_QUERY, ErrorCode.SQL_EMPTY)
        body = _ZERO_WIDTH_RE.sub("", query).strip()
        if not body:
            return self._block(t0, "empty_sql", BLANK_QUERY, ErrorCode.SQL_EMPTY)
        if len(body) > _MAX_SQL_LEN:
            return self._block(
                t0,
                "too_long",
                f"Query is too long (max {_MAX_SQL_LEN} characters)",
                ErrorCode.BAD_REQUEST,
            )

        # 1) statement chaining
        if ";" in _mask(body, keep_comments=True):
            return self._block(
                t0, "semicolon", SEMICOLONS, ErrorCode.SQL_MULTI_STATEMENT
            )

        scan_body = _mask(body, keep_comments=False)

        # 2) leading keyword
        m = _LEADING_WORD_RE.match(scan_body)
        if not m:
            return self._block(
                t0,
                "non_select",
                "Only SELECT queries are permitted.",
                ErrorCode.SQL_NON_SELECT,
            )
        if m.group(1).lower() != "select":
            return self._block(
                t0,
                "non_select",
                operation_reason(m.group(1)),
                ErrorCode.SQL_NON_SELECT,
            )

        # 3) clauses outside the read path
        clause_re = _ENGINE_CLAUSE_RE if self.allow_limit_offset else _ANY_CLAUSE_RE
        m3 = clause_re.search(scan_body)
        if m3:
            return self._block(
                t0,
                "forbidden_clause",
                clause_reason(m3.group(1)),
                ErrorCode.SQL_FORBIDDEN_CLAUSE,
            )

        # 3.5) AST-based forbidden nodes / commands (defense-in-depth)
        op, clause = _forbidden_ast(body)
        if op:
            return self._block(
                t0, "forbidden_ast", operation_reason(op), ErrorCode.SQL_NON_SELECT
            )
        if clause:
            return self._block(
                t0,
                "forbidden_ast",
                clause_reason(clause),
                ErrorCode.SQL_FORBIDDEN_CLAUSE,
            )

        sql_checks_total.labels(ok="true").inc()
        return ValidationResult.accept(
            trace=StageTrace(stage=self.name, duration_ms=_ms(t0))
        )


# Widgets paginate for the user; AI tools manage their own LIMIT/OFFSET.
_WIDGET_VALIDATOR = QueryValidator(allow_limit_offset=False)
_TOOL_VALIDATOR = QueryValidator(allow_limit_offset=True)


def validate_sql(query: Any, *, allow_limit_offset: bool = False) -> ValidationResult:
    validator = _TOOL_VALIDATOR if allow_limit_offset else _WIDGET_VALIDATOR
    return validator.validate(query)


def validate_sql_for_widget(query: Any) -> ValidationResult:
    return _WIDGET_VALIDATOR.validate(query)


def validate_sql_for_tool(query: Any) -> ValidationResult:
    return _TOOL_VALIDATOR.validate(query)


def validate_or_raise(query: Any, *, allow_limit_offset: bool = False) -> None:
    result = validate_sql(query, allow_limit_offset=allow_limit_offset)
    if not result.ok:
        raise QueryValidationError(result.reason or "Invalid query", result.error_code)


def is_select_query(query: Any) -> bool:
    if not isinstance(query, str):
        return False
    m = _LEADING_WORD_RE.match(_mask(query, keep_comments=False))
    return bool(m) and m.group(1).lower() == "select"


def has_pagination_clause(query: str) -> bool:
    """True if LIMIT or OFFSET appears outside strings and comments."""
    scan_body = _mask(query, keep_comments=False)
    return _clause_re(_PAGINATION_CLAUSES).search(scan_body) is not None
