from __future__ import annotations

import time
from typing import Any, Iterator, List, Optional

import esprima
from esprima.error_handler import Error as JSParseError

from sqlboard.errors.codes import ErrorCode
from sqlboard.errors.exceptions import ChartValidationError
from sqlboard.metrics import chart_blocks_total, chart_checks_total
from sqlboard.types import StageTrace, ValidationResult

# createChart(data, svg, d3, width, height)
CHART_PARAMS = ("data", "svg", "d3", "width", "height")

NOT_A_STRING = "Chart function must be a non-empty string"
BLANK_SOURCE = "Chart function cannot be empty"
WHILE_LOOP = "while loops are not allowed due to infinite loop risk"
INFINITE_FOR = "infinite for loops (for(;;)) are not allowed"
DO_WHILE = "do-while loops are not allowed due to infinite loop risk"

_FUNCTION_NODES = ("FunctionExpression", "ArrowFunctionExpression")


def _ms(t0: float) -> int:
    return int((time.perf_counter() - t0) * 1000)


def _is_node(value: Any) -> bool:
    return isinstance(getattr(value, "type", None), str) and hasattr(value, "__dict__")


def walk(root: Any) -> Iterator[Any]:
    """Pre-order walk over an esprima tree, children in source order."""
    stack: List[Any] = [root]
    while stack:
        cur = stack.pop()
        if isinstance(cur, list):
            stack.extend(reversed(cur))
            continue
        if not _is_node(cur):
            continue
        yield cur
        children = [
            v
            for k, v in vars(cur).items()
            if k != "type" and (isinstance(v, list) or _is_node(v))
        ]
        stack.extend(reversed(children))


def _always_true(test: Any) -> bool:
    if test is None:
        return True
    return test.type == "Literal" and bool(test.value)


def find_unbounded_loop(program: Any) -> Optional[tuple[str, str]]:
    """Return (metric_reason, message) for the first rejected loop, if any."""
    for node in walk(program):
        if node.type == "WhileStatement":
            return "while", WHILE_LOOP
        if node.type == "DoWhileStatement":
            return "do_while", DO_WHILE
        if node.type == "ForStatement" and _always_true(node.test):
            return "infinite_for", INFINITE_FOR
    return None


def _chart_function(program: Any) -> Optional[Any]:
    """The first top-level function definition, in any of its spellings."""
    for stmt in program.body:
        if stmt.type == "FunctionDeclaration":
            return stmt
        if stmt.type == "ExpressionStatement":
            if stmt.expression.type in _FUNCTION_NODES:
                return stmt.expression
        if stmt.type == "VariableDeclaration":
            for decl in stmt.declarations:
                if decl.init is not None and decl.init.type in _FUNCTION_NODES:
                    return decl.init
    return None


def _syntax_message(exc: JSParseError) -> str:
    line = getattr(exc, "lineNumber", None)
    col = getattr(exc, "column", None)
    desc = getattr(exc, "description", None) or str(exc)
    if line and col:
        return f"Line {line}, Column {col}: {desc}"
    if line:
        return f"Line {line}: {desc}"
    return desc


class ChartFunctionValidator:
    """
    Static checks on user chart code before it is ever handed to a renderer.

    The renderer runs chart code synchronously with no way to interrupt it,
    so every while / do-while loop and every for loop without a real
    condition is refused outright. Bounded for loops, for-in and for-of are
    accepted; termination is not proven beyond that.
    """

    name = "chart_guard"

    def _block(
        self, t0: float, metric_reason: str, reason: str, code: ErrorCode
    ) -> ValidationResult:
        chart_blocks_total.labels(reason=metric_reason).inc()
        chart_checks_total.labels(ok="false").inc()
        return ValidationResult.reject(
            reason,
            code,
            trace=StageTrace(
                stage=self.name, duration_ms=_ms(t0), notes={"rule": metric_reason}
            ),
        )

    def validate(self, source: Any) -> ValidationResult:
        t0 = time.perf_counter()

        if not isinstance(source, str) or not source:
            return self._block(t0, "empty", NOT_A_STRING, ErrorCode.CHART_EMPTY)
        code = source.strip()
        if not code:
            return self._block(t0, "empty", BLANK_SOURCE, ErrorCode.CHART_EMPTY)

        try:
            program = esprima.parseScript(code)
        except JSParseError as exc:
            return self._block(
                t0,
                "syntax_error",
                f"JavaScript syntax error: {_syntax_message(exc)}",
                ErrorCode.CHART_SYNTAX_ERROR,
            )
        except RecursionError:
            return self._block(
                t0,
                "syntax_error",
                "JavaScript syntax error: source is nested too deeply",
                ErrorCode.CHART_SYNTAX_ERROR,
            )

        loop = find_unbounded_loop(program)
        if loop:
            metric_reason, message = loop
            return self._block(
                t0,
                metric_reason,
                f"Dangerous code detected: {message}",
                ErrorCode.CHART_UNSAFE_LOOP,
            )

        fn = _chart_function(program)
        if fn is None:
            return self._block(
                t0,
                "bad_signature",
                "Chart function must be a JavaScript function definition",
                ErrorCode.CHART_BAD_SIGNATURE,
            )
        if len(fn.params) > len(CHART_PARAMS) or any(
            p.type != "Identifier" for p in fn.params
        ):
            return self._block(
                t0,
                "bad_signature",
                "Chart function must have the signature "
                f"({', '.join(CHART_PARAMS)})",
                ErrorCode.CHART_BAD_SIGNATURE,
            )

        chart_checks_total.labels(ok="true").inc()
        return ValidationResult.accept(
            trace=StageTrace(
                stage=self.name,
                duration_ms=_ms(t0),
                notes={"params": [p.name for p in fn.params]},
            )
        )


_VALIDATOR = ChartFunctionValidator()


def validate_chart_function(source: Any) -> ValidationResult:
    return _VALIDATOR.validate(source)


def validate_chart_function_or_raise(source: Any) -> None:
    result = _VALIDATOR.validate(source)
    if not result.ok:
        raise ChartValidationError(
            result.reason or "Invalid chart function", result.error_code
        )
