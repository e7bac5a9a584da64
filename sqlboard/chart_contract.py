from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence

from sqlboard.chart_guard import ChartFunctionValidator
from sqlboard.errors.codes import ErrorCode
from sqlboard.types import QueryResult, Scalar, jsonable_scalar

log = logging.getLogger(__name__)

PREVIEW_ROWS = 5
BAD_RETURN = "Chart function must return a DOM element"

Record = Dict[str, Scalar]

# invoke(source, data, surface, width, height) -> whatever the chart returned.
ChartInvoker = Callable[[str, List[Record], Any, int, int], Any]
DrawablePredicate = Callable[[Any, Any], bool]


def to_records(
    columns: Sequence[str], rows: Sequence[Sequence[Scalar]]
) -> List[Record]:
    """Positional rows -> plain column->value records, as chart code expects."""
    return [dict(zip(columns, row)) for row in rows]


def records_from_result(
    result: QueryResult | Mapping[str, Any],
) -> tuple[List[Record], int]:
    """Accept either a QueryResult or its JSON payload; return (records, totalRows)."""
    if isinstance(result, QueryResult):
        return result.records(), result.total_rows
    columns = list(result.get("columns") or [])
    rows = list(result.get("rows") or [])
    total = result.get("totalRows")
    return to_records(columns, rows), int(total) if total is not None else len(rows)


@dataclass(frozen=True)
class DataPreview:
    rows: List[Record]
    total_rows: int

    @property
    def message(self) -> str:
        return f"Showing {len(self.rows)} of {self.total_rows} rows"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "rows": [{k: jsonable_scalar(v) for k, v in r.items()} for r in self.rows],
            "totalRows": self.total_rows,
            "message": self.message,
        }


def build_preview(
    records: List[Record], total_rows: int, limit: int = PREVIEW_ROWS
) -> DataPreview:
    return DataPreview(rows=records[:limit], total_rows=total_rows)


@dataclass(frozen=True)
class ChartOutcome:
    ok: bool
    surface: Any = None
    data: List[Record] = field(default_factory=list)
    error: Optional[str] = None
    error_code: Optional[ErrorCode] = None
    preview: Optional[DataPreview] = None

    def to_dict(self) -> Dict[str, Any]:
        if not self.ok:
            out: Dict[str, Any] = {"error": self.error}
            if self.preview is not None:
                out["preview"] = self.preview.to_dict()
            return out
        return {
            "success": True,
            "data": [{k: jsonable_scalar(v) for k, v in r.items()} for r in self.data],
        }


def default_is_drawable(returned: Any, surface: Any) -> bool:
    """The surface that was passed in, or another object of the same kind."""
    if returned is None:
        return False
    return returned is surface or isinstance(returned, type(surface))


class ChartRunner:
    """
    One chart run: validate, reshape the rows, invoke once, check the return.

    The invoker belongs to whatever host actually executes chart code. Every
    failure, from validation to an exception raised inside the chart, ends up
    as an error outcome carrying a preview of the first rows; nothing
    propagates past a single run and nothing is retried.
    """

    def __init__(
        self,
        invoke: ChartInvoker,
        *,
        is_drawable: DrawablePredicate = default_is_drawable,
        validator: Optional[ChartFunctionValidator] = None,
        preview_rows: int = PREVIEW_ROWS,
    ) -> None:
        self.invoke = invoke
        self.is_drawable = is_drawable
        self.validator = validator or ChartFunctionValidator()
        self.preview_rows = preview_rows

    def _fail(
        self, message: str, code: ErrorCode, records: List[Record], total: int
    ) -> ChartOutcome:
        return ChartOutcome(
            ok=False,
            error=message,
            error_code=code,
            preview=build_preview(records, total, self.preview_rows),
        )

    def run(
        self,
        source: str,
        result: QueryResult | Mapping[str, Any],
        surface: Any,
        width: int,
        height: int,
    ) -> ChartOutcome:
        records, total = records_from_result(result)

        verdict = self.validator.validate(source)
        if not verdict.ok:
            return self._fail(
                verdict.reason or "Invalid chart function",
                verdict.error_code or ErrorCode.CHART_SYNTAX_ERROR,
                records,
                total,
            )

        try:
            returned = self.invoke(source, records, surface, width, height)
        except Exception as exc:
            # Chart code is user code; its error message is shown as-is.
            log.debug("Chart function raised", extra={"error": str(exc)})
            return self._fail(str(exc), ErrorCode.CHART_RUNTIME_ERROR, records, total)

        if not self.is_drawable(returned, surface):
            return self._fail(BAD_RETURN, ErrorCode.CHART_BAD_RETURN, records, total)

        return ChartOutcome(ok=True, surface=returned, data=records)


def prepare_submission(
    source: str,
    result: QueryResult | Mapping[str, Any],
    *,
    validator: Optional[ChartFunctionValidator] = None,
    preview_rows: int = PREVIEW_ROWS,
) -> ChartOutcome:
    """
    Server half of a chart submission: validate and hand back the records the
    host renderer will call the function with.
    """
    records, total = records_from_result(result)
    verdict = (validator or ChartFunctionValidator()).validate(source)
    if not verdict.ok:
        return ChartOutcome(
            ok=False,
            error=verdict.reason,
            error_code=verdict.error_code,
            preview=build_preview(records, total, preview_rows),
        )
    return ChartOutcome(ok=True, data=records)
