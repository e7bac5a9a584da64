from dataclasses import asdict
from typing import Any, Dict

from fastapi import APIRouter
from pydantic import BaseModel

from sqlboard.chart_guard import validate_chart_function
from sqlboard.sql_guard import validate_sql
from sqlboard.types import ValidationResult

router = APIRouter(prefix="/_dev", tags=["dev"])


def _to_dict(res: ValidationResult) -> Dict[str, Any]:
    out = asdict(res)
    if res.error_code is not None:
        out["error_code"] = res.error_code.value
    return out


class SQLBody(BaseModel):
    sql: str
    allow_limit_offset: bool = False


class ChartBody(BaseModel):
    source: str


@router.post("/sql-guard")
def dev_sql_guard_check(body: SQLBody):
    """
    Run the SQL validator directly on a raw string.
    Used for checking the sql_blocks_total counters by hand.
    """
    res = validate_sql(body.sql, allow_limit_offset=body.allow_limit_offset)
    return _to_dict(res)


@router.post("/chart-guard")
def dev_chart_guard_check(body: ChartBody):
    """Run the chart validator directly on a raw function source."""
    return _to_dict(validate_chart_function(body.source))
