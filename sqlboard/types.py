from __future__ import annotations

import base64
import math
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Union

from sqlboard.errors.codes import ErrorCode


# =====================
# Row values
# =====================

# SQLite hands back dynamically typed cells; this is the closed set.
Scalar = Union[int, float, str, bytes, None]
Row = List[Scalar]


def jsonable_scalar(value: Scalar) -> Any:
    """BLOB cells travel as base64 text; everything else is JSON-native."""
    if isinstance(value, (bytes, bytearray, memoryview)):
        return base64.b64encode(bytes(value)).decode("ascii")
    return value


# =====================
# Tracing / Observability
# =====================


@dataclass(frozen=True)
class StageTrace:
    stage: str
    duration_ms: float
    summary: str = ""
    notes: Optional[Dict[str, Any]] = None


# =====================
# Validation contract
# =====================


@dataclass(frozen=True)
class ValidationResult:
    ok: bool
    reason: Optional[str] = None
    error_code: Optional[ErrorCode] = None
    trace: Optional[StageTrace] = None

    @classmethod
    def accept(cls, trace: Optional[StageTrace] = None) -> "ValidationResult":
        return cls(ok=True, trace=trace)

    @classmethod
    def reject(
        cls,
        reason: str,
        code: ErrorCode,
        trace: Optional[StageTrace] = None,
    ) -> "ValidationResult":
        return cls(ok=False, reason=reason, error_code=code, trace=trace)


# =====================
# Schema snapshot
# =====================


@dataclass(frozen=True)
class ColumnInfo:
    name: str
    type: str
    primary_key: bool
    nullable: bool
    default_value: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "type": self.type,
            "primaryKey": self.primary_key,
            "nullable": self.nullable,
            "defaultValue": self.default_value,
        }


@dataclass(frozen=True)
class TableInfo:
    columns: List[ColumnInfo]
    row_count: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "columns": [c.to_dict() for c in self.columns],
            "rowCount": self.row_count,
        }


# dict preserves insertion order, which mirrors sqlite_master order.
Schema = Dict[str, TableInfo]


def schema_to_dict(schema: Schema) -> Dict[str, Any]:
    return {name: info.to_dict() for name, info in schema.items()}


# =====================
# Query result window
# =====================


def total_pages_for(total_rows: int, page_size: int) -> int:
    if total_rows <= 0:
        return 0
    return math.ceil(total_rows / page_size)


@dataclass(frozen=True)
class QueryResult:
    columns: List[str]
    rows: List[Row]
    total_rows: int
    page: int
    page_size: int
    trace: Optional[StageTrace] = field(default=None, compare=False)

    @property
    def total_pages(self) -> int:
        return total_pages_for(self.total_rows, self.page_size)

    @property
    def has_more(self) -> bool:
        return self.page < self.total_pages

    def records(self) -> List[Dict[str, Scalar]]:
        """Rows reshaped into plain column->value records."""
        return [dict(zip(self.columns, row)) for row in self.rows]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "success": True,
            "columns": list(self.columns),
            "rows": [[jsonable_scalar(v) for v in row] for row in self.rows],
            "totalRows": self.total_rows,
            "page": self.page,
            "pageSize": self.page_size,
            "totalPages": self.total_pages,
            "hasMore": self.has_more,
        }
