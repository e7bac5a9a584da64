from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from sqlboard.errors.codes import ErrorCode
from sqlboard.errors.exceptions import SqlboardError
from sqlboard.errors.mapper import map_error


@dataclass
class AppError(Exception):
    """Base class for boundary errors. Rendered as {"error": message, ...}."""

    message: str
    http_status: int = 500
    code: str = "INTERNAL"
    retryable: bool = False
    extra: Dict[str, Any] = field(default_factory=dict)

    def __str__(self) -> str:
        return self.message


# 4xx
@dataclass
class BadRequestError(AppError):
    http_status: int = 400
    code: str = "BAD_REQUEST"


@dataclass
class InvalidFilename(BadRequestError):
    code: str = "INVALID_FILENAME"


@dataclass
class UploadRejected(BadRequestError):
    code: str = "UPLOAD_REJECTED"


@dataclass
class DbNotFound(AppError):
    http_status: int = 404
    code: str = "DB_NOT_FOUND"


def from_core(
    exc: SqlboardError,
    *,
    message: Optional[str] = None,
    extra: Optional[Dict[str, Any]] = None,
) -> AppError:
    """Translate a core error through map_error into a boundary error."""
    code: ErrorCode = exc.code
    status, retryable = map_error(code)
    return AppError(
        message=message or exc.message,
        http_status=status,
        code=code.value,
        retryable=retryable,
        extra=dict(extra or {}),
    )
