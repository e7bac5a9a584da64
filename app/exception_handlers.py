from __future__ import annotations

import logging
import uuid
from typing import Any, Dict

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.errors import AppError

logger = logging.getLogger(__name__)


def _request_id(request: Request) -> str:
    rid = getattr(request.state, "request_id", None)
    return rid or request.headers.get("X-Request-ID") or str(uuid.uuid4())


def _error_response(
    request: Request, status: int, payload: Dict[str, Any], retryable: bool = False
) -> JSONResponse:
    headers = {"X-Request-ID": _request_id(request)}
    if retryable:
        headers["Retry-After"] = "2"
    return JSONResponse(status_code=status, content=payload, headers=headers)


def register_exception_handlers(app: FastAPI) -> None:
    """
    Register global exception handlers for the FastAPI application.

    Every error body has a string "error" key; success bodies never do.
    """

    @app.exception_handler(AppError)
    async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
        payload: Dict[str, Any] = {"error": exc.message, "code": exc.code}
        payload.update(exc.extra or {})
        return _error_response(request, exc.http_status, payload, exc.retryable)

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        missing = [
            str(err.get("loc", ["", "?"])[-1])
            for err in exc.errors()
            if err.get("type") == "missing"
        ]
        if missing:
            message = f"Missing required parameters: {', '.join(missing)}"
        else:
            message = "Invalid request parameters"
        return _error_response(
            request, 400, {"error": message, "code": "BAD_REQUEST"}
        )

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(
        request: Request, exc: StarletteHTTPException
    ) -> JSONResponse:
        return _error_response(
            request, exc.status_code, {"error": str(exc.detail), "code": "HTTP_ERROR"}
        )

    @app.exception_handler(Exception)
    async def unhandled_handler(request: Request, exc: Exception) -> JSONResponse:
        logger.exception("Unhandled error", exc_info=exc)
        return _error_response(
            request, 500, {"error": "Internal server error", "code": "INTERNAL"}
        )
