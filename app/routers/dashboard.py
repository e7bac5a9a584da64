from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, Depends, File, UploadFile

from app.dependencies import get_dashboard_service, get_upload_store
from app.errors import BadRequestError, UploadRejected
from app.schemas import (
    ErrorResponse,
    QueryRequest,
    QueryResponse,
    SchemaResponse,
    ToolQueryRequest,
    UploadResponse,
)
from app.services.dashboard_service import DashboardService
from app.state import UploadStore
from sqlboard.types import schema_to_dict

logger = logging.getLogger(__name__)

router = APIRouter(tags=["dashboard"])

MISSING_QUERY_PARAMS = "Missing required parameters: filename and query"

ERROR_RESPONSES = {
    status: {"model": ErrorResponse} for status in (400, 404, 500, 503)
}


@router.get("/schema", response_model=SchemaResponse, responses=ERROR_RESPONSES)
def schema_endpoint(
    filename: Optional[str] = None,
    svc: DashboardService = Depends(get_dashboard_service),
):
    schema = svc.get_schema(filename)
    logger.debug(
        "Schema served", extra={"db_file": filename, "tables": len(schema)}
    )
    return {"success": True, "schema": schema_to_dict(schema), "filename": filename}


@router.post("/query", response_model=QueryResponse, responses=ERROR_RESPONSES)
def query_endpoint(
    request: QueryRequest,
    svc: DashboardService = Depends(get_dashboard_service),
):
    """
    Run one read-only SELECT against an uploaded database and return one page.

    LIMIT/OFFSET are refused here; paging is driven by page/pageSize.
    """
    if not request.filename or not request.query:
        raise BadRequestError(MISSING_QUERY_PARAMS)

    result = svc.run_query(
        filename=request.filename,
        query=request.query,
        page=request.page,
        page_size=request.pageSize,
    )
    return result.to_dict()


@router.post(
    "/tool/query", response_model=QueryResponse, responses=ERROR_RESPONSES
)
def tool_query_endpoint(
    request: ToolQueryRequest,
    svc: DashboardService = Depends(get_dashboard_service),
):
    if not request.filename or not request.query:
        raise BadRequestError(MISSING_QUERY_PARAMS)

    if request.explanation:
        logger.debug("Tool query", extra={"explanation": request.explanation})

    result = svc.run_tool_query(
        filename=request.filename,
        query=request.query,
        page_size=request.pageSize,
    )
    return result.to_dict()


@router.post(
    "/upload", response_model=UploadResponse, responses={400: {"model": ErrorResponse}}
)
async def upload_endpoint(
    database: Optional[UploadFile] = File(None),
    store: UploadStore = Depends(get_upload_store),
):
    """
    Store an uploaded SQLite file under a generated name.

    The client only ever gets the bare name back; later requests refer to the
    database by it.
    """
    if database is None:
        raise UploadRejected("No file uploaded")

    data = await database.read()
    name, _ = store.save(data)
    return {
        "success": True,
        "filename": name,
        "size": len(data),
        "message": "Database uploaded successfully",
    }
