from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field


class QueryRequest(BaseModel):
    filename: Optional[str] = None
    query: Optional[str] = None
    # "2", 2.0 and junk are all accepted; the executor normalizes them.
    page: Any = 1
    pageSize: Any = None

    class Config:
        extra = "ignore"


class ToolQueryRequest(BaseModel):
    filename: Optional[str] = None
    query: Optional[str] = None
    explanation: Optional[str] = None
    pageSize: Any = None

    class Config:
        extra = "ignore"


class QueryResultPayload(BaseModel):
    """The /api/query response a chart function is evaluated against."""

    columns: List[str] = Field(default_factory=list)
    rows: List[List[Any]] = Field(default_factory=list)
    totalRows: Optional[int] = None

    class Config:
        extra = "ignore"


class ChartRequest(BaseModel):
    chartFunctionSource: Any = None
    queryResult: Optional[QueryResultPayload] = None

    class Config:
        extra = "ignore"


class QueryResponse(BaseModel):
    success: bool = True
    columns: List[str] = Field(default_factory=list)
    rows: List[List[Any]] = Field(default_factory=list)
    totalRows: int = 0
    page: int = 1
    pageSize: int = 0
    totalPages: int = 0
    hasMore: bool = False


class SchemaResponse(BaseModel):
    success: bool = True
    db_schema: Dict[str, Any] = Field(default_factory=dict, alias="schema")
    filename: str


class UploadResponse(BaseModel):
    success: bool = True
    filename: str
    size: int
    message: str = "Database uploaded successfully"


class ChartResponse(BaseModel):
    success: bool = True
    data: List[Dict[str, Any]] = Field(default_factory=list)


class ErrorResponse(BaseModel):
    error: str
    code: Optional[str] = None
