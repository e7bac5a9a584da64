from __future__ import annotations

from fastapi import APIRouter, Depends

from app.dependencies import get_dashboard_service
from app.schemas import ChartRequest, ChartResponse, ErrorResponse
from app.services.dashboard_service import DashboardService

router = APIRouter(tags=["chart"])


@router.post(
    "/chart",
    response_model=ChartResponse,
    responses={status: {"model": ErrorResponse} for status in (400, 422)},
)
def chart_endpoint(
    request: ChartRequest,
    svc: DashboardService = Depends(get_dashboard_service),
):
    """
    Check a chart function and hand back the records it will be called with.

    Rendering happens client-side; a rejected function comes back with a
    preview of the first rows instead.
    """
    query_result = request.queryResult
    outcome = svc.submit_chart(
        source=request.chartFunctionSource,
        query_result=query_result.model_dump() if query_result else None,
    )
    return outcome.to_dict()
