import os
import time
import uuid

from dotenv import load_dotenv
from fastapi import Depends, FastAPI, Request, Response
from fastapi.responses import PlainTextResponse
from prometheus_client import CONTENT_TYPE_LATEST, Counter, Histogram, generate_latest

from app.dependencies import get_upload_store
from app.errors import AppError
from app.exception_handlers import register_exception_handlers
from app.routers import chart, dashboard, dev
from app.settings import get_settings
from app.state import UploadStore
from sqlboard.prom import REGISTRY

load_dotenv()

settings = get_settings()

application = FastAPI(
    title="SQLBoard",
    version=settings.app_version,
    description="Read-only SQL dashboard over uploaded SQLite files",
)
register_exception_handlers(application)

application.include_router(dashboard.router, prefix="/api")
application.include_router(chart.router, prefix="/api")

# Validator playground, never exposed outside dev.
if os.getenv("APP_ENV", settings.app_env).lower() == "dev":
    application.include_router(dev.router, prefix="/api")


# ----------------------------------------------------------------------------
#  Request metrics + request ids
# ----------------------------------------------------------------------------
HTTP_REQUESTS = Counter(
    "http_requests_total",
    "HTTP requests by route template, method and status",
    ["route", "method", "status_code"],
    registry=REGISTRY,
)
HTTP_LATENCY = Histogram(
    "http_request_latency_seconds",
    "HTTP request latency (seconds) by route template",
    ["route", "method"],
    registry=REGISTRY,
)


def _route_label(request: Request) -> str:
    # Route template; every unmatched path shares one label.
    route = request.scope.get("route")
    return getattr(route, "path", None) or "unmatched"


@application.middleware("http")
async def observe_requests(request: Request, call_next):
    request.state.request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
    started = time.perf_counter()
    status = 500
    try:
        response: Response = await call_next(request)
        status = response.status_code
        response.headers.setdefault("X-Request-ID", request.state.request_id)
        return response
    finally:
        route = _route_label(request)
        HTTP_REQUESTS.labels(
            route=route, method=request.method, status_code=str(status)
        ).inc()
        HTTP_LATENCY.labels(route=route, method=request.method).observe(
            time.perf_counter() - started
        )


# ----------------------------------------------------------------------------
#  System endpoints
# ----------------------------------------------------------------------------
@application.get("/healthz", response_class=PlainTextResponse, tags=["system"])
def healthz() -> str:
    return "ok"


@application.get("/readyz", response_class=PlainTextResponse, tags=["system"])
def readyz(store: UploadStore = Depends(get_upload_store)) -> str:
    """Ready once the upload directory exists and is writable."""
    upload_dir = store.upload_dir
    if not upload_dir.is_dir() or not os.access(upload_dir, os.W_OK):
        raise AppError("not ready", http_status=503, code="NOT_READY")
    return "ready"


@application.get("/metrics", tags=["system"])
def metrics() -> Response:
    return Response(content=generate_latest(REGISTRY), media_type=CONTENT_TYPE_LATEST)


@application.get("/")
def root():
    return {"status": "ok", "service": "sqlboard", "version": settings.app_version}


app = application
