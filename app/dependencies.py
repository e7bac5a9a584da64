from functools import lru_cache

from app.services.dashboard_service import DashboardService
from app.settings import get_settings
from app.state import UploadStore


@lru_cache()
def get_upload_store() -> UploadStore:
    """
    Process-wide UploadStore rooted at the configured upload directory.
    """
    settings = get_settings()
    return UploadStore(
        upload_dir=settings.upload_dir,
        max_bytes=settings.upload_max_bytes,
        ttl_seconds=settings.upload_ttl_seconds,
    )


@lru_cache()
def get_dashboard_service() -> DashboardService:
    """
    Singleton-ish DashboardService for the FastAPI app.

    Holds configuration only; every request opens and closes its own
    connection.
    """
    return DashboardService(settings=get_settings(), store=get_upload_store())
