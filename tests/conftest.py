import os
import sqlite3
from pathlib import Path

import pytest
from dotenv import load_dotenv
from fastapi.testclient import TestClient

from adapters.metrics.noop import NoOpMetrics
from app.dependencies import get_dashboard_service, get_upload_store
from app.main import app
from app.services.dashboard_service import DashboardService
from app.settings import Settings
from app.state import UploadStore

# Load .env once for tests
ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
ENV_PATH = os.path.join(ROOT, ".env")
load_dotenv(ENV_PATH)

USERS = [
    (1, "Alice Johnson", "alice@example.com"),
    (2, "Bob Smith", "bob@example.com"),
    (3, "Carol White", "carol@example.com"),
    (4, "David Brown", "david@example.com"),
    (5, "Eve Davis", "eve@example.com"),
    (6, "Frank Miller", "frank@example.com"),
    (7, "Grace Lee", "grace@example.com"),
    (8, "Henry Wilson", "henry@example.com"),
    (9, "Iris Taylor", "iris@example.com"),
    (10, "Jack Moore", "jack@example.com"),
]

USERS_DB_NAME = "database_1700000000000.db"


def make_users_db(db_path: Path) -> None:
    """users(id, name, email) with ten rows; only Alice's name starts with A."""
    conn = sqlite3.connect(str(db_path))
    try:
        conn.execute(
            "CREATE TABLE users("
            "id INTEGER PRIMARY KEY, name TEXT NOT NULL, email TEXT NOT NULL)"
        )
        conn.executemany("INSERT INTO users VALUES (?, ?, ?)", USERS)
        conn.commit()
    finally:
        conn.close()


@pytest.fixture
def settings(tmp_path) -> Settings:
    return Settings(upload_dir=str(tmp_path / "uploads"))


@pytest.fixture
def store(settings) -> UploadStore:
    return UploadStore(
        upload_dir=settings.upload_dir,
        max_bytes=settings.upload_max_bytes,
        ttl_seconds=settings.upload_ttl_seconds,
    )


@pytest.fixture
def service(settings, store) -> DashboardService:
    return DashboardService(settings=settings, store=store, metrics=NoOpMetrics())


@pytest.fixture
def users_db(store) -> str:
    """Bare filename of the ten-row users fixture inside the upload dir."""
    make_users_db(store.upload_dir / USERS_DB_NAME)
    return USERS_DB_NAME


@pytest.fixture
def client(store, service):
    """TestClient wired to a per-test upload directory."""
    app.dependency_overrides[get_upload_store] = lambda: store
    app.dependency_overrides[get_dashboard_service] = lambda: service
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.pop(get_upload_store, None)
        app.dependency_overrides.pop(get_dashboard_service, None)
