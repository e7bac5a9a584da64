import re

from app.dependencies import get_upload_store
from app.main import app
from app.state import UploadStore

from conftest import make_users_db


def _users_bytes(tmp_path) -> bytes:
    path = tmp_path / "source.db"
    make_users_db(path)
    return path.read_bytes()


def test_upload_then_query(client, tmp_path):
    data = _users_bytes(tmp_path)
    r = client.post(
        "/api/upload",
        files={"database": ("shop.sqlite", data, "application/octet-stream")},
    )
    assert r.status_code == 200, r.text
    body = r.json()
    assert body["success"] is True
    assert body["size"] == len(data)
    assert body["message"] == "Database uploaded successfully"
    # The client-supplied name is never used on disk.
    assert re.fullmatch(r"database_\d+\.db", body["filename"])

    r = client.get("/api/schema", params={"filename": body["filename"]})
    assert r.json()["schema"]["users"]["rowCount"] == 10


def test_upload_rejects_non_sqlite(client):
    r = client.post(
        "/api/upload",
        files={"database": ("notes.db", b"hello world" * 10, "text/plain")},
    )
    assert r.status_code == 400
    assert r.json()["error"] == "Invalid SQLite file format"


def test_upload_without_file(client):
    r = client.post("/api/upload")
    assert r.status_code == 400
    assert r.json()["error"] == "No file uploaded"


def test_upload_too_large(client, tmp_path):
    small = UploadStore(upload_dir=str(tmp_path / "small"), max_bytes=1024 * 1024)
    app.dependency_overrides[get_upload_store] = lambda: small

    data = b"SQLite format 3\x00" + b"\x00" * (1024 * 1024)
    r = client.post("/api/upload", files={"database": ("big.db", data)})

    assert r.status_code == 400
    assert r.json()["error"] == "File too large. Maximum size is 1MB"
    assert list(small.upload_dir.iterdir()) == []
