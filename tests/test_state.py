import os
import time

import pytest

from app.errors import DbNotFound, InvalidFilename, UploadRejected
from app.state import UploadStore

HEADER = b"SQLite format 3\x00"


@pytest.fixture
def store(tmp_path) -> UploadStore:
    return UploadStore(upload_dir=str(tmp_path / "up"), max_bytes=1024 * 1024)


def test_save_generates_unique_names(store):
    name1, path1 = store.save(HEADER + b"\x00" * 100)
    name2, path2 = store.save(HEADER + b"\x01" * 100)

    assert name1 != name2
    assert path1.read_bytes().startswith(HEADER)
    assert store.resolve(name2) == path2


@pytest.mark.parametrize(
    "data, message",
    [
        (b"", "No file uploaded"),
        (b"x" * (1024 * 1024 + 1), "File too large. Maximum size is 1MB"),
        (b"PK\x03\x04 zip file", "Invalid SQLite file format"),
    ],
)
def test_save_rejections(store, data, message):
    with pytest.raises(UploadRejected) as ei:
        store.save(data)
    assert ei.value.message == message


@pytest.mark.parametrize("name", [None, ""])
def test_missing_filename(store, name):
    with pytest.raises(InvalidFilename) as ei:
        store.resolve(name)
    assert ei.value.message == "Missing filename parameter"


@pytest.mark.parametrize("name", ["../x.db", "a/b.db", "a\\b.db", "..db"])
def test_path_like_filename(store, name):
    with pytest.raises(InvalidFilename):
        store.resolve(name)


def test_unknown_file(store):
    with pytest.raises(DbNotFound) as ei:
        store.resolve("database_42.db")
    assert ei.value.http_status == 404


def test_ttl_expiry(tmp_path):
    store = UploadStore(
        upload_dir=str(tmp_path / "ttl"), max_bytes=4096, ttl_seconds=60
    )
    name, path = store.save(HEADER)
    assert store.resolve(name) == path

    old = time.time() - 3600
    os.utime(path, (old, old))

    with pytest.raises(DbNotFound):
        store.resolve(name)
    assert store.cleanup_stale() == 1
    assert not path.exists()


def test_no_ttl_keeps_everything(store):
    name, path = store.save(HEADER)
    old = time.time() - 10**7
    os.utime(path, (old, old))
    assert store.cleanup_stale() == 0
    assert store.resolve(name) == path
