from __future__ import annotations

import logging
import os
import time
from pathlib import Path
from typing import Optional, Tuple

from adapters.db.sqlite_adapter import looks_like_sqlite
from app.errors import DbNotFound, InvalidFilename, UploadRejected

log = logging.getLogger(__name__)


class UploadStore:
    """
    Directory of uploaded SQLite files, addressed by bare filename.

    Responsibilities:
    - Validate and store new uploads under generated names.
    - Map a client-supplied filename to a path without ever accepting a path.
    - Optionally remove uploads older than a TTL.
    """

    def __init__(self, upload_dir: str, max_bytes: int, ttl_seconds: int = 0) -> None:
        self.upload_dir = Path(upload_dir)
        self.max_bytes = max_bytes
        self.ttl_seconds = ttl_seconds

        self.upload_dir.mkdir(parents=True, exist_ok=True)
        log.debug(
            "Initialized UploadStore",
            extra={
                "upload_dir": str(self.upload_dir),
                "ttl_seconds": self.ttl_seconds,
            },
        )

    def _now(self) -> float:
        return time.time()

    # ------------------------------------------------------------------ names

    @staticmethod
    def check_filename(filename: Optional[str]) -> str:
        if not filename:
            raise InvalidFilename("Missing filename parameter")
        if ".." in filename or "/" in filename or "\\" in filename:
            raise InvalidFilename("Invalid filename")
        return filename

    def resolve(self, filename: Optional[str]) -> Path:
        """
        Resolve a bare filename to an existing upload.

        Raises InvalidFilename for anything path-like and DbNotFound when the
        file is absent (or has expired).
        """
        name = self.check_filename(filename)
        path = self.upload_dir / name
        if not path.is_file() or self._is_expired(path):
            raise DbNotFound("Database file not found")
        return path

    # ---------------------------------------------------------------- uploads

    def save(self, data: bytes) -> Tuple[str, Path]:
        if not data:
            raise UploadRejected("No file uploaded")
        if len(data) > self.max_bytes:
            mb = self.max_bytes // (1024 * 1024)
            raise UploadRejected(f"File too large. Maximum size is {mb}MB")
        if not looks_like_sqlite(data):
            raise UploadRejected("Invalid SQLite file format")

        stamp = int(self._now() * 1000)
        path = self.upload_dir / f"database_{stamp}.db"
        while path.exists():
            stamp += 1
            path = self.upload_dir / f"database_{stamp}.db"

        path.write_bytes(data)
        log.debug(
            "Stored uploaded DB", extra={"db_file": path.name, "size": len(data)}
        )
        self.cleanup_stale()
        return path.name, path

    # ---------------------------------------------------------------- cleanup

    def _is_expired(self, path: Path, now: Optional[float] = None) -> bool:
        if self.ttl_seconds <= 0:
            return False
        if now is None:
            now = self._now()
        try:
            return (now - path.stat().st_mtime) > self.ttl_seconds
        except FileNotFoundError:
            return True

    def cleanup_stale(self) -> int:
        """Delete uploads older than the TTL. Returns how many were removed."""
        if self.ttl_seconds <= 0:
            return 0
        now = self._now()
        removed = 0
        for path in self.upload_dir.glob("*.db"):
            if not self._is_expired(path, now):
                continue
            try:
                os.remove(path)
                removed += 1
            except OSError as exc:
                # Best-effort cleanup; do not crash the app because of FS issues.
                log.debug(
                    "Failed to delete expired upload",
                    extra={"db_file": path.name},
                    exc_info=exc,
                )
        return removed
