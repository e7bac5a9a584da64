from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path

from sqlboard.pagination import MAX_PAGE_SIZE

# app/settings.py -> repository root
REPO_ROOT = Path(__file__).resolve().parents[1]

DEFAULT_UPLOAD_DIR = REPO_ROOT / "uploads"


@dataclass
class Settings:
    """
    Runtime knobs for the upload store, pagination and SQLite access.

    Plain dataclass; use Settings.from_env() to read the environment.
    """

    # --- Uploaded SQLite files ---
    upload_dir: str = str(DEFAULT_UPLOAD_DIR)
    upload_max_bytes: int = 100 * 1024 * 1024  # 100MB
    upload_ttl_seconds: int = 0  # 0 = keep uploads forever

    # --- Pagination ---
    default_page_size: int = 50
    max_page_size: int = 1000
    tool_max_page_size: int = 200

    # --- SQLite ---
    sqlite_timeout_sec: float = 3.0

    # --- Chart previews ---
    preview_rows: int = 5

    # --- App ---
    app_env: str = "dev"
    app_version: str = "dev"

    @classmethod
    def from_env(cls) -> "Settings":
        """
        Read every knob from the environment, keeping the default when a
        variable is unset, blank or malformed.

        - UPLOAD_DIR can be absolute or relative (resolved against REPO_ROOT).
        - Page sizes are clamped into [1, MAX_PAGE_SIZE].
        """

        def env_number(name, default, cast=int):
            raw = (os.getenv(name) or "").strip()
            if not raw:
                return default
            try:
                return cast(raw)
            except ValueError:
                return default

        def env_page_size(name, default):
            return min(MAX_PAGE_SIZE, max(1, env_number(name, default)))

        raw_upload_dir = os.getenv("UPLOAD_DIR", "").strip()
        if raw_upload_dir:
            upload_candidate = Path(raw_upload_dir)
            if not upload_candidate.is_absolute():
                upload_candidate = REPO_ROOT / raw_upload_dir
        else:
            upload_candidate = DEFAULT_UPLOAD_DIR

        return cls(
            upload_dir=str(upload_candidate),
            upload_max_bytes=env_number("UPLOAD_MAX_BYTES", cls.upload_max_bytes),
            upload_ttl_seconds=env_number("UPLOAD_TTL_SECONDS", cls.upload_ttl_seconds),
            default_page_size=env_page_size("DEFAULT_PAGE_SIZE", cls.default_page_size),
            max_page_size=env_page_size("MAX_PAGE_SIZE", cls.max_page_size),
            tool_max_page_size=env_page_size(
                "TOOL_MAX_PAGE_SIZE", cls.tool_max_page_size
            ),
            sqlite_timeout_sec=env_number(
                "SQLITE_TIMEOUT_SEC", cls.sqlite_timeout_sec, float
            ),
            preview_rows=env_number("CHART_PREVIEW_ROWS", cls.preview_rows),
            app_env=os.getenv("APP_ENV", cls.app_env),
            app_version=os.getenv("APP_VERSION", cls.app_version),
        )


@lru_cache()
def get_settings() -> Settings:
    return Settings.from_env()
