from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Optional
import os
import sys

DEFAULT_PAGE_SIZE = 50


@dataclass(frozen=True)
class AppPaths:
    base_dir: Path
    db_path: Path
    logs_dir: Path


@dataclass(frozen=True)
class AppSettings:
    page_size: int = DEFAULT_PAGE_SIZE
    backend_url: str = ""
    http_timeout: float = 10.0
    max_pages: Optional[int] = None


def _windows_appdata() -> Path:
    return Path(os.environ.get("APPDATA", str(Path.home() / "AppData" / "Roaming")))


def _mac_app_support() -> Path:
    return Path.home() / "Library" / "Application Support"


def get_app_paths(app_name: str = "DairyCollectionManager") -> AppPaths:
    if sys.platform.startswith("win"):
        base = _windows_appdata() / app_name
    elif sys.platform == "darwin":
        base = _mac_app_support() / app_name
    else:
        base = Path.home() / f".{app_name.lower()}"

    logs = base / "logs"
    db = base / "dairy.db"

    base.mkdir(parents=True, exist_ok=True)
    logs.mkdir(parents=True, exist_ok=True)

    return AppPaths(base_dir=base, db_path=db, logs_dir=logs)


def load_settings(environ: dict[str, str] | None = None) -> AppSettings:
    env = os.environ if environ is None else environ

    page_size = int(env.get("DCM_PAGE_SIZE", "").strip() or DEFAULT_PAGE_SIZE)
    if page_size <= 0:
        raise ValueError(f"DCM_PAGE_SIZE must be > 0. Received: {page_size}")

    max_pages_raw = env.get("DCM_MAX_PAGES", "").strip()
    max_pages = int(max_pages_raw) if max_pages_raw else None

    return AppSettings(
        page_size=page_size,
        backend_url=env.get("DCM_BACKEND_URL", "").strip(),
        http_timeout=float(env.get("DCM_HTTP_TIMEOUT", "").strip() or 10.0),
        max_pages=max_pages,
    )
