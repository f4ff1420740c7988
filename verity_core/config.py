# verity_core/config.py
"""
Environment-driven settings and the wiring helper that builds a ready
orchestrator from them.

Variables (all optional):
  VERITY_API_URL, VERITY_ALLOWED_HOST, VERITY_APP_VERSION, VERITY_DEVICE_ID,
  VERITY_RESOLVER (http|local), VERITY_STORAGE_PROVIDER (sqlite|memory),
  VERITY_DB_PATH, VERITY_REQUEST_TIMEOUT, VERITY_LOG_LEVEL
"""

from __future__ import annotations
import os
from dataclasses import dataclass
from typing import Optional

from .constants import ALLOWED_HOST, DEFAULT_API_URL, DEFAULT_APP_VERSION, REQUEST_TIMEOUT


@dataclass
class Settings:
    api_url: str = DEFAULT_API_URL
    allowed_host: str = ALLOWED_HOST
    app_version: str = DEFAULT_APP_VERSION
    device_id: str = "unknown"
    resolver: str = "http"
    storage_provider: str = "sqlite"
    db_path: str = "db/verity_state.db"
    request_timeout: float = float(REQUEST_TIMEOUT)
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> "Settings":
        return cls(
            api_url=os.getenv("VERITY_API_URL", DEFAULT_API_URL),
            allowed_host=os.getenv("VERITY_ALLOWED_HOST", ALLOWED_HOST),
            app_version=os.getenv("VERITY_APP_VERSION", DEFAULT_APP_VERSION),
            device_id=os.getenv("VERITY_DEVICE_ID", "unknown"),
            resolver=os.getenv("VERITY_RESOLVER", "http").lower(),
            storage_provider=os.getenv("VERITY_STORAGE_PROVIDER", "sqlite").lower(),
            db_path=os.getenv("VERITY_DB_PATH", "db/verity_state.db"),
            request_timeout=float(os.getenv("VERITY_REQUEST_TIMEOUT", REQUEST_TIMEOUT)),
            log_level=os.getenv("VERITY_LOG_LEVEL", "INFO").upper(),
        )


def build_orchestrator(settings: Optional[Settings] = None):
    from .logger import set_level
    from .orchestrator import ResolutionOrchestrator
    from .storage import load_storage_provider
    from .transport import resolver_factory

    settings = settings or Settings.from_env()
    set_level(settings.log_level)
    store = load_storage_provider({"provider": settings.storage_provider, "sqlite_path": settings.db_path})
    resolver = resolver_factory(settings=settings)

    return ResolutionOrchestrator(store, resolver, allowed_host=settings.allowed_host)
