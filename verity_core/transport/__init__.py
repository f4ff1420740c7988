# verity_core/transport/__init__.py
from verity_core.config import Settings
from verity_core.transport.transport_base import BaseResolver, ProductData, TokenStatus
from verity_core.transport.transport_local import LocalResolver
from verity_core.transport.transport_http import HTTPResolver


def resolver_factory(mode: str = None, settings: Settings = None) -> BaseResolver:
    """
    mode:
      - "http"  → vendor token API (default)
      - "local" → in-process fixtures for development

    Without ``settings`` the VERITY_* environment is read; an explicit
    ``mode`` overrides ``settings.resolver``.
    """
    settings = settings or Settings.from_env()
    mode = (mode or settings.resolver).lower()

    if mode == "local":
        return LocalResolver()

    if mode == "http":
        return HTTPResolver(
            base_url=settings.api_url,
            device_id=settings.device_id,
            app_version=settings.app_version,
            timeout=settings.request_timeout,
        )

    raise ValueError(f"Unknown resolver mode: {mode}")


__all__ = [
    "BaseResolver",
    "ProductData",
    "TokenStatus",
    "LocalResolver",
    "HTTPResolver",
    "resolver_factory",
]
