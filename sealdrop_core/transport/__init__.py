# sealdrop_core/transport/__init__.py
import os
from sealdrop_core.constants import DEFAULT_API_URL, DEFAULT_HTTP_TIMEOUT
from sealdrop_core.transport.transport_base import BaseTransferService, DecryptedPayload
from sealdrop_core.transport.transport_local import LocalTransferService
from sealdrop_core.transport.transport_http import HTTPTransferClient


def transport_factory(config: dict | None = None) -> BaseTransferService:
    """
    Resolve the transfer service client.

      - "http"  → HTTPTransferClient against SEALDROP_API_URL (default)
      - "local" → in-process LocalTransferService
    """
    config = config or {}
    mode = (config.get("transport") or os.getenv("SEALDROP_TRANSPORT", "http")).lower()

    if mode == "local":
        return LocalTransferService()

    if mode == "http":
        return HTTPTransferClient(
            config.get("api_url") or os.getenv("SEALDROP_API_URL", DEFAULT_API_URL),
            timeout=float(config.get("timeout") or os.getenv("SEALDROP_HTTP_TIMEOUT", DEFAULT_HTTP_TIMEOUT)),
        )

    raise ValueError(f"Unknown transport: {mode}")


__all__ = [
    "BaseTransferService",
    "DecryptedPayload",
    "HTTPTransferClient",
    "LocalTransferService",
    "transport_factory",
]
