# sealdrop_core/transport/transport_http.py
from __future__ import annotations
from typing import Optional
from urllib.parse import quote
import requests

from sealdrop_core.constants import CONTENT_HASH_HEADER, DEFAULT_HASH_ALGORITHM, DEFAULT_HTTP_TIMEOUT
from sealdrop_core.errors import NetworkFailure, RemoteDecryptFailed, RemoteRequestFailed
from sealdrop_core.logger import get_logger
from sealdrop_core.metadata import PackageMetadata, UploadReceipt
from sealdrop_core.session import Session
from sealdrop_core.transport.transport_base import BaseTransferService, DecryptedPayload

log = get_logger("SealDrop.Transport.HTTP")


def _server_reason(res: requests.Response) -> Optional[str]:
    try:
        body = res.json()
    except ValueError:
        return None
    if isinstance(body, dict):
        reason = body.get("error") or body.get("message")
        return str(reason) if reason else None
    return None


class HTTPTransferClient(BaseTransferService):
    """
    Client for the transfer service REST API.

    - Bearer token taken from the Session passed to each call.
    - Request bodies are never logged: the decrypt call carries a private key.
    """
    name = "http"

    def __init__(self, base_url: str, timeout: float = DEFAULT_HTTP_TIMEOUT, http: Optional[requests.Session] = None):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.http = http or requests.Session()

    def _url(self, *parts: str) -> str:
        return "/".join([self.base_url, *(quote(p, safe="") for p in parts)])

    def _send(self, method: str, url: str, session: Session, error_cls=RemoteRequestFailed, **kwargs) -> requests.Response:
        headers = dict(kwargs.pop("headers", {}) or {})
        headers.update(session.auth_headers())
        log.debug(f"[HTTP {method}] → {url}")
        try:
            res = self.http.request(method, url, headers=headers, timeout=self.timeout, **kwargs)
        except requests.RequestException as e:
            log.error(f"[HTTP {method}] {url} failed: {type(e).__name__}")
            raise NetworkFailure(f"{method} {url} failed: {type(e).__name__}") from e

        if not res.ok:
            reason = _server_reason(res)
            log.error(f"[HTTP {method}] {url} → {res.status_code} {reason or res.reason}")
            raise error_cls(
                f"{method} {url} returned {res.status_code}" + (f": {reason}" if reason else ""),
                status=res.status_code,
                server_reason=reason,
            )
        log.info(f"[HTTP {method}] {url} → {res.status_code}")
        return res

    def upload(self, data, filename, recipient_public_key, session, mime_type="application/octet-stream") -> UploadReceipt:
        res = self._send(
            "POST", self._url("upload"), session,
            files={"file": (filename, data, mime_type)},
            data={"recipientPublicKey": recipient_public_key},
        )
        try:
            return UploadReceipt.from_dict(res.json())
        except (ValueError, TypeError) as e:
            raise RemoteRequestFailed("upload receipt is malformed", status=res.status_code) from e

    def fetch_envelope(self, package_id: str, session: Session) -> bytes:
        return self._send("GET", self._url("download", package_id), session).content

    def remote_decrypt(self, package_id: str, private_key_pem: str, session: Session) -> DecryptedPayload:
        res = self._send(
            "POST", self._url("download", package_id, "decrypted"), session,
            error_cls=RemoteDecryptFailed,
            json={"privateKey": private_key_pem},
        )
        return DecryptedPayload(
            data=res.content,
            content_hash=res.headers.get(CONTENT_HASH_HEADER),
            hash_algorithm=DEFAULT_HASH_ALGORITHM,
        )

    def fetch_metadata(self, package_id: str, session: Session) -> PackageMetadata:
        res = self._send("GET", self._url("metadata", package_id), session)
        try:
            return PackageMetadata.from_dict(res.json())
        except (ValueError, TypeError) as e:
            raise RemoteRequestFailed(f"metadata for {package_id} is malformed", status=res.status_code) from e

    def close(self) -> None:
        self.http.close()
