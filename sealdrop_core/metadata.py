from __future__ import annotations
from dataclasses import dataclass
from typing import Any, Dict, Optional

from .constants import PACKAGE_STATUSES


def _pick(data: Dict[str, Any], *names: str, default: Any = None) -> Any:
    # the service answers in camelCase; older deployments used snake_case
    for n in names:
        if data.get(n) is not None:
            return data[n]
    return default


@dataclass(frozen=True)
class PackageMetadata:
    """
    Service-owned description of a stored package. Read-only on the client.
    """
    package_id: str
    filename: str
    original_size: int
    mime_type: str
    uploaded_at: str
    expires_at: str
    status: str = "active"  # active | expired | downloaded | deleted
    signer: Optional[str] = None
    signature_valid: Optional[bool] = None

    @property
    def is_available(self) -> bool:
        return self.status == "active"

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "PackageMetadata":
        status = _pick(data, "status", default="active")
        if status not in PACKAGE_STATUSES:
            raise ValueError(f"unknown package status: {status!r}")
        sig = _pick(data, "signatureValid", "signature_valid")
        return cls(
            package_id=str(_pick(data, "packageId", "package_id", "id", default="")),
            filename=_pick(data, "filename", default=""),
            original_size=int(_pick(data, "originalSize", "original_size", default=0)),
            mime_type=_pick(data, "mimeType", "mime_type", default="application/octet-stream"),
            uploaded_at=_pick(data, "uploadedAt", "uploaded_at", default=""),
            expires_at=_pick(data, "expiresAt", "expires_at", default=""),
            status=status,
            signer=_pick(data, "signer"),
            signature_valid=None if sig is None else bool(sig),
        )


@dataclass(frozen=True)
class UploadReceipt:
    package_id: str
    filename: str
    size: int
    encrypted_size: int
    download_url: str
    expires_at: str

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "UploadReceipt":
        return cls(
            package_id=str(_pick(data, "package_id", "packageId", "id", default="")),
            filename=_pick(data, "filename", default=""),
            size=int(_pick(data, "size", default=0)),
            encrypted_size=int(_pick(data, "encryptedSize", "encrypted_size", default=0)),
            download_url=_pick(data, "downloadUrl", "download_url", default=""),
            expires_at=_pick(data, "expiresAt", "expires_at", default=""),
        )
