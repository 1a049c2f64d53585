# sealdrop_core/transport/transport_local.py
from __future__ import annotations
from dataclasses import dataclass, replace
from datetime import datetime, timedelta, timezone
from typing import Dict, Optional
import threading

from sealdrop_core.crypto import decrypt_content, seal, unwrap_key
from sealdrop_core.envelope import parse
from sealdrop_core.errors import (
    IntegrityViolation, KeyMismatch, MalformedEnvelope, MalformedKey,
    RemoteDecryptFailed, RemoteRequestFailed, UnsupportedAlgorithm,
)
from sealdrop_core.keycodec import KeyUsage, decode
from sealdrop_core.logger import get_logger
from sealdrop_core.metadata import PackageMetadata, UploadReceipt
from sealdrop_core.session import Session
from sealdrop_core.transport.transport_base import BaseTransferService, DecryptedPayload
from sealdrop_core.utils import new_id, wipe

log = get_logger("SealDrop.Transport.Local")


def _iso(dt: datetime) -> str:
    return dt.strftime("%Y-%m-%dT%H:%M:%SZ")


@dataclass
class _Stored:
    archive: bytes
    metadata: PackageMetadata


class LocalTransferService(BaseTransferService):
    """
    In-process stand-in for the transfer service.

    Seals uploads exactly as the remote service does (one-time AES-256-GCM
    key wrapped with the recipient's RSA-OAEP key) and serves the same four
    endpoints. Used for tests, demos and offline development.
    """
    name = "local"

    def __init__(self, ttl: timedelta = timedelta(days=7), signer: Optional[str] = None):
        self.ttl = ttl
        self.signer = signer
        self.packages: Dict[str, _Stored] = {}
        self._lock = threading.Lock()

    def upload(self, data, filename, recipient_public_key, session, mime_type="application/octet-stream") -> UploadReceipt:
        try:
            recipient = decode(recipient_public_key)
        except (MalformedKey, UnsupportedAlgorithm) as e:
            raise RemoteRequestFailed("invalid recipient public key", status=400, server_reason=e.reason) from e
        if recipient.usage is not KeyUsage.PUBLIC:
            raise RemoteRequestFailed("recipient key must be a public key", status=400, server_reason="expected_public_key")

        envelope = seal(data, recipient, filename=filename, mime_type=mime_type)
        archive = envelope.to_bytes()
        now = datetime.now(timezone.utc)
        package_id = new_id()
        metadata = PackageMetadata(
            package_id=package_id,
            filename=filename,
            original_size=len(data),
            mime_type=mime_type,
            uploaded_at=_iso(now),
            expires_at=_iso(now + self.ttl),
            status="active",
            signer=self.signer,
            signature_valid=True if self.signer else None,
        )
        with self._lock:
            self.packages[package_id] = _Stored(archive, metadata)
        log.info(f"[LOCAL UPLOAD] package={package_id} bytes={len(archive)}")
        return UploadReceipt(
            package_id=package_id,
            filename=filename,
            size=len(data),
            encrypted_size=len(envelope.ciphertext),
            download_url=f"/download/{package_id}",
            expires_at=metadata.expires_at,
        )

    def _get(self, package_id: str, error_cls=RemoteRequestFailed) -> _Stored:
        stored = self.packages.get(package_id)
        if stored is None:
            raise error_cls(f"package {package_id} not found", status=404, server_reason="Package not found")
        if stored.metadata.status != "active":
            raise error_cls(f"package {package_id} is {stored.metadata.status}", status=410,
                            server_reason=f"Package {stored.metadata.status}")
        return stored

    def fetch_envelope(self, package_id: str, session: Session) -> bytes:
        return self._get(package_id).archive

    def remote_decrypt(self, package_id: str, private_key_pem: str, session: Session) -> DecryptedPayload:
        stored = self._get(package_id, RemoteDecryptFailed)
        try:
            private = decode(private_key_pem)
            envelope = parse(stored.archive)
            content_key = unwrap_key(private, envelope.wrapped_key)
            try:
                plaintext = decrypt_content(content_key, envelope.ciphertext, envelope.manifest.cipher)
            finally:
                wipe(content_key)
        except (MalformedKey, UnsupportedAlgorithm):
            raise RemoteDecryptFailed("invalid private key", status=400, server_reason="Invalid private key") from None
        except (KeyMismatch, IntegrityViolation, MalformedEnvelope):
            raise RemoteDecryptFailed("decryption failed", status=400, server_reason="Decryption failed") from None
        log.info(f"[LOCAL DECRYPT] package={package_id}")
        return DecryptedPayload(
            data=plaintext,
            content_hash=envelope.manifest.content_hash,
            hash_algorithm=envelope.manifest.algorithm,
        )

    def fetch_metadata(self, package_id: str, session: Session) -> PackageMetadata:
        stored = self.packages.get(package_id)
        if stored is None:
            raise RemoteRequestFailed(f"package {package_id} not found", status=404, server_reason="Package not found")
        return stored.metadata

    def set_status(self, package_id: str, status: str) -> None:
        with self._lock:
            stored = self.packages[package_id]
            stored.metadata = replace(stored.metadata, status=status)

    def replace_archive(self, package_id: str, archive: bytes) -> None:
        """Swap the stored archive bytes (tamper simulation in tests)."""
        with self._lock:
            self.packages[package_id].archive = archive
