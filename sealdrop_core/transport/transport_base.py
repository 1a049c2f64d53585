from __future__ import annotations
from dataclasses import dataclass, field
from typing import Optional

from sealdrop_core.constants import DEFAULT_HASH_ALGORITHM
from sealdrop_core.metadata import PackageMetadata, UploadReceipt
from sealdrop_core.session import Session


@dataclass
class DecryptedPayload:
    """Plaintext returned by the remote-assisted decrypt endpoint."""
    data: bytes = field(repr=False)
    content_hash: Optional[str] = None   # service-attested digest, when sent
    hash_algorithm: str = DEFAULT_HASH_ALGORITHM


class BaseTransferService:
    """
    Contract of the transfer service as consumed by the client.

    Calls are blocking; the decryption pipeline runs them in worker threads.
    Implementations raise NetworkFailure for transport problems and
    RemoteRequestFailed / RemoteDecryptFailed for non-success answers.
    """
    name: str = "base"

    def upload(
        self,
        data: bytes,
        filename: str,
        recipient_public_key: str,
        session: Session,
        mime_type: str = "application/octet-stream",
    ) -> UploadReceipt:
        raise NotImplementedError

    def fetch_envelope(self, package_id: str, session: Session) -> bytes:
        raise NotImplementedError

    def remote_decrypt(self, package_id: str, private_key_pem: str, session: Session) -> DecryptedPayload:
        raise NotImplementedError

    def fetch_metadata(self, package_id: str, session: Session) -> PackageMetadata:
        raise NotImplementedError

    def close(self) -> None:
        return
