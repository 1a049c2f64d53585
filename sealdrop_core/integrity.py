from __future__ import annotations
from enum import Enum
from typing import Callable, Dict, Optional
import hashlib, hmac

from .envelope import Manifest
from .logger import get_logger
from .metadata import PackageMetadata

log = get_logger("SealDrop.Integrity")

_DIGESTS: Dict[str, Callable] = {
    "SHA-256": hashlib.sha256,
    "SHA-384": hashlib.sha384,
    "SHA-512": hashlib.sha512,
}


class SignatureState(str, Enum):
    VALID = "valid"
    INVALID = "invalid"
    ABSENT = "absent"


def content_digest(data: bytes, algorithm: str = "SHA-256") -> str:
    """Hex digest of `data`; raises KeyError for unknown algorithm names."""
    h = _DIGESTS[algorithm.upper()]()
    h.update(data)
    return h.hexdigest()


def verify_hash(manifest: Manifest, plaintext: bytes) -> bool:
    """
    Recompute the digest named by manifest.algorithm and compare it with
    manifest.content_hash. Returns False on any mismatch, unknown algorithm
    or missing hash; never raises.
    """
    expected = (manifest.content_hash or "").strip().lower()
    if not expected:
        log.warning("manifest carries no content hash")
        return False
    try:
        actual = content_digest(plaintext, manifest.algorithm or "")
    except KeyError:
        log.warning(f"unknown digest algorithm in manifest: {manifest.algorithm!r}")
        return False
    return hmac.compare_digest(actual.encode("ascii"), expected.encode("ascii", errors="replace"))


def verify_signature(metadata: Optional[PackageMetadata]) -> SignatureState:
    """
    Reflect the server-attested signature flag.

    The detached signature is not re-verified here: the client trusts the
    TLS channel and the service's attestation. A faulty service can report
    signature_valid=True for a bad signature.
    """
    if metadata is None or not metadata.signer or metadata.signature_valid is None:
        return SignatureState.ABSENT
    return SignatureState.VALID if metadata.signature_valid else SignatureState.INVALID
