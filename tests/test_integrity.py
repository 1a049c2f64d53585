import hashlib

import pytest

from sealdrop_core.envelope import Manifest
from sealdrop_core.integrity import SignatureState, content_digest, verify_hash, verify_signature
from sealdrop_core.metadata import PackageMetadata

DATA = b"the quick brown fox"


def _manifest(content_hash, algorithm="SHA-256"):
    return Manifest(filename="f", original_size=len(DATA), mime_type="text/plain",
                    content_hash=content_hash, algorithm=algorithm)


def _metadata(**kw):
    base = dict(package_id="p1", filename="f", original_size=1, mime_type="text/plain",
                uploaded_at="2026-01-01T00:00:00Z", expires_at="2026-01-08T00:00:00Z")
    base.update(kw)
    return PackageMetadata(**base)


def test_verify_hash_matches():
    assert verify_hash(_manifest(hashlib.sha256(DATA).hexdigest()), DATA)


def test_verify_hash_is_case_insensitive_hex():
    assert verify_hash(_manifest(hashlib.sha256(DATA).hexdigest().upper()), DATA)


@pytest.mark.parametrize("alg,fn", [("SHA-384", hashlib.sha384), ("SHA-512", hashlib.sha512)])
def test_verify_hash_other_digests(alg, fn):
    assert verify_hash(_manifest(fn(DATA).hexdigest(), alg), DATA)
    assert content_digest(DATA, alg) == fn(DATA).hexdigest()


def test_verify_hash_mismatch_returns_false():
    assert not verify_hash(_manifest(hashlib.sha256(DATA).hexdigest()), DATA + b"!")


@pytest.mark.parametrize("content_hash,alg", [
    ("", "SHA-256"),
    ("zz" * 32, "SHA-256"),
    (hashlib.sha256(DATA).hexdigest(), "MD5"),
    ("héllo", "SHA-256"),
])
def test_verify_hash_never_raises(content_hash, alg):
    assert verify_hash(_manifest(content_hash, alg), DATA) is False


def test_signature_state():
    assert verify_signature(None) is SignatureState.ABSENT
    assert verify_signature(_metadata()) is SignatureState.ABSENT
    assert verify_signature(_metadata(signer="bob@example.com")) is SignatureState.ABSENT
    assert verify_signature(_metadata(signer="bob@example.com", signature_valid=True)) is SignatureState.VALID
    assert verify_signature(_metadata(signer="bob@example.com", signature_valid=False)) is SignatureState.INVALID


def test_metadata_from_service_json():
    meta = PackageMetadata.from_dict({
        "packageId": "abc",
        "filename": "a.txt",
        "originalSize": 42,
        "mimeType": "text/plain",
        "uploadedAt": "2026-01-01T00:00:00Z",
        "expiresAt": "2026-01-08T00:00:00Z",
        "status": "downloaded",
        "signer": "carol",
        "signatureValid": False,
    })
    assert meta.package_id == "abc"
    assert meta.original_size == 42
    assert not meta.is_available
    assert verify_signature(meta) is SignatureState.INVALID

    with pytest.raises(ValueError):
        PackageMetadata.from_dict({"status": "lost"})
