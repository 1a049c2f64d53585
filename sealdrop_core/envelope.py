"""
sealdrop_core.envelope
----------------------
Defines the Envelope: the four-part archive that carries one encrypted file
transfer.

    manifest.json        file metadata + content digest (JSON, camelCase keys)
    encrypted_file.enc   symmetric ciphertext of the file
    encrypted_key.bin    asymmetric ciphertext of the one-time content key
    README.txt           human-readable decryption instructions

build() is deterministic: entries are written in a fixed order with pinned
timestamps and permissions, and the manifest is canonical JSON.
parse() only checks structure; cryptographic checks live in the pipeline
and in sealdrop_core.integrity.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any, Dict, Optional
import io, json, zipfile, zlib

from .constants import (
    MANIFEST_ENTRY, CIPHERTEXT_ENTRY, WRAPPED_KEY_ENTRY, INSTRUCTIONS_ENTRY,
    ENVELOPE_ENTRIES, ARCHIVE_DATE_TIME, DEFAULT_HASH_ALGORITHM, DEFAULT_CIPHER,
)
from .errors import MalformedEnvelope
from .utils import canonical_json, now_ts

# JSON key -> (attribute, type)
_REQUIRED = {
    "filename": ("filename", str),
    "originalSize": ("original_size", int),
    "mimeType": ("mime_type", str),
    "contentHash": ("content_hash", str),
    "algorithm": ("algorithm", str),
}
_OPTIONAL = {
    "createdAt": ("created_at", str),
    "cipher": ("cipher", str),
}


@dataclass
class Manifest:
    filename: str
    original_size: int
    mime_type: str
    content_hash: str                       # hex digest of the plaintext
    algorithm: str = DEFAULT_HASH_ALGORITHM  # digest used for content_hash
    created_at: Optional[str] = field(default_factory=now_ts)
    cipher: str = DEFAULT_CIPHER            # payload cipher suite

    def to_dict(self) -> Dict[str, Any]:
        d = {
            "filename": self.filename,
            "originalSize": self.original_size,
            "mimeType": self.mime_type,
            "contentHash": self.content_hash,
            "algorithm": self.algorithm,
            "cipher": self.cipher,
        }
        if self.created_at is not None:
            d["createdAt"] = self.created_at
        return d

    def to_json_bytes(self) -> bytes:
        return canonical_json(self.to_dict())

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Manifest":
        """Inverse of to_dict. Raises MalformedEnvelope on missing or mistyped fields."""
        if not isinstance(data, dict):
            raise MalformedEnvelope(f"{MANIFEST_ENTRY} must hold a JSON object")

        kwargs: Dict[str, Any] = {}
        for key, (attr, typ) in _REQUIRED.items():
            if key not in data:
                raise MalformedEnvelope(f"{MANIFEST_ENTRY} is missing '{key}'")
            kwargs[attr] = _typed(key, data[key], typ)
        for key, (attr, typ) in _OPTIONAL.items():
            if data.get(key) is not None:
                kwargs[attr] = _typed(key, data[key], typ)
        kwargs.setdefault("created_at", None)

        if kwargs["original_size"] < 0:
            raise MalformedEnvelope("'originalSize' must not be negative")
        return cls(**kwargs)


def _typed(key: str, value: Any, typ: type) -> Any:
    # bool is an int subclass; a size of `true` is still malformed
    if not isinstance(value, typ) or (typ is int and isinstance(value, bool)):
        raise MalformedEnvelope(f"'{key}' must be of type {typ.__name__}")
    return value


@dataclass
class Envelope:
    manifest: Manifest
    wrapped_key: bytes
    ciphertext: bytes
    instructions: str = ""

    def to_bytes(self) -> bytes:
        return build(self.manifest, self.wrapped_key, self.ciphertext, self.instructions)

    @classmethod
    def from_bytes(cls, archive: bytes) -> "Envelope":
        return parse(archive)


def default_instructions(manifest: Manifest) -> str:
    return (
        "SECURE PACKAGE\n"
        "==============\n"
        "\n"
        f"File:      {manifest.filename}\n"
        f"Size:      {manifest.original_size} bytes\n"
        f"Type:      {manifest.mime_type}\n"
        f"Digest:    {manifest.algorithm} {manifest.content_hash}\n"
        "\n"
        "Contents:\n"
        f"  {MANIFEST_ENTRY:<20} file metadata and content digest\n"
        f"  {CIPHERTEXT_ENTRY:<20} the file, encrypted with {manifest.cipher}\n"
        f"  {WRAPPED_KEY_ENTRY:<20} the file key, encrypted with your public key (RSA-OAEP, SHA-256)\n"
        f"  {INSTRUCTIONS_ENTRY:<20} this file\n"
        "\n"
        "To decrypt:\n"
        f"  1. Decrypt {WRAPPED_KEY_ENTRY} with your private key to recover the 32-byte file key.\n"
        f"  2. Split {CIPHERTEXT_ENTRY} into nonce (first 12 bytes) and ciphertext+tag (rest).\n"
        f"  3. Decrypt with {manifest.cipher} using the file key and nonce.\n"
        f"  4. Check that the {manifest.algorithm} digest of the result equals the manifest digest.\n"
    )


def _entry(name: str) -> zipfile.ZipInfo:
    info = zipfile.ZipInfo(name, date_time=ARCHIVE_DATE_TIME)
    info.compress_type = zipfile.ZIP_DEFLATED
    info.create_system = 3
    info.external_attr = 0o644 << 16
    return info


def build(manifest: Manifest, wrapped_key: bytes, ciphertext: bytes, instructions: Optional[str] = None) -> bytes:
    if instructions is None:
        instructions = default_instructions(manifest)
    parts = {
        MANIFEST_ENTRY: manifest.to_json_bytes(),
        CIPHERTEXT_ENTRY: bytes(ciphertext),
        WRAPPED_KEY_ENTRY: bytes(wrapped_key),
        INSTRUCTIONS_ENTRY: instructions.encode("utf-8"),
    }
    buf = io.BytesIO()
    with zipfile.ZipFile(buf, "w") as zf:
        for name in ENVELOPE_ENTRIES:
            zf.writestr(_entry(name), parts[name])
    return buf.getvalue()


def parse(archive: bytes) -> Envelope:
    try:
        with zipfile.ZipFile(io.BytesIO(archive)) as zf:
            names = set(zf.namelist())
            locked = sorted(i.filename for i in zf.infolist() if i.flag_bits & 0x1)
            if locked:
                raise MalformedEnvelope(f"archive entries must not be encrypted: {', '.join(locked)}")
            missing = [n for n in ENVELOPE_ENTRIES if n not in names]
            if missing:
                raise MalformedEnvelope(f"archive is missing {', '.join(missing)}")
            raw = {n: zf.read(n) for n in ENVELOPE_ENTRIES}
    except MalformedEnvelope:
        raise
    except (zipfile.BadZipFile, zipfile.LargeZipFile, zlib.error, EOFError, NotImplementedError, RuntimeError, ValueError) as e:
        raise MalformedEnvelope(f"not a readable archive: {type(e).__name__}") from e

    try:
        data = json.loads(raw[MANIFEST_ENTRY].decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError) as e:
        raise MalformedEnvelope(f"{MANIFEST_ENTRY} is not valid JSON") from e

    return Envelope(
        manifest=Manifest.from_dict(data),
        wrapped_key=raw[WRAPPED_KEY_ENTRY],
        ciphertext=raw[CIPHERTEXT_ENTRY],
        instructions=raw[INSTRUCTIONS_ENTRY].decode("utf-8", errors="replace"),
    )
