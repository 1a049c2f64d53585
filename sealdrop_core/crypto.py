"""
sealdrop_core.crypto
--------------------
Envelope-level cryptographic composition:

- compute_pubkey_fingerprint(): display/equality digest of a public key
- wrap_key() / unwrap_key(): one-time content key under the recipient's
  asymmetric key
- encrypt_content() / decrypt_content(): file payload under the content key
- seal(): the upload-side composition that produces a complete Envelope

The receiving side (unwrap, decrypt, verify) is orchestrated by
sealdrop_core.pipeline.
"""

from __future__ import annotations
from typing import Optional, Union

from cryptography.exceptions import InvalidTag

from .algorithms import get_cipher
from .constants import DEFAULT_CIPHER, DEFAULT_HASH_ALGORITHM
from .envelope import Envelope, Manifest, default_instructions
from .errors import KeyMismatch, IntegrityViolation
from .integrity import content_digest
from .keycodec import KeyHandle
from .utils import now_ts, wipe


def compute_pubkey_fingerprint(handle_or_der: Union[KeyHandle, bytes]) -> str:
    """
    Stable fingerprint of a public key.

    - Input: a KeyHandle (either half) or DER SubjectPublicKeyInfo bytes
    - Output: hex SHA-256, truncated to 32 chars for display

    Used for display and equality only, never for security decisions.
    """
    der = handle_or_der.public_der() if isinstance(handle_or_der, KeyHandle) else handle_or_der
    return content_digest(der, "SHA-256")[:32]


def wrap_key(public_key: KeyHandle, content_key: Union[bytes, bytearray]) -> bytes:
    return public_key.encrypt(bytes(content_key))


def unwrap_key(private_key: KeyHandle, wrapped: bytes) -> bytearray:
    """
    Recover the content key. Any failure (wrong key pair, corrupted blob)
    becomes KeyMismatch with a fixed message; the underlying cause is not
    chained so callers cannot tell padding failures apart.
    """
    try:
        return bytearray(private_key.decrypt(wrapped))
    except (ValueError, TypeError):
        pass
    raise KeyMismatch("wrapped key could not be unwrapped with this private key") from None


def encrypt_content(content_key: Union[bytes, bytearray], plaintext: bytes, cipher: str = DEFAULT_CIPHER) -> bytes:
    return get_cipher(cipher).encrypt(bytes(content_key), plaintext)


def decrypt_content(content_key: Union[bytes, bytearray], ciphertext: bytes, cipher: str = DEFAULT_CIPHER) -> bytes:
    """AEAD failures (tampered ciphertext, truncated blob) become IntegrityViolation."""
    suite = get_cipher(cipher)
    if len(content_key) != suite.key_size:
        raise IntegrityViolation("unwrapped content key has the wrong length")
    try:
        return suite.decrypt(bytes(content_key), ciphertext)
    except (InvalidTag, ValueError):
        raise IntegrityViolation("payload failed authenticated decryption") from None


def seal(
    plaintext: bytes,
    recipient: KeyHandle,
    filename: str,
    mime_type: str = "application/octet-stream",
    hash_algorithm: str = DEFAULT_HASH_ALGORITHM,
    cipher: str = DEFAULT_CIPHER,
    instructions: Optional[str] = None,
    created_at: Optional[str] = None,
) -> Envelope:
    """Encrypt `plaintext` for `recipient` under a fresh one-time content key."""
    suite = get_cipher(cipher)
    content_key = bytearray(suite.generate_key())
    try:
        ciphertext = encrypt_content(content_key, plaintext, cipher)
        wrapped = wrap_key(recipient.public_handle(), content_key)
    finally:
        wipe(content_key)

    manifest = Manifest(
        filename=filename,
        original_size=len(plaintext),
        mime_type=mime_type,
        content_hash=content_digest(plaintext, hash_algorithm),
        algorithm=hash_algorithm,
        created_at=created_at or now_ts(),
        cipher=cipher,
    )
    return Envelope(
        manifest=manifest,
        wrapped_key=wrapped,
        ciphertext=ciphertext,
        instructions=instructions if instructions is not None else default_instructions(manifest),
    )
