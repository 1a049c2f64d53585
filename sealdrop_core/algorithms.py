"""
sealdrop_core.algorithms
------------------------
Pluggable primitive suites.

- Asymmetric algorithms wrap/unwrap one-time content keys. RSA-OAEP
  (2048-bit modulus, SHA-256 for OAEP and MGF1) is the registered default.
- Symmetric ciphers encrypt the file payload. AES-256-GCM with a 96-bit
  random nonce is the registered default; its wire form is
  nonce || ciphertext || tag.

New suites are added with register_algorithm() / register_cipher().
"""

from __future__ import annotations
from typing import Any, Dict
import os

from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.asymmetric import rsa, padding
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

from .constants import DEFAULT_KEY_ALGORITHM, DEFAULT_RSA_BITS, DEFAULT_CIPHER
from .errors import UnsupportedAlgorithm


class AsymmetricAlgorithm:
    name: str = "base"

    def generate(self) -> Any:
        """Return a new private key object; the public half derives from it."""
        raise NotImplementedError

    def accepts_public(self, key: Any) -> bool:
        raise NotImplementedError

    def accepts_private(self, key: Any) -> bool:
        raise NotImplementedError

    def encrypt(self, public_key: Any, data: bytes) -> bytes:
        raise NotImplementedError

    def decrypt(self, private_key: Any, data: bytes) -> bytes:
        raise NotImplementedError


class RsaOaep(AsymmetricAlgorithm):
    name = "RSA-OAEP"

    def __init__(self, bits: int = DEFAULT_RSA_BITS, public_exponent: int = 65537):
        self.bits = bits
        self.public_exponent = public_exponent

    @staticmethod
    def _padding() -> padding.OAEP:
        return padding.OAEP(
            mgf=padding.MGF1(algorithm=hashes.SHA256()),
            algorithm=hashes.SHA256(),
            label=None,
        )

    def generate(self):
        return rsa.generate_private_key(public_exponent=self.public_exponent, key_size=self.bits)

    def accepts_public(self, key) -> bool:
        return isinstance(key, rsa.RSAPublicKey)

    def accepts_private(self, key) -> bool:
        return isinstance(key, rsa.RSAPrivateKey)

    def encrypt(self, public_key, data: bytes) -> bytes:
        return public_key.encrypt(data, self._padding())

    def decrypt(self, private_key, data: bytes) -> bytes:
        return private_key.decrypt(data, self._padding())


class SymmetricCipher:
    name: str = "base"
    key_size: int = 0

    def generate_key(self) -> bytes:
        raise NotImplementedError

    def encrypt(self, key: bytes, plaintext: bytes) -> bytes:
        raise NotImplementedError

    def decrypt(self, key: bytes, blob: bytes) -> bytes:
        raise NotImplementedError


class Aes256Gcm(SymmetricCipher):
    name = "AES-256-GCM"
    key_size = 32
    nonce_size = 12
    tag_size = 16

    def generate_key(self) -> bytes:
        return AESGCM.generate_key(bit_length=256)

    def encrypt(self, key: bytes, plaintext: bytes) -> bytes:
        nonce = os.urandom(self.nonce_size)
        return nonce + AESGCM(key).encrypt(nonce, plaintext, None)

    def decrypt(self, key: bytes, blob: bytes) -> bytes:
        if len(blob) < self.nonce_size + self.tag_size:
            raise ValueError("ciphertext too short")
        nonce, ct = blob[:self.nonce_size], blob[self.nonce_size:]
        return AESGCM(key).decrypt(nonce, ct, None)


_ALGORITHMS: Dict[str, AsymmetricAlgorithm] = {}
_CIPHERS: Dict[str, SymmetricCipher] = {}


def register_algorithm(alg: AsymmetricAlgorithm) -> None:
    _ALGORITHMS[alg.name] = alg


def register_cipher(cipher: SymmetricCipher) -> None:
    _CIPHERS[cipher.name] = cipher


def get_algorithm(name: str = DEFAULT_KEY_ALGORITHM) -> AsymmetricAlgorithm:
    try:
        return _ALGORITHMS[name]
    except KeyError:
        raise UnsupportedAlgorithm(f"asymmetric algorithm not supported: {name}") from None


def get_cipher(name: str = DEFAULT_CIPHER) -> SymmetricCipher:
    try:
        return _CIPHERS[name]
    except KeyError:
        raise UnsupportedAlgorithm(f"cipher not supported: {name}") from None


register_algorithm(RsaOaep())
register_cipher(Aes256Gcm())
