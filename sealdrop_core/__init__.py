"""
SealDrop Core Package
=====================
Client-side envelope encryption for one-to-one file transfer through an
untrusted relay.

Provides:
- KeyCodec: PEM-style text <-> key handles (sealdrop_core.keycodec)
- KeyStore: key pair generation and scoped durable storage with legacy
  schema fallback (sealdrop_core.keystore, sealdrop_core.storage)
- Envelope archive build/parse (sealdrop_core.envelope)
- Integrity checks (sealdrop_core.integrity)
- DecryptionPipeline with remote-assisted and local strategies
  (sealdrop_core.pipeline)
"""

from .envelope import Envelope, Manifest, build, parse
from .errors import (
    SealDropError, MalformedKey, UnsupportedAlgorithm, MalformedEnvelope, KeyMismatch,
    IntegrityViolation, RemoteDecryptFailed, RemoteRequestFailed, NetworkFailure,
    NoLocalKey, AttemptCancelled,
)
from .integrity import SignatureState, verify_hash, verify_signature
from .keycodec import EncodedKey, KeyHandle, KeyUsage, decode, encode
from .keystore import KeyPair, KeyStore
from .metadata import PackageMetadata, UploadReceipt
from .pipeline import AttemptState, DecryptionPipeline, DecryptResult, LocalStrategy, RemoteStrategy
from .session import Session

__version__ = "0.1.0"
