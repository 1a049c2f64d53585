from __future__ import annotations
from typing import Optional


class SealDropError(Exception):
    """Base class. `reason` is a stable code callers can switch on."""
    reason: str = "error"

    def __init__(self, message: str = ""):
        super().__init__(message or self.reason)


class MalformedKey(SealDropError):
    reason = "malformed_key"


class UnsupportedAlgorithm(SealDropError):
    reason = "unsupported_algorithm"


class MalformedEnvelope(SealDropError):
    reason = "malformed_envelope"


class KeyMismatch(SealDropError):
    reason = "key_mismatch"


class IntegrityViolation(SealDropError):
    reason = "integrity_violation"


class NoLocalKey(SealDropError):
    reason = "no_local_key"


class NetworkFailure(SealDropError):
    reason = "network_failure"


class AttemptCancelled(SealDropError):
    reason = "cancelled"


class RemoteError(SealDropError):
    """Non-success answer from the transfer service."""
    reason = "remote_error"

    def __init__(self, message: str = "", status: Optional[int] = None, server_reason: Optional[str] = None):
        self.status = status
        self.server_reason = server_reason
        super().__init__(message)


class RemoteDecryptFailed(RemoteError):
    reason = "remote_decrypt_failed"


class RemoteRequestFailed(RemoteError):
    reason = "remote_request_failed"


# Failures that point at a wrong key or tampering; never retried
TERMINAL_ERRORS = (KeyMismatch, IntegrityViolation, MalformedEnvelope)
# Failures the caller may recover from (generate keys, retry the attempt)
RECOVERABLE_ERRORS = (NoLocalKey, NetworkFailure)
