"""
sealdrop_core.utils
-------------------
Small helpers for base64, timestamps, identifiers and canonical JSON.
Canonical JSON keeps manifests byte-stable so archives are reproducible.
"""

from __future__ import annotations
import base64, json, time, uuid
from typing import Any, Dict

def b64e(b: bytes) -> str:
    return base64.b64encode(b).decode("ascii")

def b64d(s: str) -> bytes:
    # strict: anything outside the base64 alphabet is an error
    return base64.b64decode(s.encode("ascii"), validate=True)

def now_ts() -> str:
    # RFC3339 / ISO 8601 in UTC, second precision
    return time.strftime("%Y-%m-%dT%H:%M:%SZ", time.gmtime())

def new_id() -> str:
    return uuid.uuid4().hex

def canonical_json(obj: Dict[str, Any]) -> bytes:
    return json.dumps(obj, separators=(",", ":"), sort_keys=True, ensure_ascii=False).encode("utf-8")

def wipe(buf: bytearray) -> None:
    """Overwrite a mutable buffer in place."""
    for i in range(len(buf)):
        buf[i] = 0
