# sealdrop_core/storage/models.py
from __future__ import annotations
from dataclasses import dataclass
from enum import IntEnum
from typing import Dict

from sealdrop_core.constants import (
    CURRENT_PUBLIC_KEY_NAME, CURRENT_PRIVATE_KEY_NAME, LEGACY_PRIVATE_KEY_NAME,
)


class SchemaVersion(IntEnum):
    LEGACY = 1    # private key under "user_private_key"
    CURRENT = 2   # "myPublicKey" / "myPrivateKey"


# Both schemas share the public key name; only the private key moved.
SCHEMA_NAMES: Dict[SchemaVersion, Dict[str, str]] = {
    SchemaVersion.LEGACY: {"public": CURRENT_PUBLIC_KEY_NAME, "private": LEGACY_PRIVATE_KEY_NAME},
    SchemaVersion.CURRENT: {"public": CURRENT_PUBLIC_KEY_NAME, "private": CURRENT_PRIVATE_KEY_NAME},
}


@dataclass
class StoredKeyRecord:
    """
    Durable form of a user's key pair inside one storage scope.

    `schema_version` records which schema the record was read from; records
    are always written as SchemaVersion.CURRENT.
    """
    scope: str
    public_pem: str
    private_pem: str
    schema_version: SchemaVersion = SchemaVersion.CURRENT

    def items(self) -> Dict[str, str]:
        names = SCHEMA_NAMES[self.schema_version]
        return {names["public"]: self.public_pem, names["private"]: self.private_pem}

    def __repr__(self) -> str:
        # never print key material
        return f"StoredKeyRecord(scope={self.scope!r}, schema_version={self.schema_version.name})"
