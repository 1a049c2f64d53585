"""
sealdrop_core.keystore
----------------------
Client-side key lifecycle: generate, persist, load.

Key records live in a StorageProvider under the session's scope. Two schema
versions exist (see storage.models.SchemaVersion). load() reads both; when a
pair is only found under the legacy private key name it is migrated once by
writing the current name, and the legacy entry is left in place.
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import Optional

from .algorithms import get_algorithm
from .constants import DEFAULT_KEY_ALGORITHM
from .crypto import compute_pubkey_fingerprint
from .errors import MalformedKey, NoLocalKey, UnsupportedAlgorithm
from .keycodec import KeyHandle, KeyUsage, decode, encode_text
from .logger import get_logger
from .session import Session
from .storage import SCHEMA_NAMES, SchemaVersion, StorageProvider, StoredKeyRecord

log = get_logger("SealDrop.KeyStore")


@dataclass(frozen=True, eq=False)
class KeyPair:
    public_key: KeyHandle
    private_key: KeyHandle
    fingerprint: str

    @classmethod
    def from_private(cls, private_key: KeyHandle) -> "KeyPair":
        public_key = private_key.public_handle()
        return cls(public_key, private_key, compute_pubkey_fingerprint(public_key))

    @property
    def algorithm(self) -> str:
        return self.private_key.algorithm

    def public_pem(self) -> str:
        return encode_text(self.public_key)

    def private_pem(self) -> str:
        return encode_text(self.private_key)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, KeyPair):
            return NotImplemented
        return (
            self.fingerprint == other.fingerprint
            and self.public_pem() == other.public_pem()
            and self.private_pem() == other.private_pem()
        )

    __hash__ = None

    def __repr__(self) -> str:
        return f"KeyPair(algorithm={self.algorithm!r}, fingerprint={self.fingerprint!r})"


class KeyStore:
    def __init__(self, storage: StorageProvider, algorithm: str = DEFAULT_KEY_ALGORITHM):
        self.storage = storage
        self.algorithm = algorithm

    def generate(self) -> KeyPair:
        """Fresh extractable key pair. Does not persist."""
        private = KeyHandle(self.algorithm, KeyUsage.PRIVATE, get_algorithm(self.algorithm).generate())
        pair = KeyPair.from_private(private)
        self.storage.log_event("keys_generated", {"algorithm": self.algorithm, "fingerprint": pair.fingerprint})
        log.info(f"[KEYS] generated {self.algorithm} pair fpr={pair.fingerprint}")
        return pair

    def persist(self, pair: KeyPair, session: Session) -> None:
        """Replace the session's key record in one atomic write."""
        record = StoredKeyRecord(
            scope=session.scope,
            public_pem=pair.public_pem(),
            private_pem=pair.private_pem(),
            schema_version=SchemaVersion.CURRENT,
        )
        self.storage.set_items(record.scope, record.items())
        self.storage.log_event("keys_persisted", {"scope": record.scope, "fingerprint": pair.fingerprint})
        log.info(f"[KEYS] persisted scope={record.scope} fpr={pair.fingerprint}")

    def load(self, session: Session) -> Optional[KeyPair]:
        scope = session.scope
        current = SCHEMA_NAMES[SchemaVersion.CURRENT]
        legacy = SCHEMA_NAMES[SchemaVersion.LEGACY]

        # one read so a concurrent persist() is seen whole or not at all
        items = self.storage.get_items(scope, {current["public"], current["private"], legacy["private"]})
        public_pem = items.get(current["public"])
        if not public_pem:
            return None

        private_pem = items.get(current["private"])
        if private_pem:
            pair = self._pair_from(StoredKeyRecord(scope, public_pem, private_pem, SchemaVersion.CURRENT))
            if pair:
                return pair

        legacy_pem = items.get(legacy["private"])
        if legacy_pem:
            record = StoredKeyRecord(scope, public_pem, legacy_pem, SchemaVersion.LEGACY)
            pair = self._pair_from(record)
            if pair:
                self._migrate(record, pair)
                return pair

        return None

    def has_local_keys(self, session: Session) -> bool:
        return self.load(session) is not None

    def require(self, session: Session) -> KeyPair:
        pair = self.load(session)
        if pair is None:
            raise NoLocalKey(f"no usable key pair stored for {session.scope}")
        return pair

    def ensure(self, session: Session) -> KeyPair:
        """load(), or generate and persist a new pair when none is usable."""
        pair = self.load(session)
        if pair is None:
            pair = self.generate()
            self.persist(pair, session)
        return pair

    def export_private_pem(self, session: Session) -> str:
        return self.require(session).private_pem()

    # ------------------------------------------------------------------

    def _pair_from(self, record: StoredKeyRecord) -> Optional[KeyPair]:
        try:
            public = decode(record.public_pem, self.algorithm)
            private = decode(record.private_pem, self.algorithm)
        except (MalformedKey, UnsupportedAlgorithm) as e:
            log.warning(f"[KEYS] unusable {record.schema_version.name} record scope={record.scope}: {e.reason}")
            return None
        if public.usage is not KeyUsage.PUBLIC or private.usage is not KeyUsage.PRIVATE:
            log.warning(f"[KEYS] key roles swapped in record scope={record.scope}")
            return None
        if private.public_der() != public.public_der():
            log.warning(f"[KEYS] stored halves do not match scope={record.scope}")
            return None
        return KeyPair(public, private, compute_pubkey_fingerprint(public))

    def _migrate(self, legacy: StoredKeyRecord, pair: KeyPair) -> None:
        names = SCHEMA_NAMES[SchemaVersion.CURRENT]
        self.storage.set_items(legacy.scope, {names["private"]: legacy.private_pem})
        self.storage.log_event("keys_migrated", {
            "scope": legacy.scope,
            "fingerprint": pair.fingerprint,
            "from": SchemaVersion.LEGACY.name,
            "to": SchemaVersion.CURRENT.name,
        })
        log.info(f"[KEYS] migrated legacy record scope={legacy.scope} fpr={pair.fingerprint}")
