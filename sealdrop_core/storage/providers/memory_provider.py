from typing import Any, Dict, Iterable, Optional
import threading

from sealdrop_core.storage.provider import StorageProvider


class InMemoryStorage(StorageProvider):
    def __init__(self):
        self.scopes: Dict[str, Dict[str, str]] = {}
        self.audit = []
        self._lock = threading.Lock()

    def get_items(self, scope: str, names: Iterable[str]) -> Dict[str, Optional[str]]:
        snapshot = self.scopes.get(scope, {})
        return {n: snapshot.get(n) for n in names}

    def set_items(self, scope: str, items: Dict[str, str]):
        # copy-and-swap so readers hold either the old or the new mapping
        with self._lock:
            updated = dict(self.scopes.get(scope, {}))
            updated.update(items)
            self.scopes[scope] = updated

    def remove_items(self, scope: str, names: Iterable[str]):
        with self._lock:
            updated = dict(self.scopes.get(scope, {}))
            for n in names:
                updated.pop(n, None)
            self.scopes[scope] = updated

    # audit
    def log_event(self, event_type: str, payload: Dict[str, Any]):
        self.audit.append((event_type, payload))

    def close(self):
        pass
