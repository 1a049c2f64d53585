# sealdrop_core/storage/provider.py
from __future__ import annotations
from typing import Any, Dict, Iterable, Optional


class StorageProvider:
    """
    Scoped string key/value store for durable client state.

    set_items() must apply all of its items atomically: a concurrent
    get_items() sees either none or all of them.
    """
    def get_items(self, scope: str, names: Iterable[str]) -> Dict[str, Optional[str]]: ...
    def set_items(self, scope: str, items: Dict[str, str]) -> None: ...
    def remove_items(self, scope: str, names: Iterable[str]) -> None: ...
    def log_event(self, event_type: str, payload: Dict[str, Any]) -> None: ...
    def close(self) -> None: ...
