from __future__ import annotations
from typing import Any, Dict, Iterable, List, Optional
import json, sqlite3, os, threading

from sealdrop_core.storage.provider import StorageProvider
from sealdrop_core.utils import now_ts


class SQLiteStorage(StorageProvider):
    def __init__(self, path="db/sealdrop_keys.db"):
        # If no directory, default to current working directory
        dir_path = os.path.dirname(path) or "."
        os.makedirs(dir_path, exist_ok=True)
        self.db = sqlite3.connect(path, check_same_thread=False)
        self._lock = threading.Lock()

        self._init()

    def _init(self) -> None:
        c = self.db.cursor()
        c.execute("""CREATE TABLE IF NOT EXISTS key_items(
            scope TEXT NOT NULL,
            name TEXT NOT NULL,
            value TEXT NOT NULL,
            updated_at TEXT NOT NULL,
            PRIMARY KEY (scope, name)
        )""")
        c.execute("""CREATE TABLE IF NOT EXISTS audit(
            ts TEXT,
            event_type TEXT,
            payload TEXT
        )""")
        self.db.commit()

    def get_items(self, scope: str, names: Iterable[str]) -> Dict[str, Optional[str]]:
        names = list(names)
        if not names:
            return {}
        placeholders = ", ".join(["?"] * len(names))
        with self._lock:
            cur = self.db.execute(
                f"SELECT name, value FROM key_items WHERE scope=? AND name IN ({placeholders})",
                (scope, *names),
            )
            found = dict(cur.fetchall())
        return {n: found.get(n) for n in names}

    def set_items(self, scope: str, items: Dict[str, str]) -> None:
        ts = now_ts()
        rows = [(scope, name, value, ts) for name, value in items.items()]
        # one transaction: commit on success, rollback on error
        with self._lock, self.db:
            self.db.executemany(
                "INSERT INTO key_items(scope,name,value,updated_at) VALUES(?,?,?,?) "
                "ON CONFLICT(scope,name) DO UPDATE SET value=excluded.value, updated_at=excluded.updated_at",
                rows,
            )

    def remove_items(self, scope: str, names: Iterable[str]) -> None:
        with self._lock, self.db:
            self.db.executemany(
                "DELETE FROM key_items WHERE scope=? AND name=?",
                [(scope, n) for n in names],
            )

    def log_event(self, event_type: str, payload: Dict[str, Any]) -> None:
        with self._lock, self.db:
            self.db.execute("INSERT INTO audit(ts,event_type,payload) VALUES(?,?,?)",
                            (now_ts(), event_type, json.dumps(payload, separators=(",", ":"), sort_keys=True)))

    def list_events(self, event_type: Optional[str] = None) -> List[Dict[str, Any]]:
        sql = "SELECT ts, event_type, payload FROM audit"
        params: tuple = ()
        if event_type:
            sql += " WHERE event_type=?"
            params = (event_type,)
        with self._lock:
            rows = self.db.execute(sql + " ORDER BY rowid", params).fetchall()
        return [{"ts": ts, "event_type": et, "payload": json.loads(p)} for ts, et, p in rows]

    def close(self):
        self.db.close()
