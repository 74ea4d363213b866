"""
storage.py - Ecosystem Persistence Adapters

One fixed row per logical collection: the ecosystem state, its last update
time, and the custom entity types. SqliteStore is the primary store;
JsonFileStore is the local fallback; FallbackStore chains the two.

Writes are not retried. A failed primary write lands in the fallback and a
failed fallback write is logged and dropped.
"""

import json
import logging
import sqlite3
import threading
import time
from pathlib import Path
from typing import Any, Callable, Dict, Optional

from ecosystem.constants import ENTITY_TYPES_KEY, STATE_KEY
from ecosystem.errors import StorageError
from ecosystem.types_state import EcosystemState
from receipts import ReceiptJournal, state_hash

logger = logging.getLogger(__name__)

__all__ = [
    "StorageAdapter",
    "SqliteStore",
    "JsonFileStore",
    "MemoryStore",
    "FallbackStore",
    "open_storage",
]

STATE_FILE = "luminous-ecosystem-state.json"
LAST_UPDATE_FILE = "luminous-ecosystem-last-update"
ENTITY_TYPES_FILE = "ecosystem-entities.json"


def _now_ms() -> int:
    return int(time.time() * 1000)


# =============================================================================
# ADAPTER INTERFACE
# =============================================================================

class StorageAdapter:
    """Persistence interface consumed by the runner and the CLI."""

    name = "abstract"

    def __init__(self, journal: Optional[ReceiptJournal] = None):
        self.journal = journal

    def _record(self, receipt_type: str, data: Dict[str, Any]) -> None:
        if self.journal is not None:
            self.journal.record(receipt_type, dict(data, store=self.name))

    def save_state(self, state: EcosystemState) -> None:
        raise NotImplementedError

    def load_state(self) -> Optional[EcosystemState]:
        raise NotImplementedError

    def get_last_update_time(self) -> int:
        """Epoch milliseconds of the last save, 0 when nothing was saved."""
        raise NotImplementedError

    def clear_saved_state(self) -> None:
        raise NotImplementedError

    def save_entity_types(self, data: Dict[str, Any]) -> None:
        raise NotImplementedError

    def load_entity_types(self) -> Optional[Dict[str, Any]]:
        raise NotImplementedError

    def close(self) -> None:
        pass


# =============================================================================
# SQLITE (primary)
# =============================================================================

class SqliteStore(StorageAdapter):
    """Tables ecosystem_state, ecosystem_update and entity_types, one row each."""

    name = "sqlite"

    def __init__(self, db_path: str = "luminous-ecosystem.db", journal: Optional[ReceiptJournal] = None):
        super().__init__(journal)
        self.db_path = db_path
        if db_path != ":memory:":
            Path(db_path).parent.mkdir(parents=True, exist_ok=True)
        self._lock = threading.Lock()
        self._conn = sqlite3.connect(db_path, check_same_thread=False)
        self._init_db()

    def _init_db(self) -> None:
        with self._lock:
            cur = self._conn.cursor()
            cur.execute(
                """
                CREATE TABLE IF NOT EXISTS ecosystem_state (
                    id TEXT PRIMARY KEY,
                    state TEXT NOT NULL,
                    state_hash TEXT NOT NULL,
                    updated_at REAL NOT NULL
                )
                """
            )
            cur.execute(
                """
                CREATE TABLE IF NOT EXISTS ecosystem_update (
                    id TEXT PRIMARY KEY,
                    last_update INTEGER NOT NULL,
                    updated_at REAL NOT NULL
                )
                """
            )
            cur.execute(
                """
                CREATE TABLE IF NOT EXISTS entity_types (
                    id TEXT PRIMARY KEY,
                    data TEXT NOT NULL,
                    updated_at REAL NOT NULL
                )
                """
            )
            self._conn.commit()

    def save_state(self, state: EcosystemState) -> None:
        data = state.to_dict()
        digest = state_hash(data)
        now = time.time()
        with self._lock:
            self._conn.execute(
                "INSERT INTO ecosystem_state(id, state, state_hash, updated_at) VALUES (?, ?, ?, ?) "
                "ON CONFLICT(id) DO UPDATE SET state=excluded.state, state_hash=excluded.state_hash, "
                "updated_at=excluded.updated_at",
                (STATE_KEY, json.dumps(data), digest, now),
            )
            self._conn.execute(
                "INSERT INTO ecosystem_update(id, last_update, updated_at) VALUES (?, ?, ?) "
                "ON CONFLICT(id) DO UPDATE SET last_update=excluded.last_update, updated_at=excluded.updated_at",
                (STATE_KEY, _now_ms(), now),
            )
            self._conn.commit()
        self._record("state_saved", {"cycle": state.cycle, "state_hash": digest})

    def load_state(self) -> Optional[EcosystemState]:
        with self._lock:
            row = self._conn.execute(
                "SELECT state, state_hash FROM ecosystem_state WHERE id = ?", (STATE_KEY,)
            ).fetchone()
        if row is None:
            return None
        data = json.loads(row[0])
        if state_hash(data) != row[1]:
            raise StorageError(f"State row {STATE_KEY!r} failed hash verification")
        state = EcosystemState.from_dict(data)
        self._record("state_loaded", {"cycle": state.cycle, "state_hash": row[1]})
        return state

    def get_last_update_time(self) -> int:
        with self._lock:
            row = self._conn.execute(
                "SELECT last_update FROM ecosystem_update WHERE id = ?", (STATE_KEY,)
            ).fetchone()
        return int(row[0]) if row else 0

    def clear_saved_state(self) -> None:
        with self._lock:
            self._conn.execute("DELETE FROM ecosystem_state WHERE id = ?", (STATE_KEY,))
            self._conn.execute("DELETE FROM ecosystem_update WHERE id = ?", (STATE_KEY,))
            self._conn.commit()

    def save_entity_types(self, data: Dict[str, Any]) -> None:
        with self._lock:
            self._conn.execute(
                "INSERT INTO entity_types(id, data, updated_at) VALUES (?, ?, ?) "
                "ON CONFLICT(id) DO UPDATE SET data=excluded.data, updated_at=excluded.updated_at",
                (ENTITY_TYPES_KEY, json.dumps(data), time.time()),
            )
            self._conn.commit()

    def load_entity_types(self) -> Optional[Dict[str, Any]]:
        with self._lock:
            row = self._conn.execute(
                "SELECT data FROM entity_types WHERE id = ?", (ENTITY_TYPES_KEY,)
            ).fetchone()
        return json.loads(row[0]) if row else None

    def close(self) -> None:
        with self._lock:
            self._conn.close()


# =============================================================================
# JSON FILES (local fallback)
# =============================================================================

class JsonFileStore(StorageAdapter):
    """Plain files in one directory, mirroring the browser-storage keys."""

    name = "json"

    def __init__(self, directory: str = ".luminous", journal: Optional[ReceiptJournal] = None):
        super().__init__(journal)
        self.directory = Path(directory)
        self._lock = threading.Lock()

    def _path(self, filename: str) -> Path:
        return self.directory / filename

    def _write(self, filename: str, content: str) -> None:
        self.directory.mkdir(parents=True, exist_ok=True)
        target = self._path(filename)
        tmp = target.with_name(target.name + ".tmp")
        tmp.write_text(content, encoding="utf-8")
        tmp.replace(target)

    def save_state(self, state: EcosystemState) -> None:
        data = state.to_dict()
        with self._lock:
            self._write(STATE_FILE, json.dumps(data))
            self._write(LAST_UPDATE_FILE, str(_now_ms()))
        self._record("state_saved", {"cycle": state.cycle, "state_hash": state_hash(data)})

    def load_state(self) -> Optional[EcosystemState]:
        path = self._path(STATE_FILE)
        with self._lock:
            if not path.exists():
                return None
            data = json.loads(path.read_text(encoding="utf-8"))
        state = EcosystemState.from_dict(data)
        self._record("state_loaded", {"cycle": state.cycle, "state_hash": state_hash(data)})
        return state

    def get_last_update_time(self) -> int:
        path = self._path(LAST_UPDATE_FILE)
        with self._lock:
            if not path.exists():
                return 0
            return int(path.read_text(encoding="utf-8").strip() or 0)

    def clear_saved_state(self) -> None:
        with self._lock:
            for filename in (STATE_FILE, LAST_UPDATE_FILE):
                self._path(filename).unlink(missing_ok=True)

    def save_entity_types(self, data: Dict[str, Any]) -> None:
        with self._lock:
            self._write(ENTITY_TYPES_FILE, json.dumps(data))

    def load_entity_types(self) -> Optional[Dict[str, Any]]:
        path = self._path(ENTITY_TYPES_FILE)
        with self._lock:
            if not path.exists():
                return None
            return json.loads(path.read_text(encoding="utf-8"))


# =============================================================================
# MEMORY
# =============================================================================

class MemoryStore(StorageAdapter):
    """In-process store. Keeps serialized copies so callers cannot alias state."""

    name = "memory"

    def __init__(self, journal: Optional[ReceiptJournal] = None):
        super().__init__(journal)
        self._state: Optional[Dict[str, Any]] = None
        self._last_update = 0
        self._entity_types: Optional[Dict[str, Any]] = None
        self.save_count = 0

    def save_state(self, state: EcosystemState) -> None:
        self._state = json.loads(json.dumps(state.to_dict()))
        self._last_update = _now_ms()
        self.save_count += 1
        self._record("state_saved", {"cycle": state.cycle, "state_hash": state_hash(self._state)})

    def load_state(self) -> Optional[EcosystemState]:
        if self._state is None:
            return None
        return EcosystemState.from_dict(self._state)

    def get_last_update_time(self) -> int:
        return self._last_update

    def clear_saved_state(self) -> None:
        self._state = None
        self._last_update = 0

    def save_entity_types(self, data: Dict[str, Any]) -> None:
        self._entity_types = json.loads(json.dumps(data))

    def load_entity_types(self) -> Optional[Dict[str, Any]]:
        return self._entity_types


# =============================================================================
# FALLBACK CHAIN
# =============================================================================

class FallbackStore(StorageAdapter):
    """
    Primary adapter with a local fallback.

    Any exception from the primary is logged and the same call is made on
    the fallback. Reads that find nothing in the primary also consult the
    fallback, since an outage may have diverted the last save there.
    """

    name = "fallback"

    def __init__(self, primary: StorageAdapter, fallback: StorageAdapter,
                 journal: Optional[ReceiptJournal] = None):
        super().__init__(journal)
        self.primary = primary
        self.fallback = fallback

    def _call(self, operation: str, args: tuple, default: Any, read: bool = False) -> Any:
        try:
            result = getattr(self.primary, operation)(*args)
            if not read or result:
                return result
        except Exception as exc:
            logger.warning("%s %s failed, using %s: %s", self.primary.name, operation, self.fallback.name, exc)
            self._record("storage_fallback", {"operation": operation, "error": str(exc)})

        try:
            result = getattr(self.fallback, operation)(*args)
        except Exception as exc:
            logger.error("%s failed on both %s and %s: %s", operation, self.primary.name, self.fallback.name, exc)
            self._record("storage_failed", {"operation": operation, "error": str(exc)})
            return default
        return result if result is not None else default

    def save_state(self, state: EcosystemState) -> None:
        self._call("save_state", (state,), None)

    def load_state(self) -> Optional[EcosystemState]:
        return self._call("load_state", (), None, read=True)

    def get_last_update_time(self) -> int:
        return self._call("get_last_update_time", (), 0, read=True)

    def clear_saved_state(self) -> None:
        # Both copies must go, or a reload would resurrect the old state
        for store in (self.primary, self.fallback):
            try:
                store.clear_saved_state()
            except Exception as exc:
                logger.warning("%s clear_saved_state failed: %s", store.name, exc)

    def save_entity_types(self, data: Dict[str, Any]) -> None:
        self._call("save_entity_types", (data,), None)

    def load_entity_types(self) -> Optional[Dict[str, Any]]:
        return self._call("load_entity_types", (), None, read=True)

    def close(self) -> None:
        self.primary.close()
        self.fallback.close()


# =============================================================================
# FACTORY
# =============================================================================

_BUILDERS: Dict[str, Callable[..., StorageAdapter]] = {
    "sqlite": lambda config, journal: FallbackStore(
        SqliteStore(config.storage_path, journal),
        JsonFileStore(config.fallback_path, journal),
        journal,
    ),
    "json": lambda config, journal: JsonFileStore(config.fallback_path, journal),
    "memory": lambda config, journal: MemoryStore(journal),
}


def open_storage(config, journal: Optional[ReceiptJournal] = None) -> StorageAdapter:
    """
    Build the adapter chain named by ``config.storage_backend``.

    Args:
        config: EcosystemConfig
        journal: Optional receipt journal shared with the runner

    Returns:
        StorageAdapter ready for use
    """
    try:
        builder = _BUILDERS[config.storage_backend]
    except KeyError:
        raise StorageError(f"Unknown storage backend: {config.storage_backend!r}") from None
    return builder(config, journal)
