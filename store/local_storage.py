"""
Local key-value storage backend.

The whole state lives in one JSON file, the same shape the browser build
kept under its "purchase_orders_system" local-storage key. Every write
rewrites the file through a temp file + os.replace, so a crash leaves
either the old or the new state on disk, never half of one.
"""
import copy
import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Iterable, Optional

from .backends import COLLECTIONS, Delete, Put, StorageBackend
from .errors import PersistenceFailure

logger = logging.getLogger(__name__)

STORAGE_KEY = "purchase_orders_system"


def _empty_state() -> dict:
    return {
        "collections": {name: {} for name in COLLECTIONS},
        "counters": {},
        "meta": {},
    }


class LocalStorageBackend(StorageBackend):
    """JSON file backend. The file is read once; writes go through to disk."""

    def __init__(self, path: Path) -> None:
        self.path = Path(path)
        self._state = self._load()

    # ------------------------------------------------------------------
    # File handling
    # ------------------------------------------------------------------

    def _load(self) -> dict:
        if not self.path.exists():
            logger.debug("Local storage file not found, starting empty: %s", self.path)
            return _empty_state()
        try:
            with open(self.path, encoding="utf-8") as f:
                raw = json.load(f)
        except (OSError, json.JSONDecodeError) as exc:
            raise PersistenceFailure(f"Failed to read local storage {self.path}: {exc}") from exc

        state = raw.get(STORAGE_KEY) if isinstance(raw, dict) else None
        if not isinstance(state, dict):
            raise PersistenceFailure(f"Local storage {self.path} has no {STORAGE_KEY!r} entry")

        base = _empty_state()
        base["collections"].update(state.get("collections") or {})
        base["counters"] = state.get("counters") or {}
        base["meta"] = state.get("meta") or {}
        return base

    def _commit(self, new_state: dict) -> None:
        """Write new_state to disk, then make it the live state."""
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(
                prefix=f".{self.path.name}.", suffix=".tmp", dir=str(self.path.parent)
            )
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as f:
                    json.dump({STORAGE_KEY: new_state}, f, ensure_ascii=False)
                    f.flush()
                    os.fsync(f.fileno())
                os.replace(tmp_name, self.path)
            except BaseException:
                if os.path.exists(tmp_name):
                    os.unlink(tmp_name)
                raise
        except (OSError, TypeError, ValueError) as exc:
            raise PersistenceFailure(f"Failed to write local storage {self.path}: {exc}") from exc
        self._state = new_state

    def _draft(self) -> dict:
        return copy.deepcopy(self._state)

    # ------------------------------------------------------------------
    # Documents
    # ------------------------------------------------------------------

    def list_documents(self, collection: str) -> list[dict]:
        docs = self._state["collections"].get(collection, {})
        return [copy.deepcopy(d) for d in docs.values()]

    def get_document(self, collection: str, key: str) -> Optional[dict]:
        doc = self._state["collections"].get(collection, {}).get(key)
        return copy.deepcopy(doc) if doc is not None else None

    def put_document(self, collection: str, key: str, data: dict) -> None:
        self.write_batch(puts=[(collection, key, data)])

    def delete_document(self, collection: str, key: str) -> bool:
        if key not in self._state["collections"].get(collection, {}):
            return False
        self.write_batch(deletes=[(collection, key)])
        return True

    def write_batch(
        self,
        puts: Iterable[Put] = (),
        deletes: Iterable[Delete] = (),
        counters: Optional[dict[str, dict[str, int]]] = None,
    ) -> None:
        draft = self._draft()
        cols = draft["collections"]
        for collection, key, data in puts:
            cols.setdefault(collection, {})[key] = copy.deepcopy(data)
        for collection, key in deletes:
            cols.setdefault(collection, {}).pop(key, None)
        for name, values in (counters or {}).items():
            draft["counters"][name] = {str(k): int(v) for k, v in values.items()}
        self._commit(draft)

    # ------------------------------------------------------------------
    # Counters
    # ------------------------------------------------------------------

    def read_counter(self, name: str) -> dict[str, int]:
        return dict(self._state["counters"].get(name, {}))

    def increment_counter(self, name: str, field: str, minimum: int = 0) -> int:
        draft = self._draft()
        counter = draft["counters"].setdefault(name, {})
        value = max(int(counter.get(field, 0)), minimum) + 1
        counter[field] = value
        self._commit(draft)
        return value

    # ------------------------------------------------------------------
    # Meta / maintenance
    # ------------------------------------------------------------------

    def get_meta(self, key: str) -> Optional[str]:
        return self._state["meta"].get(key)

    def set_meta(self, key: str, value: str) -> None:
        draft = self._draft()
        draft["meta"][key] = value
        self._commit(draft)

    def clear(self) -> None:
        draft = _empty_state()
        draft["meta"] = dict(self._state["meta"])
        self._commit(draft)
        logger.info("Local storage cleared: %s", self.path)

    def describe(self) -> dict:
        return {
            "backend": "local",
            "path": str(self.path),
            "exists": self.path.exists(),
        }
