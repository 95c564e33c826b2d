"""
SQLite document-store backend.

Stands in for the hosted document database of the web build: every entity
is a JSON document addressed by (collection, key), and the order counter is
a row that is incremented in place, so numbering stays atomic even with
several processes sharing one database file.

Tables
------
  documents   one row per document; id preserves insertion order
  counters    (name, field) -> integer, e.g. ("orders", "2025") -> 3
  meta        key -> text, e.g. data_version
"""
import json
import logging
import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import Iterable, Optional

from .backends import Delete, Put, StorageBackend
from .errors import PersistenceFailure

logger = logging.getLogger(__name__)

_SCHEMA = """
CREATE TABLE IF NOT EXISTS documents (
    id          INTEGER PRIMARY KEY AUTOINCREMENT,
    collection  TEXT NOT NULL,
    doc_key     TEXT NOT NULL,
    data        TEXT NOT NULL,      -- JSON body
    UNIQUE (collection, doc_key)
);

CREATE INDEX IF NOT EXISTS idx_documents_collection ON documents (collection, id);

CREATE TABLE IF NOT EXISTS counters (
    name   TEXT    NOT NULL,
    field  TEXT    NOT NULL,
    value  INTEGER NOT NULL DEFAULT 0,
    PRIMARY KEY (name, field)
);

CREATE TABLE IF NOT EXISTS meta (
    key    TEXT PRIMARY KEY,
    value  TEXT
);
"""

_UPSERT_DOCUMENT = """
INSERT INTO documents (collection, doc_key, data) VALUES (?, ?, ?)
ON CONFLICT(collection, doc_key) DO UPDATE SET data = excluded.data
"""


def _decode(raw: str, collection: str, key: str) -> dict:
    try:
        return json.loads(raw)
    except json.JSONDecodeError as exc:
        raise PersistenceFailure(f"Corrupt document {collection}/{key}: {exc}") from exc


class DocumentStoreBackend(StorageBackend):
    """Thin wrapper around an SQLite file holding JSON documents."""

    def __init__(self, db_path: Path) -> None:
        self.db_path = Path(db_path)
        try:
            self.db_path.parent.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise PersistenceFailure(f"Cannot create {self.db_path.parent}: {exc}") from exc
        self._init_schema()

    # ------------------------------------------------------------------
    # Connection management
    # ------------------------------------------------------------------

    @contextmanager
    def _conn(self):
        try:
            conn = sqlite3.connect(str(self.db_path), timeout=30)
        except sqlite3.Error as exc:
            raise PersistenceFailure(f"Cannot open document store {self.db_path}: {exc}") from exc
        conn.row_factory = sqlite3.Row
        try:
            conn.execute("PRAGMA journal_mode=WAL")
            conn.execute("PRAGMA synchronous=NORMAL")
            yield conn
            conn.commit()
        except sqlite3.Error as exc:
            conn.rollback()
            raise PersistenceFailure(f"Document store error ({self.db_path}): {exc}") from exc
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()

    def _init_schema(self) -> None:
        with self._conn() as conn:
            conn.executescript(_SCHEMA)
        logger.debug("Document store schema ready: %s", self.db_path)

    # ------------------------------------------------------------------
    # Documents
    # ------------------------------------------------------------------

    def list_documents(self, collection: str) -> list[dict]:
        with self._conn() as conn:
            rows = conn.execute(
                "SELECT doc_key, data FROM documents WHERE collection = ? ORDER BY id",
                (collection,),
            ).fetchall()
        return [_decode(r["data"], collection, r["doc_key"]) for r in rows]

    def get_document(self, collection: str, key: str) -> Optional[dict]:
        with self._conn() as conn:
            row = conn.execute(
                "SELECT data FROM documents WHERE collection = ? AND doc_key = ?",
                (collection, key),
            ).fetchone()
        return _decode(row["data"], collection, key) if row else None

    def put_document(self, collection: str, key: str, data: dict) -> None:
        body = self._encode(data)
        with self._conn() as conn:
            conn.execute(_UPSERT_DOCUMENT, (collection, key, body))
        logger.debug("Document stored: %s/%s", collection, key)

    def delete_document(self, collection: str, key: str) -> bool:
        with self._conn() as conn:
            conn.execute(
                "DELETE FROM documents WHERE collection = ? AND doc_key = ?",
                (collection, key),
            )
            return conn.execute("SELECT changes()").fetchone()[0] > 0

    def write_batch(
        self,
        puts: Iterable[Put] = (),
        deletes: Iterable[Delete] = (),
        counters: Optional[dict[str, dict[str, int]]] = None,
    ) -> None:
        # Encode first so a bad document fails before the transaction opens
        encoded = [(c, k, self._encode(d)) for c, k, d in puts]
        with self._conn() as conn:
            conn.executemany(_UPSERT_DOCUMENT, encoded)
            conn.executemany(
                "DELETE FROM documents WHERE collection = ? AND doc_key = ?",
                list(deletes),
            )
            for name, values in (counters or {}).items():
                conn.execute("DELETE FROM counters WHERE name = ?", (name,))
                conn.executemany(
                    "INSERT INTO counters (name, field, value) VALUES (?, ?, ?)",
                    [(name, str(k), int(v)) for k, v in values.items()],
                )
        logger.debug("Batch committed: %d puts", len(encoded))

    @staticmethod
    def _encode(data: dict) -> str:
        try:
            return json.dumps(data, ensure_ascii=False)
        except (TypeError, ValueError) as exc:
            raise PersistenceFailure(f"Document is not JSON-serialisable: {exc}") from exc

    # ------------------------------------------------------------------
    # Counters
    # ------------------------------------------------------------------

    def read_counter(self, name: str) -> dict[str, int]:
        with self._conn() as conn:
            rows = conn.execute(
                "SELECT field, value FROM counters WHERE name = ?", (name,)
            ).fetchall()
        return {r["field"]: int(r["value"]) for r in rows}

    def increment_counter(self, name: str, field: str, minimum: int = 0) -> int:
        # The upsert takes the write lock, so the read below sees our own
        # increment and nobody else's.
        with self._conn() as conn:
            conn.execute(
                """
                INSERT INTO counters (name, field, value) VALUES (?, ?, ? + 1)
                ON CONFLICT(name, field) DO UPDATE SET value = MAX(value, ?) + 1
                """,
                (name, field, int(minimum), int(minimum)),
            )
            value = conn.execute(
                "SELECT value FROM counters WHERE name = ? AND field = ?",
                (name, field),
            ).fetchone()[0]
        return int(value)

    # ------------------------------------------------------------------
    # Meta / maintenance
    # ------------------------------------------------------------------

    def get_meta(self, key: str) -> Optional[str]:
        with self._conn() as conn:
            row = conn.execute("SELECT value FROM meta WHERE key = ?", (key,)).fetchone()
        return row["value"] if row else None

    def set_meta(self, key: str, value: str) -> None:
        with self._conn() as conn:
            conn.execute(
                "INSERT INTO meta (key, value) VALUES (?, ?) "
                "ON CONFLICT(key) DO UPDATE SET value = excluded.value",
                (key, value),
            )

    def clear(self) -> None:
        with self._conn() as conn:
            conn.execute("DELETE FROM documents")
            conn.execute("DELETE FROM counters")
        logger.info("Document store cleared: %s", self.db_path)

    def describe(self) -> dict:
        return {
            "backend": "document",
            "path": str(self.db_path),
            "exists": self.db_path.exists(),
        }
