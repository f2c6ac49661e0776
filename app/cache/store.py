"""
SQLite storage layer for cached catalog listings.

Documents are stored as JSON keyed by (collection, doc_id). Writes either
replace a document wholesale or merge top-level fields into it. There are
no transactions across collections.
"""
import sqlite3
import json
import logging
from pathlib import Path
from typing import Optional, List, Dict, Any
from datetime import datetime
from contextlib import contextmanager

from .core import CacheEntry, now_ms

logger = logging.getLogger("cache.store")

# Collection holding the public listing caches
PUBLIC_COLLECTION = "public"


SCHEMA = """
CREATE TABLE IF NOT EXISTS documents (
    collection TEXT NOT NULL,
    doc_id TEXT NOT NULL,
    data TEXT NOT NULL,
    updated_at TEXT NOT NULL,
    PRIMARY KEY (collection, doc_id)
);

CREATE INDEX IF NOT EXISTS idx_documents_collection ON documents(collection);
"""


def _find_null_field(value: Any, path: str = "") -> Optional[str]:
    """Return the path of the first None value in a document, if any."""
    if value is None:
        return path or "<root>"
    if isinstance(value, dict):
        for k, v in value.items():
            found = _find_null_field(v, f"{path}.{k}" if path else str(k))
            if found:
                return found
    elif isinstance(value, list):
        for i, v in enumerate(value):
            found = _find_null_field(v, f"{path}[{i}]")
            if found:
                return found
    return None


class DocumentStore:
    """
    SQLite-based keyed document store.

    Supports:
    - Reading a whole collection or a single document
    - Writing a document (replace or merge)
    - Deleting a document
    - Batched writes within one collection

    Documents must not contain None-valued fields; absent values are
    omitted by the writer.
    """

    def __init__(self, db_path: Path):
        self.db_path = db_path
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._init_db()

    def _init_db(self):
        """Initialize database with schema."""
        with self._get_connection() as conn:
            conn.executescript(SCHEMA)
            conn.commit()

    @contextmanager
    def _get_connection(self):
        """Get a database connection."""
        conn = sqlite3.connect(str(self.db_path))
        conn.row_factory = sqlite3.Row
        try:
            yield conn
        finally:
            conn.close()

    def _encode(self, collection: str, doc_id: str, data: Dict[str, Any]) -> str:
        null_field = _find_null_field(data)
        if null_field:
            raise ValueError(
                f"Document {collection}/{doc_id} has a null value at '{null_field}'"
            )
        return json.dumps(data)

    def read_collection(self, collection: str) -> Dict[str, Dict[str, Any]]:
        """Read every document in a collection, keyed by document ID."""
        with self._get_connection() as conn:
            cursor = conn.execute(
                "SELECT doc_id, data FROM documents WHERE collection = ?",
                (collection,),
            )
            return {row["doc_id"]: json.loads(row["data"]) for row in cursor.fetchall()}

    def read_document(self, collection: str, doc_id: str) -> Optional[Dict[str, Any]]:
        """Read a single document, or None if it does not exist."""
        with self._get_connection() as conn:
            cursor = conn.execute(
                "SELECT data FROM documents WHERE collection = ? AND doc_id = ?",
                (collection, doc_id),
            )
            row = cursor.fetchone()
            if row is None:
                return None
            return json.loads(row["data"])

    def write_document(
        self,
        collection: str,
        doc_id: str,
        data: Dict[str, Any],
        merge: bool = False,
    ) -> None:
        """
        Write a document.

        Args:
            collection: Collection name
            doc_id: Document ID
            data: Document body
            merge: Merge top-level fields into an existing document
                   instead of replacing it
        """
        with self._get_connection() as conn:
            if merge:
                cursor = conn.execute(
                    "SELECT data FROM documents WHERE collection = ? AND doc_id = ?",
                    (collection, doc_id),
                )
                row = cursor.fetchone()
                if row is not None:
                    data = {**json.loads(row["data"]), **data}

            conn.execute(
                """
                INSERT OR REPLACE INTO documents (collection, doc_id, data, updated_at)
                VALUES (?, ?, ?, ?)
                """,
                (
                    collection,
                    doc_id,
                    self._encode(collection, doc_id, data),
                    datetime.utcnow().isoformat() + "Z",
                ),
            )
            conn.commit()

    def delete_document(self, collection: str, doc_id: str) -> bool:
        """
        Delete a document.

        Returns:
            True if the document existed
        """
        with self._get_connection() as conn:
            cursor = conn.execute(
                "DELETE FROM documents WHERE collection = ? AND doc_id = ?",
                (collection, doc_id),
            )
            conn.commit()
            return cursor.rowcount > 0

    def batch_write(self, collection: str, documents: Dict[str, Dict[str, Any]]) -> int:
        """
        Replace several documents of one collection in a single commit.

        Returns:
            Number of documents written
        """
        now = datetime.utcnow().isoformat() + "Z"
        rows = [
            (collection, doc_id, self._encode(collection, doc_id, data), now)
            for doc_id, data in documents.items()
        ]
        with self._get_connection() as conn:
            conn.executemany(
                """
                INSERT OR REPLACE INTO documents (collection, doc_id, data, updated_at)
                VALUES (?, ?, ?, ?)
                """,
                rows,
            )
            conn.commit()
        return len(rows)


class CacheStore:
    """
    Cache entry repository over the public collection of a DocumentStore.
    """

    def __init__(self, documents: DocumentStore, collection: str = PUBLIC_COLLECTION):
        self._documents = documents
        self._collection = collection

    def read_entry(self, key: str) -> Optional[CacheEntry]:
        """Read one cache entry, items included."""
        doc = self._documents.read_document(self._collection, key)
        if doc is None:
            return None
        return CacheEntry.from_document(key, doc)

    def read_last_updated(self) -> Dict[str, int]:
        """
        Read lastUpdated for every stored cache entry.

        A document without lastUpdated is reported as 0.
        """
        docs = self._documents.read_collection(self._collection)
        return {key: doc.get("lastUpdated") or 0 for key, doc in docs.items()}

    def write_entry(
        self,
        key: str,
        items: List[Dict[str, Any]],
        ttl_ms: int,
        now: Optional[int] = None,
    ) -> CacheEntry:
        """Overwrite a cache entry with a fresh item set."""
        if now is None:
            now = now_ms()
        entry = CacheEntry(
            key=key,
            items=items,
            last_updated=now,
            expires_at=now + ttl_ms,
        )
        self._documents.write_document(self._collection, key, entry.to_document())
        logger.info(f"Wrote cache entry {key} ({len(items)} items)")
        return entry

    def delete_entry(self, key: str) -> bool:
        """Delete a cache entry. Not used by the scheduler."""
        deleted = self._documents.delete_document(self._collection, key)
        if deleted:
            logger.info(f"Deleted cache entry {key}")
        return deleted
