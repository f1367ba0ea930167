"""SQLite-backed key-value store and the product cache built on it.

The cache keeps exactly two values: the URL -> record mapping under
``CACHE_KEY`` and the last run's metadata under ``METADATA_KEY``.
``CacheRepository`` is the typed view the rest of the package uses.
Storage errors are not caught here; a broken cache should stop the run.
"""

import json
import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Dict, Generator, Iterable, Optional, Set

from catalog_sync.config import CACHE_KEY, DB_PATH, METADATA_KEY
from catalog_sync.logging_config import get_logger, log_sync_event
from catalog_sync.models import CacheMetadata, ProductRecord, utc_now_iso

__all__ = [
    "get_connection",
    "init_db",
    "KeyValueStore",
    "CacheRepository",
]

logger = get_logger("db")


@contextmanager
def get_connection(db_path: str = DB_PATH) -> Generator[sqlite3.Connection, None, None]:
    """Context manager for database connections."""
    Path(db_path).parent.mkdir(parents=True, exist_ok=True)

    conn = sqlite3.connect(db_path)
    conn.row_factory = sqlite3.Row
    try:
        yield conn
    finally:
        conn.close()


def init_db(db_path: str = DB_PATH) -> None:
    """Initialize the database schema."""
    with get_connection(db_path) as conn:
        conn.execute("""
            CREATE TABLE IF NOT EXISTS kv_store (
                key TEXT PRIMARY KEY,
                value TEXT NOT NULL,
                updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
            )
        """)
        conn.commit()


class KeyValueStore:
    """JSON values stored by string key."""

    def __init__(self, db_path: str = DB_PATH):
        self.db_path = db_path
        init_db(db_path)

    def get(self, key: str) -> Optional[Any]:
        with get_connection(self.db_path) as conn:
            row = conn.execute("SELECT value FROM kv_store WHERE key = ?", (key,)).fetchone()
        if row is None:
            return None
        return json.loads(row["value"])

    def set(self, key: str, value: Any) -> None:
        payload = json.dumps(value, ensure_ascii=False)
        with get_connection(self.db_path) as conn:
            conn.execute("""
                INSERT INTO kv_store (key, value, updated_at)
                VALUES (?, ?, CURRENT_TIMESTAMP)
                ON CONFLICT(key) DO UPDATE SET
                    value = excluded.value,
                    updated_at = CURRENT_TIMESTAMP
            """, (key, payload))
            conn.commit()


class CacheRepository:
    """Product cache keyed by URL, with last-write-wins merging."""

    def __init__(
        self,
        store: Any,
        cache_key: str = CACHE_KEY,
        metadata_key: str = METADATA_KEY,
    ):
        self.store = store
        self.cache_key = cache_key
        self.metadata_key = metadata_key

    @classmethod
    def open(cls, db_path: str = DB_PATH) -> "CacheRepository":
        return cls(KeyValueStore(db_path))

    def _load_mapping(self) -> Dict[str, Dict[str, Any]]:
        return self.store.get(self.cache_key) or {}

    def get_all_records(self) -> Dict[str, ProductRecord]:
        """The whole cache as URL -> ProductRecord."""
        return {
            url: ProductRecord.from_dict(data)
            for url, data in self._load_mapping().items()
        }

    def get_existing_urls(self) -> Set[str]:
        return set(self._load_mapping().keys())

    def get_metadata(self) -> Optional[CacheMetadata]:
        data = self.store.get(self.metadata_key)
        return CacheMetadata.from_dict(data) if data else None

    def count(self) -> int:
        return len(self._load_mapping())

    def merge(self, records: Iterable[ProductRecord]) -> CacheMetadata:
        """Insert or overwrite each record by URL, then write a metadata snapshot.

        Later records in the batch win over earlier ones with the same URL,
        and every incoming record wins over what was cached.
        """
        mapping = self._load_mapping()
        batch = list(records)
        for record in batch:
            mapping[record.url] = record.to_dict()

        self.store.set(self.cache_key, mapping)
        metadata = CacheMetadata(
            last_updated=utc_now_iso(),
            total_products=len(mapping),
            last_run_scraped=len(batch),
        )
        self.store.set(self.metadata_key, metadata.to_dict())

        logger.info(f"Cache updated: {len(batch)} records merged, {len(mapping)} total")
        log_sync_event("cache_merged", {
            "merged": len(batch),
            "total_products": len(mapping),
        })
        return metadata

    def clear(self) -> CacheMetadata:
        """Empty the cache and reset the metadata snapshot."""
        self.store.set(self.cache_key, {})
        metadata = CacheMetadata(last_updated=utc_now_iso(), total_products=0, last_run_scraped=0)
        self.store.set(self.metadata_key, metadata.to_dict())
        logger.info("Cache cleared")
        return metadata
