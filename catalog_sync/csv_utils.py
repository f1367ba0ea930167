"""CSV export of cached product records."""

import csv
import json
import os
from typing import Any, Dict, Iterable, List

from catalog_sync.models import ProductRecord

__all__ = ["record_to_row", "save_records_to_csv", "export_cache_to_csv"]

# Column order for exports; list/dict fields are JSON-encoded
CSV_FIELDS = [
    "url", "name", "brand", "articleNumber", "ean", "price", "priceExVat",
    "currency", "categories", "description", "features", "specs", "images",
    "inStock", "availableInStores", "rating", "reviewCount", "vesaSizes",
    "source", "scrapedAt",
]


def record_to_row(record: ProductRecord) -> Dict[str, Any]:
    """Flatten a record into a CSV-ready row."""
    row = record.to_dict()
    for key, value in row.items():
        if isinstance(value, (list, dict)):
            row[key] = json.dumps(value, ensure_ascii=False)
        elif value is None:
            row[key] = ""
    return row


def save_records_to_csv(records: Iterable[ProductRecord], csv_path: str) -> int:
    """Write records to ``csv_path``, replacing the file. Returns the row count."""
    rows: List[Dict[str, Any]] = [record_to_row(r) for r in records]

    os.makedirs(os.path.dirname(csv_path) or ".", exist_ok=True)
    with open(csv_path, "w", newline="", encoding="utf-8") as f:
        writer = csv.DictWriter(f, fieldnames=CSV_FIELDS, extrasaction="ignore")
        writer.writeheader()
        for row in rows:
            writer.writerow(row)
    return len(rows)


def export_cache_to_csv(db_path: str, csv_path: str) -> int:
    """Export every cached record, sorted by URL."""
    from catalog_sync.db import CacheRepository

    records = CacheRepository.open(db_path).get_all_records()
    if not records:
        print("No products to export.")
        return 0

    count = save_records_to_csv((records[url] for url in sorted(records)), csv_path)
    print(f"Exported {count} products to {csv_path}")
    return count
