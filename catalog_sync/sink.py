"""Append-only dataset for the records a run produces."""

import json
from pathlib import Path
from typing import Any, Dict, Iterable, List

from catalog_sync.config import DATASET_PATH
from catalog_sync.logging_config import get_logger
from catalog_sync.models import ProductRecord

__all__ = ["DatasetSink", "MemorySink"]

logger = get_logger("sink")


class DatasetSink:
    """Writes records as JSON lines, appending to any existing file."""

    def __init__(self, path: str = DATASET_PATH):
        self.path = Path(path)

    def push(self, records: Iterable[ProductRecord]) -> int:
        """Append the batch. Returns the number of records written."""
        self.path.parent.mkdir(parents=True, exist_ok=True)
        written = 0
        with open(self.path, "a", encoding="utf-8") as f:
            for record in records:
                f.write(json.dumps(record.to_dict(), ensure_ascii=False) + "\n")
                written += 1
        logger.info(f"Pushed {written} records to {self.path}")
        return written

    def read(self) -> List[Dict[str, Any]]:
        """Everything pushed so far, oldest first."""
        if not self.path.exists():
            return []
        with open(self.path, "r", encoding="utf-8") as f:
            return [json.loads(line) for line in f if line.strip()]


class MemorySink:
    """Collects pushed records in memory (for library use and tests)."""

    def __init__(self) -> None:
        self.records: List[ProductRecord] = []

    def push(self, records: Iterable[ProductRecord]) -> int:
        batch = list(records)
        self.records.extend(batch)
        return len(batch)
