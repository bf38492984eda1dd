"""In-memory engagement storage for testing and local development."""

import copy
import threading
from typing import Any, Dict, List, Optional

from homexpert.types import VersionConflictError

from .base import ALL_TABLES, StoredRecord


class InMemoryEngagementStorage:
    """Thread-safe dict-backed storage.

    Payloads are deep-copied on the way in and out so callers can never
    mutate stored state without going through compare-and-set.
    """

    def __init__(self):
        self._tables: Dict[str, Dict[str, StoredRecord]] = {t: {} for t in ALL_TABLES}
        self._guard = threading.Lock()

    def _table(self, table: str) -> Dict[str, StoredRecord]:
        if table not in self._tables:
            raise ValueError(f"Unknown table: {table}")
        return self._tables[table]

    def get(self, table: str, key: str) -> Optional[StoredRecord]:
        with self._guard:
            record = self._table(table).get(key)
            return copy.deepcopy(record) if record else None

    def insert_if_absent(self, table: str, key: str, data: Dict[str, Any]) -> bool:
        with self._guard:
            rows = self._table(table)
            if key in rows:
                return False
            rows[key] = StoredRecord(key=key, data=copy.deepcopy(data), version=1)
            return True

    def put_if_version_matches(
        self, table: str, key: str, data: Dict[str, Any], expected_version: int
    ) -> int:
        with self._guard:
            rows = self._table(table)
            current = rows.get(key)
            actual = current.version if current else -1
            if actual != expected_version:
                raise VersionConflictError(table, key, expected_version, actual)
            rows[key] = StoredRecord(key=key, data=copy.deepcopy(data), version=actual + 1)
            return actual + 1

    def delete_if_version_matches(self, table: str, key: str, expected_version: int) -> bool:
        with self._guard:
            rows = self._table(table)
            current = rows.get(key)
            if current is None or current.version != expected_version:
                return False
            del rows[key]
            return True

    def find(self, table: str, **equals: Any) -> List[StoredRecord]:
        with self._guard:
            matches = [
                r
                for r in self._table(table).values()
                if all(r.data.get(k) == v for k, v in equals.items())
            ]
            return copy.deepcopy(matches)

    def count(self, table: str) -> int:
        with self._guard:
            return len(self._table(table))
