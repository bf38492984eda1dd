"""
SQLite-backed engagement storage.

One generic ``records`` table holds every engagement table's rows as JSON
payloads. The ``(tbl, key)`` primary key is the unique constraint behind
``insert_if_absent``, and ``UPDATE ... WHERE version = ?`` is the
compare-and-set behind ``put_if_version_matches``. Connections are opened
per operation, so separate processes sharing one database file get the
same guarantees as threads in one process.
"""

import contextlib
import json
import logging
import sqlite3
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from homexpert.types import VersionConflictError, utc_now

from .base import ALL_TABLES, StoredRecord

logger = logging.getLogger(__name__)

SCHEMA_VERSION = 1

SCHEMA = """
CREATE TABLE IF NOT EXISTS records (
    tbl TEXT NOT NULL,
    key TEXT NOT NULL,
    data TEXT NOT NULL,
    version INTEGER NOT NULL DEFAULT 1,
    updated_at TEXT NOT NULL,
    PRIMARY KEY (tbl, key)
);

CREATE TABLE IF NOT EXISTS schema_version (
    version INTEGER PRIMARY KEY
);
"""

_FIELD_NAME_CHARS = set("abcdefghijklmnopqrstuvwxyz0123456789_")


def _validate_table(table: str) -> str:
    if table not in ALL_TABLES:
        raise ValueError(f"Unknown table: {table}")
    return table


def _validate_field(name: str) -> str:
    # Field names end up inside a JSON path literal
    if not name or not set(name) <= _FIELD_NAME_CHARS:
        raise ValueError(f"Invalid field name: {name!r}")
    return name


class SQLiteEngagementStorage:
    """Engagement storage in a local SQLite database file."""

    BUSY_TIMEOUT_MS = 5000

    def __init__(self, db_path: Union[str, Path]):
        self.db_path = Path(db_path)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._init_db()

    def _get_conn(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self.db_path, timeout=self.BUSY_TIMEOUT_MS / 1000)
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA journal_mode=WAL")
        conn.execute(f"PRAGMA busy_timeout={self.BUSY_TIMEOUT_MS}")
        return conn

    @contextlib.contextmanager
    def _connect(self):
        """Context manager that handles transactions AND closes connection.

        - Transaction commit on success
        - Transaction rollback on exception
        - Connection close in all cases
        """
        conn = self._get_conn()
        try:
            yield conn
            conn.commit()
        except Exception as e:
            logger.debug(f"Transaction failed, rolling back: {e}")
            conn.rollback()
            raise
        finally:
            conn.close()

    def _init_db(self) -> None:
        with self._connect() as conn:
            conn.executescript(SCHEMA)
            conn.execute(
                "INSERT OR IGNORE INTO schema_version (version) VALUES (?)", (SCHEMA_VERSION,)
            )

    @staticmethod
    def _row_to_record(row: sqlite3.Row) -> StoredRecord:
        return StoredRecord(key=row["key"], data=json.loads(row["data"]), version=row["version"])

    def get(self, table: str, key: str) -> Optional[StoredRecord]:
        with self._connect() as conn:
            row = conn.execute(
                "SELECT key, data, version FROM records WHERE tbl = ? AND key = ?",
                (_validate_table(table), key),
            ).fetchone()
        return self._row_to_record(row) if row else None

    def insert_if_absent(self, table: str, key: str, data: Dict[str, Any]) -> bool:
        with self._connect() as conn:
            cursor = conn.execute(
                """
                INSERT OR IGNORE INTO records (tbl, key, data, version, updated_at)
                VALUES (?, ?, ?, 1, ?)
                """,
                (_validate_table(table), key, json.dumps(data), utc_now().isoformat()),
            )
            return cursor.rowcount == 1

    def put_if_version_matches(
        self, table: str, key: str, data: Dict[str, Any], expected_version: int
    ) -> int:
        with self._connect() as conn:
            cursor = conn.execute(
                """
                UPDATE records SET data = ?, version = version + 1, updated_at = ?
                WHERE tbl = ? AND key = ? AND version = ?
                """,
                (
                    json.dumps(data),
                    utc_now().isoformat(),
                    _validate_table(table),
                    key,
                    expected_version,
                ),
            )
            if cursor.rowcount == 0:
                current = conn.execute(
                    "SELECT version FROM records WHERE tbl = ? AND key = ?", (table, key)
                ).fetchone()
                actual = current["version"] if current else -1
                raise VersionConflictError(table, key, expected_version, actual)
        return expected_version + 1

    def delete_if_version_matches(self, table: str, key: str, expected_version: int) -> bool:
        with self._connect() as conn:
            cursor = conn.execute(
                "DELETE FROM records WHERE tbl = ? AND key = ? AND version = ?",
                (_validate_table(table), key, expected_version),
            )
            return cursor.rowcount == 1

    def find(self, table: str, **equals: Any) -> List[StoredRecord]:
        clauses = ["tbl = ?"]
        params: List[Any] = [_validate_table(table)]
        for name, value in equals.items():
            path = f"$.{_validate_field(name)}"
            if value is None:
                clauses.append("json_extract(data, ?) IS NULL")
                params.append(path)
            else:
                clauses.append("json_extract(data, ?) = ?")
                params.extend([path, value])

        with self._connect() as conn:
            rows = conn.execute(
                f"SELECT key, data, version FROM records WHERE {' AND '.join(clauses)}",
                params,
            ).fetchall()
        return [self._row_to_record(r) for r in rows]

    def count(self, table: str) -> int:
        with self._connect() as conn:
            row = conn.execute(
                "SELECT COUNT(*) AS n FROM records WHERE tbl = ?", (_validate_table(table),)
            ).fetchone()
        return row["n"]
