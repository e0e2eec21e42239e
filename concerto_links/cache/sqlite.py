from __future__ import annotations

import logging
import sqlite3
import time
from pathlib import Path

from concerto_links.errors import StorageCorrupted, StorageUnavailable

logger = logging.getLogger(__name__)


class SqliteStorage:
    """
    Named text blobs in a single sqlite table.

    The link cache keeps its whole serialized mapping under one name, so a
    version bump in the name leaves old data behind untouched.

    Only a file sqlite cannot parse is treated as corrupt and moved aside.
    Operational errors (locked, busy, missing table) leave the file alone.
    """

    def __init__(self, db_path: Path, *, timeout_s: float = 5.0):
        self.db_path = Path(db_path)
        self.timeout_s = timeout_s
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._init_db()

    def _connect(self) -> sqlite3.Connection:
        con = sqlite3.connect(self.db_path, timeout=self.timeout_s)
        con.row_factory = sqlite3.Row
        return con

    def _init_db(self) -> None:
        try:
            self._create_table()
        except sqlite3.OperationalError as e:
            # Table creation is retried on the next read/write.
            logger.warning("Cache database %s not ready (%s)", self.db_path, e)
        except sqlite3.DatabaseError as e:
            self._quarantine(e)
            self._create_table()

    def _create_table(self) -> None:
        with self._connect() as con:
            con.execute(
                """
                CREATE TABLE IF NOT EXISTS kv_store (
                    name  TEXT PRIMARY KEY,
                    value TEXT NOT NULL,
                    updated_at INTEGER NOT NULL
                );
                """
            )

    def _quarantine(self, err: Exception) -> None:
        # Move the unreadable file aside so the next write starts clean.
        bad = self.db_path.with_name(f"{self.db_path.name}.corrupt-{int(time.time())}")
        n = 1
        while bad.exists():
            bad = self.db_path.with_name(f"{self.db_path.name}.corrupt-{int(time.time())}-{n}")
            n += 1
        logger.warning("Cache database %s is unreadable (%s); moving it to %s", self.db_path, err, bad)
        self.db_path.replace(bad)

    def _is_missing_table(self, err: sqlite3.OperationalError) -> bool:
        return "no such table" in str(err)

    def read(self, name: str) -> str | None:
        try:
            with self._connect() as con:
                row = con.execute("SELECT value FROM kv_store WHERE name=?", (name,)).fetchone()
        except sqlite3.OperationalError as e:
            if self._is_missing_table(e):
                self._try_create_table()
                return None
            logger.warning("Cache database %s unavailable: %s", self.db_path, e)
            raise StorageUnavailable(f"{self.db_path}: {e}") from e
        except sqlite3.DatabaseError as e:
            self._quarantine(e)
            self._create_table()
            raise StorageCorrupted(f"{self.db_path}: {e}") from e
        return None if row is None else row["value"]

    def _try_create_table(self) -> None:
        try:
            self._create_table()
        except sqlite3.OperationalError as e:
            raise StorageUnavailable(f"{self.db_path}: {e}") from e

    def _execute_write(self, sql: str, args: tuple) -> None:
        try:
            with self._connect() as con:
                con.execute(sql, args)
        except sqlite3.OperationalError as e:
            if not self._is_missing_table(e):
                raise StorageUnavailable(f"{self.db_path}: {e}") from e
            self._try_create_table()
            try:
                with self._connect() as con:
                    con.execute(sql, args)
            except sqlite3.OperationalError as e2:
                raise StorageUnavailable(f"{self.db_path}: {e2}") from e2

    def write(self, name: str, value: str) -> None:
        self._execute_write(
            """
            INSERT INTO kv_store(name, value, updated_at)
            VALUES (?, ?, ?)
            ON CONFLICT(name) DO UPDATE SET
                value=excluded.value,
                updated_at=excluded.updated_at
            """,
            (name, value, int(time.time())),
        )

    def delete(self, name: str) -> None:
        self._execute_write("DELETE FROM kv_store WHERE name=?", (name,))
