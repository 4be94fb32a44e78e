"""Core SQLite connection with ACID transaction support."""

from __future__ import annotations

import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Generator, Optional

from patient_registry.db.schema import SCHEMA_DDL

MEMORY_LOCATION = ":memory:"


class Database:
    """
    SQLite database wrapper with explicit ACID transaction support.

    Every mutation goes through ``transaction()``, which commits on success
    and rolls back on failure.  ``location`` is a file path or ``:memory:``;
    ``journal_mode`` is applied when the connection is opened.
    """

    def __init__(self, location: Path | str, journal_mode: Optional[str] = None):
        if isinstance(location, str) and location != MEMORY_LOCATION:
            location = Path(location)
        self.location: Path | str = location
        self.journal_mode = journal_mode
        self._conn: Optional[sqlite3.Connection] = None

    @property
    def is_memory(self) -> bool:
        return self.location == MEMORY_LOCATION

    # -- connection lifecycle --------------------------------------------------

    def _ensure_dir(self) -> None:
        if not self.is_memory:
            self.location.parent.mkdir(parents=True, exist_ok=True)  # type: ignore[union-attr]

    def connection(self) -> sqlite3.Connection:
        if self._conn is None:
            self._ensure_dir()
            conn = sqlite3.connect(str(self.location), check_same_thread=False)
            conn.row_factory = sqlite3.Row
            if self.journal_mode:
                conn.execute(f"PRAGMA journal_mode = {self.journal_mode}")
            self._conn = conn
        return self._conn

    def close(self) -> None:
        if self._conn:
            self._conn.close()
            self._conn = None

    def init(self) -> None:
        """Create the schema (idempotent)."""
        conn = self.connection()
        conn.executescript(SCHEMA_DDL)
        conn.commit()

    def probe(self) -> None:
        """Trivial liveness query; raises ``sqlite3.Error`` on a dead connection."""
        self.connection().execute("SELECT 1").fetchone()

    def current_journal_mode(self) -> str:
        row = self.connection().execute("PRAGMA journal_mode").fetchone()
        return str(row[0]).lower()

    # -- transaction helpers ---------------------------------------------------

    @contextmanager
    def transaction(self) -> Generator[sqlite3.Connection, None, None]:
        """ACID transaction: commits on success, rolls back on exception."""
        conn = self.connection()
        try:
            yield conn
            conn.commit()
        except Exception:
            conn.rollback()
            raise

    # -- low-level query helpers -----------------------------------------------

    def fetchone(self, sql: str, params: tuple = ()) -> Optional[dict[str, Any]]:
        row = self.connection().execute(sql, params).fetchone()
        return dict(row) if row else None

    def fetchall(self, sql: str, params: tuple = ()) -> list[dict[str, Any]]:
        rows = self.connection().execute(sql, params).fetchall()
        return [dict(r) for r in rows]
