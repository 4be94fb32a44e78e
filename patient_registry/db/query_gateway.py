"""Raw query gateway for the SQL console.

Statements are screened against a denylist of destructive patterns before
they reach the engine.  The denylist is a convenience guard against
accidents, not a security boundary.
"""

from __future__ import annotations

import logging
import re
import sqlite3
from typing import Any, Optional

from patient_registry.db.handle import StorageHandle
from patient_registry.errors import QueryDeniedError, QueryError
from patient_registry.sync.notifier import ChangeNotifier, Operation
from patient_registry.utils.redact import redact_text

logger = logging.getLogger(__name__)

SAMPLE_QUERIES = [
    "SELECT * FROM patients",
    "SELECT id, first_name, last_name FROM patients ORDER BY last_name",
    "SELECT COUNT(*) AS total_patients FROM patients",
    "SELECT gender, COUNT(*) AS count FROM patients GROUP BY gender",
]

# Matched against the lower-cased statement text with leading comments removed.
_DENYLIST: list[tuple[re.Pattern[str], str]] = [
    (re.compile(r"^drop\b"), "dropping schema objects"),
    (re.compile(r"^truncate\b"), "truncating tables"),
    (re.compile(r"^delete\s+from\s+[\"'`\[]?patients[\"'`\]]?(?!\w)(?!.*\bwhere\b)", re.DOTALL), "deleting every patient"),
    (re.compile(r"^update\s+[\"'`\[]?patients[\"'`\]]?\s+set\s(?!.*\bwhere\b)", re.DOTALL), "updating every patient"),
    (re.compile(r"^alter\s(?!.*\badd\s+column\b)", re.DOTALL), "altering tables other than adding a column"),
]

_NOTIFYING_KEYWORDS = {"insert", "update", "delete"}

# Whitespace, "-- line" comments and "/* block */" comments ahead of the first keyword.
_LEADING_NOISE = re.compile(r"\A(?:\s+|--[^\n]*|/\*.*?(?:\*/|\Z))+", re.DOTALL)


def strip_leading_comments(sql_text: str) -> str:
    """Drop the whitespace and SQL comments that precede the first keyword."""
    return _LEADING_NOISE.sub("", sql_text)


def _normalise(sql_text: str) -> str:
    return " ".join(strip_leading_comments(sql_text).lower().split())


def leading_keyword(sql_text: str) -> str:
    """First word of the statement, lower-cased ('' for blank text)."""
    match = re.match(r"\w+", strip_leading_comments(sql_text).lower())
    return match.group(0) if match else ""


def denial_reason(sql_text: str) -> Optional[str]:
    """Return why a statement is blocked, or None when it may run."""
    normalised = _normalise(sql_text)
    for pattern, reason in _DENYLIST:
        if pattern.search(normalised):
            return reason
    return None


class QueryGateway:
    """Executes console statements against the session's database."""

    def __init__(self, handle: StorageHandle, notifier: Optional[ChangeNotifier] = None):
        self._handle = handle
        self._notifier = notifier or ChangeNotifier()

    def execute(self, sql_text: str) -> list[dict[str, Any]]:
        """
        Run one statement.

        Returns the result rows (column-keyed dicts, possibly empty) when the
        statement yields rows, otherwise a single summary entry with the
        command name and affected-row count.
        """
        if not sql_text or not sql_text.strip():
            raise QueryError("Please enter a SQL query")

        reason = denial_reason(sql_text)
        if reason is not None:
            logger.warning(f"Blocked console statement ({reason}): {redact_text(sql_text.strip())}")
            raise QueryDeniedError(f"Destructive database operations are not allowed: {reason}")

        keyword = leading_keyword(sql_text)
        db = self._handle.acquire()
        try:
            with db.transaction() as conn:
                cursor = conn.execute(sql_text)
                if cursor.description is not None:
                    result: list[dict[str, Any]] = [dict(r) for r in cursor.fetchall()]
                else:
                    command = keyword.upper() or "UNKNOWN"
                    result = [{
                        "operation": command,
                        "row_count": max(cursor.rowcount, 0),
                        "message": f"{command} completed successfully",
                    }]
                row_count = max(cursor.rowcount, 0)
        except (sqlite3.Error, sqlite3.Warning) as e:
            logger.error(f"Error executing query: {e}")
            raise QueryError(str(e)) from e

        if keyword in _NOTIFYING_KEYWORDS:
            self._notifier.notify(
                Operation.QUERY_EXECUTED,
                {"command": keyword.upper(), "row_count": row_count},
            )
        return result
