"""Repository for the ``patients`` table: full CRUD with ACID transactions."""

from __future__ import annotations

import logging
import sqlite3
from typing import Any, Optional

from patient_registry.db.handle import StorageHandle
from patient_registry.errors import RepositoryError
from patient_registry.models.patient import Patient, PatientFields
from patient_registry.sync.notifier import ChangeNotifier, Operation

logger = logging.getLogger(__name__)


class PatientRepository:
    """
    Single-Responsibility repository for patient persistence.

    Every call acquires the handle first, so the first call of a session
    pays for initialization.  Successful writes are announced through the
    notifier; failed writes are never retried.
    """

    def __init__(self, handle: StorageHandle, notifier: Optional[ChangeNotifier] = None):
        self._handle = handle
        self._notifier = notifier or ChangeNotifier()

    # -- Create ----------------------------------------------------------------

    def insert(self, fields: PatientFields) -> int:
        """Insert a new patient and return its id."""
        db = self._handle.acquire()
        try:
            with db.transaction() as conn:
                cursor = conn.execute(
                    """INSERT INTO patients
                       (first_name, last_name, date_of_birth, gender,
                        email, phone, address)
                       VALUES (?, ?, ?, ?, ?, ?, ?)""",
                    fields.to_params(),
                )
                patient_id = int(cursor.lastrowid)
        except sqlite3.Error as e:
            logger.error(f"Error adding patient: {e}")
            raise RepositoryError("insert", str(e)) from e

        self._notifier.notify(Operation.PATIENT_ADDED, self._summary(patient_id, fields))
        return patient_id

    # -- Read ------------------------------------------------------------------

    def list_all(self) -> list[Patient]:
        """All patients ordered by last name, then first name."""
        rows = self._read("list", "SELECT * FROM patients ORDER BY last_name, first_name")
        return [Patient.from_row(r) for r in rows]

    def get_by_id(self, patient_id: int) -> Optional[Patient]:
        rows = self._read("get", "SELECT * FROM patients WHERE id = ?", (patient_id,))
        return Patient.from_row(rows[0]) if rows else None

    def count(self) -> int:
        rows = self._read("count", "SELECT COUNT(*) AS total FROM patients")
        return int(rows[0]["total"])

    # -- Update ----------------------------------------------------------------

    def update(self, patient_id: int, fields: PatientFields) -> bool:
        """
        Replace every mutable field of a patient.  Returns False when no row
        has this id; ``updated_at`` is refreshed by the schema trigger.
        """
        db = self._handle.acquire()
        try:
            with db.transaction() as conn:
                cursor = conn.execute(
                    """UPDATE patients
                       SET first_name = ?, last_name = ?, date_of_birth = ?,
                           gender = ?, email = ?, phone = ?, address = ?
                       WHERE id = ?""",
                    (*fields.to_params(), patient_id),
                )
                changed = cursor.rowcount > 0
        except sqlite3.Error as e:
            logger.error(f"Error updating patient {patient_id}: {e}")
            raise RepositoryError("update", str(e)) from e

        if changed:
            self._notifier.notify(Operation.PATIENT_UPDATED, self._summary(patient_id, fields))
        return changed

    # -- Delete ----------------------------------------------------------------

    def delete(self, patient_id: int) -> bool:
        db = self._handle.acquire()
        try:
            with db.transaction() as conn:
                cursor = conn.execute("DELETE FROM patients WHERE id = ?", (patient_id,))
                removed = cursor.rowcount > 0
        except sqlite3.Error as e:
            logger.error(f"Error deleting patient {patient_id}: {e}")
            raise RepositoryError("delete", str(e)) from e

        if removed:
            self._notifier.notify(Operation.PATIENT_DELETED, {"id": patient_id})
        return removed

    # -- internal --------------------------------------------------------------

    def _read(self, operation: str, sql: str, params: tuple = ()) -> list[dict[str, Any]]:
        db = self._handle.acquire()
        try:
            return db.fetchall(sql, params)
        except sqlite3.Error as e:
            logger.error(f"Error reading patients ({operation}): {e}")
            raise RepositoryError(operation, str(e)) from e

    @staticmethod
    def _summary(patient_id: int, fields: PatientFields) -> dict[str, Any]:
        return {
            "id": patient_id,
            "first_name": fields.first_name,
            "last_name": fields.last_name,
        }
