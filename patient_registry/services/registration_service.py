"""Registration service: the form-facing facade over the patient repository.

Required-field checks live here rather than in the storage layer, and every
failure leaves as a ``RegistryError`` with a readable message.
"""

from __future__ import annotations

import logging
from typing import Any, Mapping, Optional

from patient_registry.db.patient_repo import PatientRepository
from patient_registry.errors import ValidationError
from patient_registry.models.patient import Gender, Patient, PatientFields

logger = logging.getLogger(__name__)


class RegistrationService:
    """Validates form input and delegates persistence to ``PatientRepository``."""

    def __init__(self, repo: PatientRepository):
        self._repo = repo

    @staticmethod
    def _validated(data: Mapping[str, Any] | PatientFields) -> PatientFields:
        fields = data if isinstance(data, PatientFields) else PatientFields.from_mapping(data)
        missing = fields.missing_required()
        if missing:
            raise ValidationError(missing)
        if fields.gender not in {g.value for g in Gender}:
            logger.info(f"Non-standard gender value stored: {fields.gender!r}")
        return fields

    def register(self, data: Mapping[str, Any] | PatientFields) -> int:
        fields = self._validated(data)
        patient_id = self._repo.insert(fields)
        logger.info(f"Registered patient {patient_id}")
        return patient_id

    def edit(self, patient_id: int, data: Mapping[str, Any] | PatientFields) -> bool:
        fields = self._validated(data)
        changed = self._repo.update(patient_id, fields)
        if changed:
            logger.info(f"Updated patient {patient_id}")
        return changed

    def remove(self, patient_id: int) -> bool:
        removed = self._repo.delete(patient_id)
        if removed:
            logger.info(f"Deleted patient {patient_id}")
        return removed

    def records(self) -> list[Patient]:
        return self._repo.list_all()

    def record(self, patient_id: int) -> Optional[Patient]:
        return self._repo.get_by_id(patient_id)
