"""Domain models for the patient registry."""

from patient_registry.models.patient import Gender, Patient, PatientFields

__all__ = ["Gender", "Patient", "PatientFields"]
