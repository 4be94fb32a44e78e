"""Service layer."""

from .registration_service import RegistrationService

__all__ = ["RegistrationService"]
