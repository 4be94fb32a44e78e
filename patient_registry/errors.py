"""Exception hierarchy for the registry data layer."""

from __future__ import annotations


class RegistryError(Exception):
    """Base class for every error raised by the registry."""


class InitializationError(RegistryError):
    """No persistence strategy produced a usable database."""


class RepositoryError(RegistryError):
    """A repository operation failed inside the storage engine."""

    def __init__(self, operation: str, message: str):
        super().__init__(message)
        self.operation = operation


class QueryError(RegistryError):
    """A raw query was empty or rejected by the engine."""


class QueryDeniedError(QueryError):
    """A raw query matched the destructive-statement denylist."""


class ValidationError(RegistryError):
    """Required patient fields are missing."""

    def __init__(self, missing: list[str]):
        super().__init__(f"Please fill in all required fields: {', '.join(missing)}")
        self.missing = missing
