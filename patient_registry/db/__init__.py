"""Database layer: SQLite with ACID transactions and repository pattern."""

from patient_registry.db.database import Database
from patient_registry.db.handle import PersistenceStrategy, StorageHandle, StrategyState
from patient_registry.db.schema import SCHEMA_DDL

__all__ = ["Database", "PersistenceStrategy", "StorageHandle", "StrategyState", "SCHEMA_DDL"]
