"""Storage handle: one lazily-built, self-healing ``Database`` per session.

Initialization walks an ordered list of persistence strategies.  Each
strategy is opened, given a settle delay, probed, and only then handed to
the schema step; any failure marks it ``FAILED`` and the next one is tried.
"""

from __future__ import annotations

import logging
import sqlite3
import threading
import time
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Optional, Sequence

from patient_registry.config import Settings
from patient_registry.db.database import MEMORY_LOCATION, Database
from patient_registry.errors import InitializationError
from patient_registry.utils.retry import retry_on_failure

logger = logging.getLogger(__name__)


class StrategyState(str, Enum):
    UNTRIED = "untried"
    TRYING = "trying"
    VALIDATED = "validated"
    FAILED = "failed"


class StrategyRejected(Exception):
    """An opened connection did not behave the way its strategy requires."""


@dataclass
class PersistenceStrategy:
    """One backing option for the database, tried in list order."""

    name: str
    location: Path | str
    journal_mode: Optional[str] = None
    durable: bool = True
    state: StrategyState = field(default=StrategyState.UNTRIED, compare=False)
    last_error: Optional[str] = field(default=None, compare=False)

    def open(self) -> Database:
        return Database(self.location, journal_mode=self.journal_mode)

    def validate(self, db: Database) -> None:
        db.probe()
        if self.journal_mode:
            actual = db.current_journal_mode()
            if actual != self.journal_mode.lower():
                raise StrategyRejected(
                    f"journal mode {self.journal_mode.lower()!r} requested, got {actual!r}"
                )


def default_strategies(settings: Settings) -> list[PersistenceStrategy]:
    """Durable WAL file, durable rollback-journal file, then memory."""
    path = settings.database_path
    return [
        PersistenceStrategy("durable-wal", path, journal_mode="WAL"),
        PersistenceStrategy("durable-journal", path, journal_mode="DELETE"),
        PersistenceStrategy("memory", MEMORY_LOCATION, durable=False),
    ]


class StorageHandle:
    """
    Owns the single live ``Database`` for one session.

    ``acquire()`` builds it on first use; later calls probe it and rebuild it
    transparently if the probe fails.  Concurrent first callers wait on the
    same lock and receive the same instance.
    """

    def __init__(
        self,
        settings: Settings,
        strategies: Optional[Sequence[PersistenceStrategy]] = None,
    ):
        self._settings = settings
        self._strategies = list(strategies) if strategies is not None else default_strategies(settings)
        if not self._strategies:
            raise ValueError("At least one persistence strategy is required")
        self._lock = threading.Lock()
        self._db: Optional[Database] = None
        self._active: Optional[PersistenceStrategy] = None
        self._generation = 0
        self._initialize = retry_on_failure(
            max_attempts=settings.INIT_MAX_ATTEMPTS,
            backoff_factor=settings.INIT_BACKOFF_FACTOR,
            retry_on=(InitializationError,),
        )(self._initialize_once)

    # -- public API ------------------------------------------------------------

    @property
    def strategies(self) -> list[PersistenceStrategy]:
        return list(self._strategies)

    @property
    def active_strategy(self) -> Optional[PersistenceStrategy]:
        return self._active

    @property
    def generation(self) -> int:
        """Number of times a database has been built by this handle."""
        return self._generation

    @property
    def is_initialized(self) -> bool:
        return self._db is not None

    def acquire(self) -> Database:
        """Return a ready database, initializing or recovering it as needed."""
        with self._lock:
            if self._db is not None:
                try:
                    self._db.probe()
                    return self._db
                except sqlite3.Error as e:
                    logger.warning(f"Liveness probe failed ({e}); reinitializing database")
                    self._discard()

            db = self._initialize()
            self._db = db
            self._generation += 1
            return db

    def ensure_alive(self) -> bool:
        """Probe (or build) the database; True when a new one had to be built."""
        before = self._generation
        self.acquire()
        return self._generation != before

    def reset(self) -> None:
        """Close the database and forget all initialization state."""
        with self._lock:
            self._discard()
            for strategy in self._strategies:
                strategy.state = StrategyState.UNTRIED
                strategy.last_error = None
            logger.info("Storage handle reset")

    # -- internal --------------------------------------------------------------

    def _discard(self) -> None:
        if self._db is not None:
            try:
                self._db.close()
            except sqlite3.Error as e:
                logger.debug(f"Ignoring error while closing dead connection: {e}")
            self._db = None
        self._active = None

    def _settle(self) -> None:
        if self._settings.DB_SETTLE_DELAY > 0:
            time.sleep(self._settings.DB_SETTLE_DELAY)

    def _initialize_once(self) -> Database:
        for strategy in self._strategies:
            strategy.state = StrategyState.UNTRIED
            strategy.last_error = None

        for strategy in self._strategies:
            db = self._attempt(strategy)
            if db is not None:
                self._active = strategy
                logger.info(f"Database ready using '{strategy.name}' strategy ({strategy.location})")
                if not strategy.durable:
                    logger.warning("Using transient in-memory storage; data will not survive this session")
                return db

        summary = "; ".join(f"{s.name}: {s.last_error}" for s in self._strategies)
        raise InitializationError(f"All database initialization attempts failed ({summary})")

    def _attempt(self, strategy: PersistenceStrategy) -> Optional[Database]:
        """Open, settle, validate and initialize one strategy; None on failure."""
        strategy.state = StrategyState.TRYING
        db = strategy.open()
        try:
            db.connection()
            self._settle()
            strategy.validate(db)
            strategy.state = StrategyState.VALIDATED
            db.init()
            return db
        except (sqlite3.Error, OSError, StrategyRejected) as e:
            strategy.state = StrategyState.FAILED
            strategy.last_error = str(e)
            logger.warning(f"Persistence strategy '{strategy.name}' failed: {e}")
            try:
                db.close()
            except sqlite3.Error as close_error:
                logger.debug(f"Ignoring error while closing '{strategy.name}': {close_error}")
            return None
