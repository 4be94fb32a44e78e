"""Application-root context: one session's handle, channel and data services."""

from __future__ import annotations

import logging
from typing import Callable, Optional, Sequence

from patient_registry.config import Settings, get_settings
from patient_registry.db.handle import PersistenceStrategy, StorageHandle
from patient_registry.db.patient_repo import PatientRepository
from patient_registry.db.query_gateway import QueryGateway
from patient_registry.services.registration_service import RegistrationService
from patient_registry.sync.channel import BroadcastChannel
from patient_registry.sync.notifier import ChangeNotifier
from patient_registry.sync.tab_sync import TabSynchronizer

logger = logging.getLogger(__name__)


class RegistryContext:
    """
    Everything one session needs, wired once at the application root.

    Repositories receive the handle and notifier explicitly; ``reset()``
    forces the next operation to rebuild the database, ``close()`` tears the
    session down.
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        strategies: Optional[Sequence[PersistenceStrategy]] = None,
    ):
        self.settings = settings or get_settings()
        self.handle = StorageHandle(self.settings, strategies)
        self.channel = BroadcastChannel(self.settings.BROADCAST_CHANNEL)
        self.notifier = ChangeNotifier(self.channel)
        self.patients = PatientRepository(self.handle, self.notifier)
        self.queries = QueryGateway(self.handle, self.notifier)
        self.registration = RegistrationService(self.patients)
        self.tab: Optional[TabSynchronizer] = None

    def attach_tab(
        self,
        on_refresh: Callable[[], None],
        on_full_reload: Optional[Callable[[], None]] = None,
    ) -> TabSynchronizer:
        """Route change events through a ``TabSynchronizer`` for this session."""
        if self.tab is None:
            self.tab = TabSynchronizer(
                self.handle,
                self.channel,
                on_refresh=on_refresh,
                on_full_reload=on_full_reload,
                liveness_interval=self.settings.LIVENESS_INTERVAL_SECONDS,
            )
            self.notifier.attach(self.tab)
        return self.tab

    def reset(self) -> None:
        self.handle.reset()

    def close(self) -> None:
        if self.tab is not None:
            self.tab.close()
        else:
            self.channel.close()
        self.handle.reset()
        logger.info("Registry session closed")
