"""Per-session reconciliation of cross-session change events.

A ``TabSynchronizer`` stands in for the top-level page of one session: it
listens on the shared channel, reloads its data when another session writes,
defers that reload while the session is hidden, and periodically checks that
its storage handle is still alive.
"""

from __future__ import annotations

import logging
import threading
from typing import Any, Callable, Optional

from patient_registry.db.handle import StorageHandle
from patient_registry.errors import InitializationError
from patient_registry.sync.channel import BroadcastChannel
from patient_registry.sync.notifier import DB_UPDATED, ChangeEvent

logger = logging.getLogger(__name__)

Callback = Callable[[], None]


class TabSynchronizer:
    """
    Reconciles one session with changes made elsewhere.

    ``on_refresh`` re-reads data (the list and console views); ``on_full_reload``
    rebuilds the whole session and defaults to ``on_refresh``.  The synchronizer
    is also an event port: publishing through it forwards the message to other
    sessions and refreshes this one.
    """

    def __init__(
        self,
        handle: StorageHandle,
        channel: BroadcastChannel,
        on_refresh: Callback,
        on_full_reload: Optional[Callback] = None,
        liveness_interval: float = 30,
    ):
        self._handle = handle
        self._channel = channel
        self._on_refresh = on_refresh
        self._on_full_reload = on_full_reload or on_refresh
        self._liveness_interval = liveness_interval
        self._lock = threading.Lock()
        self._visible = True
        self._pending_reload = False
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None
        self._channel.on_message = self.handle_message

    # -- state -----------------------------------------------------------------

    @property
    def visible(self) -> bool:
        return self._visible

    @property
    def pending_reload(self) -> bool:
        return self._pending_reload

    # -- event port --------------------------------------------------------------

    def post_message(self, message: dict[str, Any]) -> None:
        """Publish a local change to other sessions, then refresh this one."""
        try:
            self._channel.post_message(message)
        finally:
            self.local_change()

    def local_change(self) -> None:
        self._refresh()

    # -- inbound -----------------------------------------------------------------

    def handle_message(self, message: dict[str, Any]) -> None:
        if message.get("type") != DB_UPDATED:
            logger.debug(f"Ignoring channel message of type {message.get('type')!r}")
            return

        event = ChangeEvent.from_dict(message)
        with self._lock:
            if not self._visible:
                self._pending_reload = True
                logger.debug(f"Deferred reload for {event.operation.value} while hidden")
                return
        logger.info(f"Another session reported {event.operation.value}; reloading")
        self._refresh()

    def set_visibility(self, visible: bool) -> None:
        """Record a visibility change; becoming visible consumes the pending flag."""
        with self._lock:
            was_visible = self._visible
            self._visible = visible
            if not visible or was_visible:
                return
            pending = self._pending_reload
            self._pending_reload = False

        if pending:
            logger.info("Session visible with pending changes; full reload")
            self._on_full_reload()
        else:
            self._refresh()

    # -- liveness ----------------------------------------------------------------

    def check_liveness(self) -> bool:
        """Re-validate the handle; refresh when it had to be rebuilt."""
        try:
            rebuilt = self._handle.ensure_alive()
        except InitializationError as e:
            logger.error(f"Liveness check could not reinitialize the database: {e}")
            return False
        if rebuilt:
            logger.info("Database handle was rebuilt; refreshing data")
            self._refresh()
        return rebuilt

    def start(self) -> None:
        """Run ``check_liveness`` every ``liveness_interval`` seconds in the background."""
        if self._thread is not None and self._thread.is_alive():
            return
        self._stop.clear()
        self._thread = threading.Thread(
            target=self._liveness_loop, name="liveness-check", daemon=True
        )
        self._thread.start()

    def stop(self) -> None:
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout=self._liveness_interval + 1)
            self._thread = None

    def close(self) -> None:
        self.stop()
        self._channel.close()

    # -- internal ----------------------------------------------------------------

    def _liveness_loop(self) -> None:
        while not self._stop.wait(self._liveness_interval):
            self.check_liveness()

    def _refresh(self) -> None:
        self._on_refresh()
