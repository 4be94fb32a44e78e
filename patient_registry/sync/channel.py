"""In-process named broadcast channel connecting sessions.

Channels constructed with the same name form a group.  A message posted on
one member is delivered to every *other* open member; the sender never
receives its own message.

Groups live in this process only.  The API server and the SQL console run
as separate processes over the same database file and do not notify each
other; each picks up the other's writes on its next read.
"""

from __future__ import annotations

import logging
import threading
from typing import Any, Callable, ClassVar, Optional

logger = logging.getLogger(__name__)

MessageHandler = Callable[[dict[str, Any]], None]


class ChannelClosedError(RuntimeError):
    """Raised when posting on a channel after ``close()``."""


class BroadcastChannel:
    _groups: ClassVar[dict[str, list["BroadcastChannel"]]] = {}
    _groups_lock: ClassVar[threading.Lock] = threading.Lock()

    def __init__(self, name: str, on_message: Optional[MessageHandler] = None):
        self.name = name
        self.on_message = on_message
        self._closed = False
        with self._groups_lock:
            self._groups.setdefault(name, []).append(self)

    @property
    def closed(self) -> bool:
        return self._closed

    def post_message(self, message: dict[str, Any]) -> int:
        """Deliver to all other members; returns the number of receivers."""
        if self._closed:
            raise ChannelClosedError(f"Channel '{self.name}' is closed")

        with self._groups_lock:
            peers = [c for c in self._groups.get(self.name, []) if c is not self]

        delivered = 0
        for peer in peers:
            if peer._receive(message):
                delivered += 1
        return delivered

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        with self._groups_lock:
            members = self._groups.get(self.name, [])
            if self in members:
                members.remove(self)
            if not members:
                self._groups.pop(self.name, None)

    def _receive(self, message: dict[str, Any]) -> bool:
        handler = self.on_message
        if self._closed or handler is None:
            return False
        try:
            handler(message)
        except Exception as e:
            logger.error(f"Subscriber on channel '{self.name}' failed: {e}")
            return False
        return True

    def __enter__(self) -> "BroadcastChannel":
        return self

    def __exit__(self, *exc) -> None:
        self.close()
