"""Change notifier: best-effort broadcast of mutation events to other sessions."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional, Protocol

from patient_registry.utils.redact import redact_text

logger = logging.getLogger(__name__)

DB_UPDATED = "DB_UPDATED"


class Operation(str, Enum):
    PATIENT_ADDED = "PATIENT_ADDED"
    PATIENT_UPDATED = "PATIENT_UPDATED"
    PATIENT_DELETED = "PATIENT_DELETED"
    QUERY_EXECUTED = "QUERY_EXECUTED"
    UNKNOWN = "unknown"

    @classmethod
    def parse(cls, value: Any) -> "Operation":
        if isinstance(value, cls):
            return value
        try:
            return cls(value)
        except ValueError:
            return cls.UNKNOWN


class EventPort(Protocol):
    """Outbound transport the notifier publishes to."""

    def post_message(self, message: dict[str, Any]) -> None:
        ...


@dataclass(frozen=True)
class ChangeEvent:
    operation: Operation
    timestamp: str
    data: Optional[dict[str, Any]] = None
    type: str = DB_UPDATED

    def to_dict(self) -> dict[str, Any]:
        message: dict[str, Any] = {
            "type": self.type,
            "operation": self.operation.value,
            "timestamp": self.timestamp,
        }
        if self.data is not None:
            message["data"] = self.data
        return message

    @classmethod
    def from_dict(cls, message: dict[str, Any]) -> "ChangeEvent":
        return cls(
            type=message.get("type", ""),
            operation=Operation.parse(message.get("operation")),
            timestamp=message.get("timestamp", ""),
            data=message.get("data"),
        )


class ChangeNotifier:
    """
    Publishes ``DB_UPDATED`` events.  Delivery is not part of any operation's
    contract: every failure is logged and dropped.
    """

    def __init__(self, port: Optional[EventPort] = None):
        self._port = port

    def attach(self, port: Optional[EventPort]) -> None:
        self._port = port

    def notify(self, operation: Operation | str, data: Optional[dict[str, Any]] = None) -> bool:
        """Broadcast a change; returns whether the message was handed to the port."""
        if self._port is None:
            logger.debug("No event port attached; change notification skipped")
            return False

        event = ChangeEvent(
            operation=Operation.parse(operation),
            timestamp=datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%S.%fZ"),
            data=data,
        )
        try:
            # Round-trip through JSON so only plain data crosses the channel.
            message = json.loads(json.dumps(event.to_dict()))
            self._port.post_message(message)
        except Exception as e:
            logger.warning(
                f"Change notification {event.operation.value} not delivered: "
                f"{redact_text(str(e))}"
            )
            return False
        return True
