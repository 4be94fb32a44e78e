"""Cross-session change notification and reconciliation."""

from patient_registry.sync.channel import BroadcastChannel
from patient_registry.sync.notifier import ChangeEvent, ChangeNotifier, Operation
from patient_registry.sync.tab_sync import TabSynchronizer

__all__ = ["BroadcastChannel", "ChangeEvent", "ChangeNotifier", "Operation", "TabSynchronizer"]
