"""Patient registry: embedded SQLite storage with cross-session change sync."""

__version__ = "1.0.0"
