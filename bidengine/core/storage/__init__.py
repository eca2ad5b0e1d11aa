"""
Persistent Storage Module.

Provides the Storage contract used by bid placement and two backends:
- MemoryStorage: dict-backed, for tests and demos
- StorageManager: SQLite-backed (users, items, sales, bids)
"""

from bidengine.core.storage.base import Storage
from bidengine.core.storage.memory import MemoryStorage
from bidengine.core.storage.sqlite_adapter import SQLiteAdapter
from bidengine.core.storage.storage_manager import StorageManager

__all__ = ["Storage", "MemoryStorage", "SQLiteAdapter", "StorageManager"]
