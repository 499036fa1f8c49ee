"""Exposure store implementations.

    SQLiteExposureStore  -- durable, one SQLite file via aiosqlite.
    MemoryExposureStore  -- process-local; tests and stateless builds.
"""

from stackdigger.providers.exposure.memory_store import MemoryExposureStore
from stackdigger.providers.exposure.sqlite_store import SQLiteExposureStore

__all__ = ["MemoryExposureStore", "SQLiteExposureStore"]
