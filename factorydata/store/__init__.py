"""
Record stores for factory data.

The preload engine talks to persistence only through RecordStore.
"""

from .base import RecordStore
from .memory import MemoryRecordStore
from .sqlalchemy import SQLAlchemyRecordStore

__all__ = [
    "MemoryRecordStore",
    "RecordStore",
    "SQLAlchemyRecordStore",
]
