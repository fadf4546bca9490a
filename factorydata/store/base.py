"""
Record Store Protocol.

The contract the preload engine uses to persist and fetch records.

Design Principle:
    The engine never knows HOW records are stored. It only creates,
    saves, finds and deletes records through this protocol, so the same
    preloaders run against an in-memory store in unit tests and a real
    database in integration suites.

Implementations:
    - MemoryRecordStore: pydantic models held in process memory
    - SQLAlchemyRecordStore: mapped ORM instances in a SQLAlchemy session

Symbolic keys ("thom", "tour") are never passed to a store. The engine
keeps its own key -> identity mapping from execution time.
"""

from __future__ import annotations

from collections.abc import Hashable, Mapping
from typing import Any, Protocol, runtime_checkable


@runtime_checkable
class RecordStore(Protocol):
    """
    Protocol for record persistence.

    Error contract:
        - create/save raise StoreValidationError for invalid records
        - find raises RecordNotFoundError for unknown identities
    """

    def create(self, model: type, attributes: Mapping[str, Any]) -> Any:
        """Build and persist a record of `model` from attributes."""
        ...

    def save(self, record: Any) -> Any:
        """Persist an unsaved record instance in place and return it."""
        ...

    def is_persisted(self, record: Any) -> bool:
        """Whether the record has already been saved."""
        ...

    def identity(self, record: Any) -> Hashable:
        """The identity used to find a persisted record again."""
        ...

    def find(self, model: type, identity: Hashable) -> Any:
        """Fetch a persisted record by identity."""
        ...

    def delete_all(self, model: type) -> int:
        """Delete every record of `model`, returning how many were removed."""
        ...

    def count(self, model: type) -> int:
        """Number of persisted records of `model`."""
        ...
