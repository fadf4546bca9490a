"""
In-memory record store backed by pydantic models.

Records are pydantic models with an ``id`` field. The store validates on
save, assigns ids, and keeps copies of the saved data so that ``find``
behaves like a database reload: it returns a new instance each call.

Usage:
    class User(BaseModel):
        id: int | None = None
        first_name: str
        last_name: str

    store = MemoryRecordStore()
    user = store.create(User, {"first_name": "Thom", "last_name": "York"})
    store.find(User, user.id)  # equal, but a different instance
"""

from __future__ import annotations

import itertools
import logging
from collections.abc import Hashable, Mapping
from typing import Any

from pydantic import BaseModel, ValidationError

from ..errors import RecordNotFoundError, StoreValidationError

logger = logging.getLogger(__name__)


def _field_errors(exc: ValidationError) -> dict[str, list[str]]:
    """Convert pydantic errors to {field: [message, ...]}."""
    errors: dict[str, list[str]] = {}
    for error in exc.errors():
        field = ".".join(str(part) for part in error["loc"]) or "base"
        errors.setdefault(field, []).append(error["msg"])
    return errors


class MemoryRecordStore:
    """
    Record store keeping pydantic models in process memory.

    Each model gets its own table and id sequence. Stored data is deep
    copied on save and on find.
    """

    def __init__(self, id_field: str = "id"):
        self._id_field = id_field
        self._tables: dict[type, dict[int, BaseModel]] = {}
        self._sequences: dict[type, itertools.count] = {}

    def create(self, model: type[BaseModel], attributes: Mapping[str, Any]) -> BaseModel:
        try:
            record = model.model_validate(dict(attributes))
        except ValidationError as e:
            raise StoreValidationError(model.__name__, _field_errors(e)) from e
        return self.save(record)

    def save(self, record: BaseModel) -> BaseModel:
        """
        Validate and persist a record, assigning its id in place.

        Instances built with ``model_construct`` skip validation, so their
        data is validated again here before anything is stored.
        """
        model = type(record)
        data = {name: value for name, value in record if name != self._id_field}
        try:
            validated = model.model_validate(data)
        except ValidationError as e:
            raise StoreValidationError(model.__name__, _field_errors(e)) from e

        table = self._tables.setdefault(model, {})
        record_id = getattr(record, self._id_field, None)
        if record_id is None:
            record_id = next(self._sequences.setdefault(model, itertools.count(1)))
            setattr(record, self._id_field, record_id)

        setattr(validated, self._id_field, record_id)
        table[record_id] = validated.model_copy(deep=True)

        logger.debug(f"[memory_store] Saved {model.__name__} id={record_id}")
        return record

    def is_persisted(self, record: BaseModel) -> bool:
        record_id = getattr(record, self._id_field, None)
        return record_id is not None and record_id in self._tables.get(type(record), {})

    def identity(self, record: BaseModel) -> Hashable:
        return getattr(record, self._id_field)

    def find(self, model: type[BaseModel], identity: Hashable) -> BaseModel:
        stored = self._tables.get(model, {}).get(identity)
        if stored is None:
            raise RecordNotFoundError(model.__name__, identity)
        return stored.model_copy(deep=True)

    def delete_all(self, model: type[BaseModel]) -> int:
        table = self._tables.get(model)
        if not table:
            return 0
        deleted = len(table)
        table.clear()
        logger.debug(f"[memory_store] Deleted {deleted} {model.__name__} record(s)")
        return deleted

    def count(self, model: type[BaseModel]) -> int:
        return len(self._tables.get(model, {}))

    def __repr__(self) -> str:
        sizes = {model.__name__: len(table) for model, table in self._tables.items()}
        return f"<MemoryRecordStore tables={sizes}>"
