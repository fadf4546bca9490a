"""SQLAlchemy implementation of RecordStore."""

from __future__ import annotations

import logging
from collections.abc import Hashable, Mapping
from typing import Any

from sqlalchemy import delete, func, inspect, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..errors import RecordNotFoundError, StoreValidationError

logger = logging.getLogger(__name__)

BLANK_MESSAGE = "can't be blank"


def _missing_required(record: Any) -> dict[str, list[str]]:
    """Non-nullable columns with no value and nothing to default them."""
    errors: dict[str, list[str]] = {}
    mapper = inspect(type(record))
    # Foreign keys set through a relationship are only filled in on flush
    covered = {
        column.key
        for rel in mapper.relationships
        if getattr(record, rel.key) is not None
        for column in rel.local_columns
    }
    for attr in mapper.column_attrs:
        column = attr.columns[0]
        if column.primary_key or column.nullable or column.key in covered:
            continue
        if column.default is not None or column.server_default is not None:
            continue
        if getattr(record, attr.key) is None:
            errors[attr.key] = [BLANK_MESSAGE]
    return errors


class SQLAlchemyRecordStore:
    """
    Record store backed by a SQLAlchemy session.

    Records are mapped ORM instances. Each save is flushed inside a
    savepoint, so a failed save rolls back only its own row. With
    ``commit`` True every successful save is also committed.
    """

    def __init__(self, session: Session, *, commit: bool = True):
        self._session = session
        self._commit = commit

    @property
    def session(self) -> Session:
        return self._session

    def create(self, model: type, attributes: Mapping[str, Any]) -> Any:
        return self.save(model(**attributes))

    def save(self, record: Any) -> Any:
        model_name = type(record).__name__

        errors = _missing_required(record)
        if errors:
            raise StoreValidationError(model_name, errors)

        try:
            with self._session.begin_nested():
                self._session.add(record)
                self._session.flush()
        except IntegrityError as e:
            raise StoreValidationError(model_name, {"base": [str(e.orig)]}) from e

        if self._commit:
            self._session.commit()

        logger.debug(f"[sqlalchemy_store] Saved {model_name} id={self.identity(record)}")
        return record

    def is_persisted(self, record: Any) -> bool:
        state = inspect(record)
        return state.persistent or state.detached

    def identity(self, record: Any) -> Hashable:
        identity = inspect(record).identity
        if identity is not None and len(identity) == 1:
            return identity[0]
        return identity

    def find(self, model: type, identity: Hashable) -> Any:
        record = self._session.get(model, identity)
        if record is None:
            raise RecordNotFoundError(model.__name__, identity)
        return record

    def delete_all(self, model: type) -> int:
        result = self._session.execute(delete(model))
        if self._commit:
            self._session.commit()
        else:
            self._session.flush()
        deleted = result.rowcount or 0
        logger.debug(f"[sqlalchemy_store] Deleted {deleted} {model.__name__} record(s)")
        return deleted

    def count(self, model: type) -> int:
        return self._session.scalar(select(func.count()).select_from(model)) or 0

    def __repr__(self) -> str:
        return f"<SQLAlchemyRecordStore session={self._session!r}>"
