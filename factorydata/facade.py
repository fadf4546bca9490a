"""
FactoryData facade.

The single entry point test suites use: register preloaders, run them,
look records up, and clean up afterwards.

Design Principle:
    Declare now, build later. Registering a preloader touches nothing in
    the store; records are only created when preload_data() is called.

Lookup Errors:
    - PreloaderNotYetDefinedError: the group was never registered
    - GroupNeverRunError: no run happened yet, or the latest run was a
      subset run that left the group out
    - PreloadedRecordNotFoundError: the group ran but has no record
      under that key

Usage:
    factory_data = FactoryData(MemoryRecordStore())

    @factory_data.preload("users", User)
    def users(data):
        data["thom"] = {"first_name": "Thom", "last_name": "York"}

    @factory_data.preload("posts", Post, depends_on="users")
    def posts(data):
        thom = factory_data.get("users", "thom")
        data["tour"] = {"user_id": thom.id, "title": "Tour!"}

    factory_data.preload_data()

    users = factory_data.group("users")
    users("thom").first_name  # "Thom"
"""

from __future__ import annotations

import logging
from collections.abc import Hashable, Iterable
from typing import TYPE_CHECKING, Any, TextIO

from .cache import ResultCache
from .config import PreloadSettings
from .errors import (
    DependencyResolutionError,
    GroupNeverRunError,
    PreloadedRecordNotFoundError,
    PreloadFailedError,
)
from .executor import PreloadExecutor, PreloadRun
from .registry import Builder, PreloadRegistry
from .resolver import DependencyResolver

if TYPE_CHECKING:
    from .store.base import RecordStore

logger = logging.getLogger(__name__)


class GroupAccessor:
    """Lookup bound to one preload group: ``users("thom")``."""

    def __init__(self, factory_data: FactoryData, name: str):
        self._factory_data = factory_data
        self.name = name

    def __call__(self, key: Hashable) -> Any:
        return self._factory_data.get(self.name, key)

    def __repr__(self) -> str:
        return f"<GroupAccessor {self.name}>"


class FactoryData:
    """
    Registers, runs and serves factory data preloads.

    One instance per test run. The registry can be passed in to share
    preloader definitions, otherwise a fresh one is created.
    """

    def __init__(
        self,
        store: RecordStore,
        *,
        registry: PreloadRegistry | None = None,
        settings: PreloadSettings | None = None,
        stream: TextIO | None = None,
    ):
        """
        Initialize facade.

        Args:
            store: Store records are persisted to
            registry: Preload registry (new one if None)
            settings: Preload settings (defaults if None)
            stream: Where failure reports go (stderr if None)
        """
        self._store = store
        self._registry = registry if registry is not None else PreloadRegistry()
        self._settings = settings if settings is not None else PreloadSettings()
        self._cache = ResultCache(store)
        self._executor = PreloadExecutor(
            self._registry,
            store,
            self._cache,
            stream=stream,
            report_failures=self._settings.report_failures,
        )

    @property
    def registry(self) -> PreloadRegistry:
        return self._registry

    @property
    def store(self) -> RecordStore:
        return self._store

    @property
    def settings(self) -> PreloadSettings:
        return self._settings

    @property
    def last_run(self) -> PreloadRun | None:
        return self._executor.current_run

    # ==================== Registration ====================

    def preload(
        self,
        name: str,
        model: type,
        builder: Builder | None = None,
        *,
        depends_on: str | Iterable[str] = (),
    ) -> Any:
        """
        Register a preloader.

        Called with a builder, registers it and returns the PreloadGroup.
        Called without one, returns a decorator registering the decorated
        function and returning it unchanged.

        Raises:
            AlreadyRegisteredError: If the name is already registered
        """
        if builder is not None:
            return self._registry.register(name, model, builder, depends_on=depends_on)

        def decorator(func: Builder) -> Builder:
            self._registry.register(name, model, func, depends_on=depends_on)
            return func

        return decorator

    # ==================== Execution ====================

    def preload_data(self, only: Iterable[str] | None = None) -> PreloadRun:
        """
        Run preloaders and persist their records.

        Args:
            only: Groups to run (plus their dependencies), entering strict
                mode. When None, settings decide: every group, or the
                configured preload_types.

        Returns:
            The completed PreloadRun

        Raises:
            DependencyResolutionError: On cyclic or unknown dependencies
            PreloaderNotYetDefinedError: If `only` names an unknown group
            PreloadFailedError: If records failed and raise_on_failure is set
        """
        if only is None:
            only = self._settings.requested_types()

        if only is None:
            run = self._executor.execute_all()
        else:
            run = self._executor.execute_subset(only)

        if run.failures and self._settings.raise_on_failure:
            raise PreloadFailedError(run)
        return run

    # ==================== Lookup ====================

    def get(self, group: str, key: Hashable) -> Any:
        """
        Get a preloaded record.

        Raises:
            PreloaderNotYetDefinedError: If the group was never registered
            GroupNeverRunError: If the group has not been run
            PreloadedRecordNotFoundError: If the group has no such record
        """
        self._registry.get(group)

        run = self._executor.current_run
        if run is None or not run.has_run(group):
            raise GroupNeverRunError(group, key)

        if not self._cache.has(group, key):
            raise PreloadedRecordNotFoundError(group, key, failed=key in run.failed_keys(group))

        return self._cache.get(group, key)

    def group(self, name: str) -> GroupAccessor:
        """
        Get a lookup callable for one group.

        Raises:
            PreloaderNotYetDefinedError: If the group was never registered
        """
        self._registry.get(name)
        return GroupAccessor(self, name)

    def keys(self, group: str) -> list[Hashable]:
        """Keys preloaded for a group in the latest run."""
        self._registry.get(group)
        return self._cache.keys(group)

    # ==================== Cleanup ====================

    def delete_preload_data(self) -> int:
        """
        Delete every record of every registered model.

        Models are cleared dependents-first so records referencing other
        preloaded records go before what they reference. When the
        declared dependencies cannot be resolved, models are cleared in
        reverse registration order instead. Safe to call repeatedly.

        Returns:
            Number of records deleted
        """
        groups = {group.name: group for group in self._registry.groups()}
        try:
            order = DependencyResolver(list(groups.values())).resolve()
        except DependencyResolutionError as e:
            logger.warning(f"[factory_data] {e}; deleting in reverse registration order")
            order = list(groups)

        deleted = 0
        cleared: list[type] = []
        for name in reversed(order):
            model = groups[name].model
            if model in cleared:
                continue
            cleared.append(model)
            deleted += self._store.delete_all(model)

        self._cache.clear()
        self._executor.forget()

        logger.info(
            f"[factory_data] Deleted {deleted} record(s) across "
            f"{[model.__name__ for model in cleared]}"
        )
        return deleted

    def reset_cache(self) -> None:
        """Forget memoized records; the next lookups re-fetch from the store."""
        self._cache.invalidate_all()

    def reset(self) -> None:
        """Drop registrations, cached records and the latest run."""
        self._registry.reset()
        self._cache.clear()
        self._executor.forget()

    def __repr__(self) -> str:
        return f"<FactoryData groups={self._registry.names()} store={self._store!r}>"
