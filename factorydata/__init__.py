"""
factorydata - Deferred, dependency-ordered factory data for test suites.

Declare named groups of records up front, decide later whether and when
to build them, and look them up by key from any test:

- **Registry**: each preload group is registered once with its model,
  builder and dependencies
- **Resolver**: dependencies always run before the groups that need them
- **Executor**: invalid records are collected into one report instead of
  aborting the run
- **Cache**: repeated lookups return the same instance without touching
  the store

Quick Start:
    >>> from factorydata import FactoryData
    >>> from factorydata.store import MemoryRecordStore
    >>>
    >>> factory_data = FactoryData(MemoryRecordStore())
    >>>
    >>> @factory_data.preload("users", User)
    ... def users(data):
    ...     data["thom"] = {"first_name": "Thom", "last_name": "York"}
    >>>
    >>> factory_data.preload_data()
    >>> factory_data.get("users", "thom").first_name
    'Thom'
"""

__version__ = "0.1.0"
__license__ = "MIT"

from factorydata.cache import ResultCache
from factorydata.config import PreloadSettings
from factorydata.errors import (
    AlreadyRegisteredError,
    CyclicDependencyError,
    DependencyResolutionError,
    FactoryDataError,
    GroupNeverRunError,
    PreloadedRecordNotFoundError,
    PreloaderNotYetDefinedError,
    PreloadFailedError,
    PreloadLookupError,
    RecordNotFoundError,
    StoreError,
    StoreValidationError,
    UnknownDependencyError,
)
from factorydata.executor import PreloadExecutor, PreloadFailure, PreloadRun
from factorydata.facade import FactoryData, GroupAccessor
from factorydata.registry import PreloadGroup, PreloadRegistry
from factorydata.resolver import DependencyResolver, resolve_order

__all__ = [
    # Version info
    "__version__",
    "__license__",
    # Facade
    "FactoryData",
    "GroupAccessor",
    "PreloadSettings",
    # Engine
    "DependencyResolver",
    "PreloadExecutor",
    "PreloadFailure",
    "PreloadGroup",
    "PreloadRegistry",
    "PreloadRun",
    "ResultCache",
    "resolve_order",
    # Errors
    "AlreadyRegisteredError",
    "CyclicDependencyError",
    "DependencyResolutionError",
    "FactoryDataError",
    "GroupNeverRunError",
    "PreloadFailedError",
    "PreloadLookupError",
    "PreloadedRecordNotFoundError",
    "PreloaderNotYetDefinedError",
    "RecordNotFoundError",
    "StoreError",
    "StoreValidationError",
    "UnknownDependencyError",
]
