"""
Exceptions for factory data preloading.

Error Taxonomy:
    - Registration: a group name registered twice
    - Resolution: dependency cycles and dependencies on unknown groups
    - Lookup: unknown group vs. group that never ran vs. missing key
    - Store: per-record validation failures and missing records

Registration, resolution and lookup errors are defects in test setup and
propagate to the caller. Store validation errors raised while a preload
run persists records are collected by the executor instead of aborting.
"""

from __future__ import annotations

from collections.abc import Hashable, Mapping, Sequence
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .executor import PreloadRun


class FactoryDataError(Exception):
    """Base exception for all factory data errors."""

    pass


# =============================================================================
# Registration
# =============================================================================


class AlreadyRegisteredError(FactoryDataError):
    """Raised when a preload group name is registered a second time."""

    def __init__(self, name: str):
        super().__init__(f"Preloader '{name}' is already registered")
        self.name = name


# =============================================================================
# Resolution
# =============================================================================


class DependencyResolutionError(FactoryDataError):
    """Base for errors computing an execution plan."""

    pass


class CyclicDependencyError(DependencyResolutionError):
    """Raised when preload groups depend on each other in a cycle."""

    def __init__(self, cycle: Sequence[str]):
        self.cycle = list(cycle)
        super().__init__(f"Cyclic preload dependency: {' -> '.join(self.cycle)}")


class UnknownDependencyError(DependencyResolutionError):
    """Raised when a group depends on a group that was never registered."""

    def __init__(self, group: str, dependency: str):
        super().__init__(
            f"Preloader '{group}' depends on '{dependency}', which is not registered"
        )
        self.group = group
        self.dependency = dependency


# =============================================================================
# Lookup
# =============================================================================


class PreloadLookupError(FactoryDataError):
    """Base for errors retrieving a preloaded record."""

    def __init__(self, message: str, group: str, key: Hashable | None = None):
        super().__init__(message)
        self.group = group
        self.key = key


class PreloaderNotYetDefinedError(PreloadLookupError):
    """Raised when a group name is referenced that was never registered."""

    def __init__(self, group: str):
        super().__init__(f"No preloader is defined for '{group}'", group)


class GroupNeverRunError(PreloadLookupError):
    """Raised when a registered group was not part of the executed preloads."""

    def __init__(self, group: str, key: Hashable | None = None):
        super().__init__(
            f"Preloader '{group}' is defined but was not run. "
            "Include it in the preload run to access its records.",
            group,
            key,
        )


class PreloadedRecordNotFoundError(PreloadLookupError):
    """Raised when a group ran but holds no record under the requested key."""

    def __init__(self, group: str, key: Hashable, *, failed: bool = False):
        if failed:
            message = f"Record {key!r} in '{group}' failed to save during preload"
        else:
            message = f"No record {key!r} was preloaded for '{group}'"
        super().__init__(message, group, key)
        self.failed = failed


# =============================================================================
# Store
# =============================================================================


class StoreError(FactoryDataError):
    """Base for errors reported by a record store."""

    pass


class StoreValidationError(StoreError):
    """Raised when a record cannot be saved because it is invalid."""

    def __init__(self, model_name: str, field_errors: Mapping[str, Sequence[str]]):
        self.model_name = model_name
        self.field_errors = {field: list(messages) for field, messages in field_errors.items()}
        summary = "; ".join(
            f"{field}: {', '.join(messages)}" for field, messages in self.field_errors.items()
        )
        super().__init__(f"{model_name} could not be saved: {summary}")


class RecordNotFoundError(StoreError):
    """Raised when the store has no record for an identity."""

    def __init__(self, model_name: str, identity: Hashable):
        super().__init__(f"{model_name} with identity {identity!r} not found")
        self.model_name = model_name
        self.identity = identity


# =============================================================================
# Run
# =============================================================================


class PreloadFailedError(FactoryDataError):
    """Raised after a preload run with failures when raise_on_failure is set."""

    def __init__(self, run: PreloadRun):
        super().__init__(
            f"{len(run.failures)} record(s) failed to preload "
            f"across groups {sorted({f.group for f in run.failures})}"
        )
        self.run = run
