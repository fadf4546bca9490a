"""
Preload Executor.

Runs preload builders in dependency order and persists what they build.

Execution Model:
    - The plan is resolved fresh for every run; resolution errors are
      raised before any builder runs
    - Each builder is invoked exactly once with an empty dict
    - Every draft it contributes is persisted if it is not already
    - A draft that fails validation is recorded as a PreloadFailure and
      the run continues with the next draft and the next group
    - A builder that raises is recorded as a failure too; drafts it added
      before raising are still persisted
    - After the run, all failures are written as one report

Strict Mode:
    A subset run (execute_subset) is strict: groups outside its plan count
    as never run. A full run is not strict: a group registered after it
    counts as run with no records. Strict mode belongs to the PreloadRun,
    so each run decides it afresh.

Usage:
    executor = PreloadExecutor(registry, store, cache)

    run = executor.execute_all()
    run.success        # False if any record failed to save
    run.failures       # [PreloadFailure(group="users", key="bob", ...)]

    run = executor.execute_subset(["posts"])  # posts + its dependencies
"""

from __future__ import annotations

import logging
import sys
import time
from collections.abc import Hashable, Iterable, Mapping
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any, TextIO
from uuid import UUID, uuid4

from .errors import FactoryDataError, StoreValidationError
from .report import format_failure_report
from .resolver import DependencyResolver

if TYPE_CHECKING:
    from .cache import ResultCache
    from .registry import PreloadGroup, PreloadRegistry
    from .store.base import RecordStore

logger = logging.getLogger(__name__)


def _utc_now() -> datetime:
    return datetime.now(UTC)


@dataclass(frozen=True)
class PreloadFailure:
    """
    A record that could not be preloaded.

    Attributes:
        group: Group the record belongs to
        key: Draft key, or None when the builder itself raised
        model_name: Record type name
        errors: Field name -> error messages
    """

    group: str
    key: Hashable | None
    model_name: str
    errors: dict[str, list[str]] = field(default_factory=dict)


@dataclass
class PreloadRun:
    """
    State of one preload run.

    Created when a run starts and updated as each group executes, so
    builders can read records of groups that already ran.
    """

    plan: list[str]
    strict: bool = False
    run_id: UUID = field(default_factory=uuid4)
    started_at: datetime = field(default_factory=_utc_now)
    executed: list[str] = field(default_factory=list)
    failures: list[PreloadFailure] = field(default_factory=list)
    group_timings: dict[str, float] = field(default_factory=dict)
    completed: bool = False

    @property
    def success(self) -> bool:
        return not self.failures

    @property
    def elapsed_ms(self) -> float:
        delta = datetime.now(UTC) - self.started_at
        return delta.total_seconds() * 1000

    def has_run(self, group: str) -> bool:
        """
        Whether lookups in `group` should treat it as run.

        Outside strict mode every registered group counts as run once the
        run has completed, even one registered after it started. While the
        run is in progress only groups that have executed count.
        """
        return group in self.executed or (not self.strict and self.completed)

    def failed_keys(self, group: str) -> set[Hashable]:
        return {f.key for f in self.failures if f.group == group and f.key is not None}

    def to_dict(self) -> dict[str, Any]:
        return {
            "run_id": str(self.run_id),
            "started_at": self.started_at.isoformat(),
            "plan": list(self.plan),
            "strict": self.strict,
            "executed": list(self.executed),
            "success": self.success,
            "failure_count": len(self.failures),
            "group_timings": dict(self.group_timings),
        }


class PreloadExecutor:
    """
    Executes registered preload groups against a record store.

    Example:
        executor = PreloadExecutor(registry, store, cache)
        run = executor.execute_all()

        if not run.success:
            for failure in run.failures:
                print(failure.group, failure.key, failure.errors)
    """

    def __init__(
        self,
        registry: PreloadRegistry,
        store: RecordStore,
        cache: ResultCache,
        *,
        stream: TextIO | None = None,
        report_failures: bool = True,
    ):
        """
        Initialize executor.

        Args:
            registry: Registered preload groups
            store: Store records are persisted to
            cache: Cache receiving every persisted record
            stream: Where the failure report is written (stderr if None)
            report_failures: Whether to write the failure report at all
        """
        self._registry = registry
        self._store = store
        self._cache = cache
        self._stream = stream
        self._report_failures = report_failures
        self._current_run: PreloadRun | None = None
        self._running = False

    @property
    def current_run(self) -> PreloadRun | None:
        """The latest run, including one still in progress."""
        return self._current_run

    def execute_all(self) -> PreloadRun:
        """Run every registered group."""
        return self._execute(requested=None)

    def execute_subset(self, names: Iterable[str]) -> PreloadRun:
        """Run only `names` and the groups they depend on, in strict mode."""
        return self._execute(requested=list(names))

    def forget(self) -> None:
        """Drop the latest run, as if nothing had been preloaded."""
        self._current_run = None

    def _execute(self, requested: list[str] | None) -> PreloadRun:
        if self._running:
            raise FactoryDataError("A preload run is already in progress")

        plan = DependencyResolver(self._registry.groups()).resolve(requested)
        run = PreloadRun(plan=plan, strict=requested is not None)

        logger.info(
            f"[executor] Preload starting: run_id={str(run.run_id)[:8]}..., "
            f"strict={run.strict}, plan={plan}"
        )

        self._cache.clear()
        self._current_run = run
        self._running = True
        try:
            for name in plan:
                self._execute_group(self._registry.get(name), run)
        finally:
            self._running = False

        run.completed = True

        if run.failures:
            report = format_failure_report(run.failures)
            logger.error(f"[executor] {report}")
            if self._report_failures:
                print(report, file=self._stream or sys.stderr)

        logger.info(
            f"[executor] Preload complete: run_id={str(run.run_id)[:8]}..., "
            f"success={run.success}, groups={len(run.executed)}, "
            f"records={len(self._cache)}, duration={run.elapsed_ms:.1f}ms"
        )
        return run

    def _execute_group(self, group: PreloadGroup, run: PreloadRun) -> None:
        start_time = time.perf_counter()
        drafts: dict[Hashable, Any] = {}

        try:
            group.builder(drafts)
        except Exception as e:
            logger.warning(f"[executor] Preloader '{group.name}' raised: {e}", exc_info=True)
            run.failures.append(
                PreloadFailure(
                    group=group.name,
                    key=None,
                    model_name=group.model_name,
                    errors={"base": [f"{type(e).__name__}: {e}"]},
                )
            )
        finally:
            run.executed.append(group.name)

        for key, draft in drafts.items():
            try:
                record = self._persist(group, draft)
            except StoreValidationError as e:
                logger.warning(f"[executor] {group.name}[{key!r}] could not be saved: {e}")
                run.failures.append(
                    PreloadFailure(
                        group=group.name,
                        key=key,
                        model_name=e.model_name,
                        errors=e.field_errors,
                    )
                )
                continue
            self._cache.remember(group.name, key, record)

        duration_ms = (time.perf_counter() - start_time) * 1000
        run.group_timings[group.name] = duration_ms

        logger.debug(
            f"[executor] Preloader '{group.name}': "
            f"drafts={len(drafts)}, time={duration_ms:.1f}ms"
        )

    def _persist(self, group: PreloadGroup, draft: Any) -> Any:
        """Persist a draft unless it already is."""
        if isinstance(draft, Mapping):
            return self._store.create(group.model, draft)
        if self._store.is_persisted(draft):
            return draft
        return self._store.save(draft)

    def __repr__(self) -> str:
        return f"PreloadExecutor(groups={self._registry.names()})"
