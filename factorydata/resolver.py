"""
Dependency Resolver.

Computes the order in which preload groups run.

Algorithm:
    Depth-first topological sort. Each group's dependencies are visited
    (in declared order) before the group itself, and root groups are
    visited in registration order, so groups with no ordering constraint
    between them keep the order they were registered in.

Restricted Plans:
    When a subset of group names is requested, the plan contains those
    groups plus every registered group they transitively depend on.
    Everything else is left out of the plan.

The plan is recomputed on every call; nothing is cached between
executions.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence
from typing import TYPE_CHECKING

from .errors import (
    CyclicDependencyError,
    PreloaderNotYetDefinedError,
    UnknownDependencyError,
)

if TYPE_CHECKING:
    from .registry import PreloadGroup

logger = logging.getLogger(__name__)


class DependencyResolver:
    """
    Orders preload groups so dependencies always run first.

    Example:
        resolver = DependencyResolver(registry.groups())

        resolver.resolve()                    # every group
        resolver.resolve(requested=["posts"]) # posts and what it needs
    """

    def __init__(self, groups: Sequence[PreloadGroup]):
        self._groups = {group.name: group for group in sorted(groups, key=lambda g: g.index)}

    def resolve(self, requested: Iterable[str] | None = None) -> list[str]:
        """
        Compute an execution plan.

        Args:
            requested: Group names to restrict the plan to (None for all)

        Returns:
            Group names in execution order

        Raises:
            PreloaderNotYetDefinedError: If a requested name is not registered
            UnknownDependencyError: If a dependency is not registered
            CyclicDependencyError: If dependencies form a cycle
        """
        if requested is None:
            roots = list(self._groups)
        else:
            wanted = set(requested)
            for name in wanted:
                if name not in self._groups:
                    raise PreloaderNotYetDefinedError(name)
            roots = [name for name in self._groups if name in wanted]

        order: list[str] = []
        visited: set[str] = set()
        path: list[str] = []

        for name in roots:
            self._visit(name, order, visited, path)

        logger.debug(f"[resolver] Plan: {order}")
        return order

    def _visit(
        self,
        name: str,
        order: list[str],
        visited: set[str],
        path: list[str],
    ) -> None:
        if name in visited:
            return
        if name in path:
            cycle = path[path.index(name):] + [name]
            raise CyclicDependencyError(cycle)

        path.append(name)
        group = self._groups[name]
        for dependency in group.depends_on:
            if dependency not in self._groups:
                raise UnknownDependencyError(name, dependency)
            self._visit(dependency, order, visited, path)
        path.pop()

        visited.add(name)
        order.append(name)


def resolve_order(
    groups: Sequence[PreloadGroup],
    requested: Iterable[str] | None = None,
) -> list[str]:
    """Convenience wrapper around DependencyResolver.resolve()."""
    return DependencyResolver(groups).resolve(requested)
