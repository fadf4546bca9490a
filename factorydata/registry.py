"""
Preload Registry.

The registry holds every named preload group: its builder, its record
model and the groups it depends on.

Design Principle:
    Groups are registered once and never invoked at registration time.
    Nothing runs until a preload is explicitly requested; the registry is
    append-only between resets.

Usage:
    registry = PreloadRegistry()

    def build_users(data):
        data["thom"] = {"first_name": "Thom", "last_name": "York"}

    registry.register("users", User, build_users)
    registry.register("posts", Post, build_posts, depends_on=["users"])

    registry.is_registered("users")  # True
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Hashable, Iterable
from dataclasses import dataclass
from typing import Any

from .errors import AlreadyRegisteredError, PreloaderNotYetDefinedError

logger = logging.getLogger(__name__)

Builder = Callable[[dict[Hashable, Any]], None]


@dataclass(frozen=True)
class PreloadGroup:
    """
    A named group of records to preload together.

    Attributes:
        name: Unique group identifier (e.g. "users")
        model: Record type the group's drafts are persisted as
        builder: Callable populating a key -> draft mapping
        depends_on: Groups whose builders must run first
        index: Registration position, used to order independent groups
    """

    name: str
    model: type
    builder: Builder
    depends_on: tuple[str, ...] = ()
    index: int = 0

    @property
    def model_name(self) -> str:
        return self.model.__name__


class PreloadRegistry:
    """
    Registry of preload groups.

    Example:
        registry = PreloadRegistry()
        registry.register("users", User, build_users)

        group = registry.get("users")
        names = registry.names()  # ["users"]
    """

    def __init__(self) -> None:
        self._groups: dict[str, PreloadGroup] = {}

    def register(
        self,
        name: str,
        model: type,
        builder: Builder,
        *,
        depends_on: str | Iterable[str] = (),
    ) -> PreloadGroup:
        """
        Register a preload group without invoking its builder.

        Args:
            name: Unique group name
            model: Record type for the group's drafts
            builder: Callable populating a key -> draft mapping
            depends_on: Group name or names that must run first

        Returns:
            The registered PreloadGroup

        Raises:
            AlreadyRegisteredError: If the name is already registered
        """
        if name in self._groups:
            raise AlreadyRegisteredError(name)

        if not callable(builder):
            raise TypeError(f"Preloader '{name}' builder must be callable, got {builder!r}")

        if isinstance(depends_on, str):
            depends_on = (depends_on,)

        group = PreloadGroup(
            name=name,
            model=model,
            builder=builder,
            depends_on=tuple(depends_on),
            index=len(self._groups),
        )
        self._groups[name] = group

        logger.info(
            f"[registry] Registered preloader: {name} "
            f"(model={group.model_name}, depends_on={list(group.depends_on)})"
        )
        return group

    def is_registered(self, name: str) -> bool:
        return name in self._groups

    def get(self, name: str) -> PreloadGroup:
        """
        Get a group by name.

        Raises:
            PreloaderNotYetDefinedError: If no group has that name
        """
        group = self._groups.get(name)
        if group is None:
            raise PreloaderNotYetDefinedError(name)
        return group

    def groups(self) -> list[PreloadGroup]:
        """All groups in registration order."""
        return list(self._groups.values())

    def names(self) -> list[str]:
        return list(self._groups.keys())

    def models(self) -> list[type]:
        """Distinct record models in registration order."""
        models: list[type] = []
        for group in self._groups.values():
            if group.model not in models:
                models.append(group.model)
        return models

    def reset(self) -> None:
        """Drop every registration."""
        count = len(self._groups)
        self._groups.clear()
        logger.info(f"[registry] Reset: dropped {count} preloader(s)")

    def __len__(self) -> int:
        return len(self._groups)

    def __contains__(self, name: str) -> bool:
        return name in self._groups

    def __repr__(self) -> str:
        return f"<PreloadRegistry groups={list(self._groups.keys())}>"
