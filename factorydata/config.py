"""
Preload configuration.

Settings decide which groups a preload run covers when the caller does
not name them, and how failures are surfaced.

Environment Variables:
    FACTORY_DATA_PRELOAD_ALL        "true"/"false"
    FACTORY_DATA_PRELOAD_TYPES      comma-separated group names
    FACTORY_DATA_REPORT_FAILURES    "true"/"false"
    FACTORY_DATA_RAISE_ON_FAILURE   "true"/"false"

Setting FACTORY_DATA_PRELOAD_TYPES alone implies preload_all=False, so

    FACTORY_DATA_PRELOAD_TYPES=users,posts pytest

preloads only users, posts and what they depend on.
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from typing import Any

from pydantic import BaseModel, Field, field_validator

ENV_PREFIX = "FACTORY_DATA_"


def split_names(value: str) -> list[str]:
    """Split "users, posts" into ["users", "posts"]."""
    return [name.strip() for name in value.split(",") if name.strip()]


class PreloadSettings(BaseModel):
    """Settings for preload runs."""

    preload_all: bool = Field(True, description="Run every registered group by default")
    preload_types: list[str] = Field(
        default_factory=list,
        description="Groups to run when preload_all is False",
    )
    report_failures: bool = Field(True, description="Write the failure report to stderr")
    raise_on_failure: bool = Field(
        False,
        description="Raise PreloadFailedError after a run with failures",
    )

    model_config = {"extra": "forbid"}

    @field_validator("preload_types", mode="before")
    @classmethod
    def _split_types(cls, value: Any) -> Any:
        if isinstance(value, str):
            return split_names(value)
        return value

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> PreloadSettings:
        """
        Build settings from FACTORY_DATA_* environment variables.

        Raises:
            pydantic.ValidationError: If a variable has an invalid value
        """
        if environ is None:
            environ = os.environ

        data: dict[str, Any] = {}
        for name in cls.model_fields:
            value = environ.get(f"{ENV_PREFIX}{name.upper()}")
            if value is not None:
                data[name] = value

        if "preload_types" in data and "preload_all" not in data:
            data["preload_all"] = False

        return cls.model_validate(data)

    def requested_types(self) -> list[str] | None:
        """Groups to restrict a run to, or None to run everything."""
        if self.preload_all:
            return None
        return list(self.preload_types)
