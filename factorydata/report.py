"""
Aggregated failure report for a preload run.

Every record that failed to save is listed in one report so a broken
setup can be fixed in a single pass.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .executor import PreloadFailure

REPORT_HEADER = "Error preloading factory data."


def format_failure(failure: PreloadFailure) -> str:
    """Format one failure as an indented block."""
    if failure.key is None:
        lines = [f"  Preloader '{failure.group}' raised an error while building."]
    else:
        lines = [
            f"  {failure.model_name} {failure.key!r} (group: {failure.group}) could not be saved."
        ]

    lines.append("    Errors:")
    for field, messages in failure.errors.items():
        for message in messages:
            lines.append(f"      {field}: {message}")
    return "\n".join(lines)


def format_failure_report(failures: Sequence[PreloadFailure]) -> str:
    """
    Format every failure of a run as one multi-line report.

    Example:
        Error preloading factory data.
          User 'bob' (group: users) could not be saved.
            Errors:
              last_name: Field required
    """
    if not failures:
        return ""
    return "\n".join([REPORT_HEADER, *(format_failure(f) for f in failures)])
