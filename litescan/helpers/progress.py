"""Rich progress display for sync passes."""

from __future__ import annotations

from typing import TYPE_CHECKING

from rich.progress import (
    BarColumn,
    MofNCompleteColumn,
    Progress,
    SpinnerColumn,
    TextColumn,
    TimeElapsedColumn,
    TimeRemainingColumn,
)


if TYPE_CHECKING:
    from rich.console import Console


def create_standard_progress(
    console: Console | None = None, *, expand: bool = False
) -> Progress:
    """Block scan bar: spinner, window label, bar, blocks done of total, timings.

    Args:
        console: Console to draw on; rich's global console when omitted
        expand: Stretch the bar to the terminal width
    """
    return Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        BarColumn(),
        MofNCompleteColumn(),
        TextColumn("•"),
        TimeElapsedColumn(),
        TextColumn("•"),
        TimeRemainingColumn(),
        console=console,
        expand=expand,
    )


__all__ = [
    "create_standard_progress",
]
