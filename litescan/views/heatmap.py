"""Hourly activity heatmap over the cached transactions."""

from __future__ import annotations

from typing import TYPE_CHECKING

import pandas as pd


if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping

    from litescan.cache.models import TxSummary


HOURS = list(range(24))


def activity_heatmap(transactions: Iterable[TxSummary]) -> dict[str, int]:
    """Transaction count per UTC hour bucket ``YYYY-MM-DD-HH``.

    Buckets are sorted chronologically; the counts sum to the number of
    transactions.

    Example:
        >>> activity_heatmap(cache.transactions)
        {'2024-03-01-14': 12, '2024-03-01-15': 3}
    """
    timestamps = [tx.timestamp for tx in transactions]
    if not timestamps:
        return {}

    buckets = pd.to_datetime(pd.Series(timestamps), unit="s", utc=True).dt.strftime(
        "%Y-%m-%d-%H"
    )
    counts = buckets.value_counts().sort_index()
    return {str(bucket): int(count) for bucket, count in counts.items()}


def daily_totals(heatmap: Mapping[str, int]) -> dict[str, int]:
    """Collapse hour buckets into ``YYYY-MM-DD`` totals."""
    if not heatmap:
        return {}
    series = pd.Series(heatmap, dtype="int64")
    totals = series.groupby(series.index.str[:10]).sum()
    return {str(day): int(total) for day, total in totals.items()}


def hour_day_grid(heatmap: Mapping[str, int]) -> pd.DataFrame:
    """Days as rows, hours 0-23 as columns, zero-filled."""
    if not heatmap:
        return pd.DataFrame(columns=HOURS, dtype="int64")

    series = pd.Series(heatmap, dtype="int64")
    frame = pd.DataFrame(
        {
            "day": series.index.str[:10],
            "hour": series.index.str[11:].astype(int),
            "count": series.to_numpy(),
        }
    )
    grid = frame.pivot_table(
        index="day", columns="hour", values="count", aggfunc="sum", fill_value=0
    )
    return grid.reindex(columns=HOURS, fill_value=0).astype("int64")


__all__ = [
    "activity_heatmap",
    "daily_totals",
    "hour_day_grid",
]
