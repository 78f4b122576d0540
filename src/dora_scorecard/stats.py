"""Shared statistics helpers: null-aware averaging and summary stats."""

from __future__ import annotations

import statistics
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import datetime

SECONDS_PER_HOUR = 3600


@dataclass
class SummaryStats:
    avg: float | None = None
    median: float | None = None
    min: float | None = None
    max: float | None = None


def hours_between(later: datetime, earlier: datetime) -> float:
    """Elapsed hours from ``earlier`` to ``later`` (negative if reversed)."""
    return (later - earlier).total_seconds() / SECONDS_PER_HOUR


def round1(value: float | None) -> float | None:
    if value is None:
        return None
    return round(value, 1)


def mean_of(values: Iterable[float | None]) -> float | None:
    """Mean of the non-None values, or None if there are none."""
    samples = [v for v in values if v is not None]
    if not samples:
        return None
    return sum(samples) / len(samples)


def calculate_stats(values: Iterable[float | None]) -> SummaryStats:
    """Average, median, min and max of the non-None values, one decimal each."""
    samples = sorted(v for v in values if v is not None)
    if not samples:
        return SummaryStats()
    return SummaryStats(
        avg=round1(sum(samples) / len(samples)),
        median=round1(statistics.median(samples)),
        min=round1(samples[0]),
        max=round1(samples[-1]),
    )
