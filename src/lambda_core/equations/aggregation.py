"""Robust reduction of per-bucket delay measurements."""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Iterable, Sequence

__all__ = ["DelaySummary", "median", "round_half_up", "round_tenth", "summarise_delays"]


def median(values: Iterable[float]) -> float | None:
    """Median with the even-length midpoint rule; ``None`` when empty."""

    ordered = sorted(float(value) for value in values)
    if not ordered:
        return None
    middle = len(ordered) // 2
    if len(ordered) % 2 == 0:
        return (ordered[middle - 1] + ordered[middle]) / 2.0
    return ordered[middle]


def round_half_up(value: float) -> int:
    """Round to the nearest integer with halves going towards +inf."""

    return int(math.floor(value + 0.5))


def round_tenth(value: float | None) -> float | None:
    if value is None:
        return None
    return math.floor(value * 10.0 + 0.5) / 10.0


@dataclass(frozen=True, slots=True)
class DelaySummary:
    """Count, median and range of one bucket's delays (ms)."""

    count: int
    median: float | None
    minimum: float | None
    maximum: float | None

    def rounded(self) -> "DelaySummary":
        return DelaySummary(
            count=self.count,
            median=round_tenth(self.median),
            minimum=round_tenth(self.minimum),
            maximum=round_tenth(self.maximum),
        )


def summarise_delays(delays: Sequence[float]) -> DelaySummary:
    if not delays:
        return DelaySummary(count=0, median=None, minimum=None, maximum=None)
    return DelaySummary(
        count=len(delays),
        median=median(delays),
        minimum=float(min(delays)),
        maximum=float(max(delays)),
    )
