"""Operating-condition bucketing over the RPM × load plane.

Boundaries are simple order statistics of a session's samples: the minimum,
``bucket_count - 1`` interior cuts taken at rank ``floor(f * n)`` of the
sorted values, and the maximum.  Each axis therefore splits into
``bucket_count`` half-open intervals ``[b[i], b[i + 1])`` with the final
interval closed on the right so the maximum itself is included.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Iterator, Sequence

from .samples import Sample, SampleStore

__all__ = [
    "AxisBoundaries",
    "Bucket",
    "BucketGrid",
    "assign_buckets",
    "bucket_of",
    "compute_boundaries",
    "order_statistic",
    "session_boundaries",
]


def order_statistic(sorted_values: Sequence[float], fraction: float) -> float:
    """Return the element at rank ``floor(fraction * n)`` of ``sorted_values``."""

    if not sorted_values:
        raise ValueError("cannot take an order statistic of an empty sequence")
    rank = min(int(math.floor(fraction * len(sorted_values))), len(sorted_values) - 1)
    return float(sorted_values[rank])


def compute_boundaries(values: Sequence[float], bucket_count: int = 3) -> tuple[float, ...]:
    """Return ``bucket_count + 1`` non-decreasing cut points for ``values``."""

    ordered = sorted(float(value) for value in values)
    if not ordered:
        raise ValueError("cannot compute bucket boundaries without samples")
    cuts = [ordered[0]]
    cuts.extend(
        order_statistic(ordered, index / bucket_count) for index in range(1, bucket_count)
    )
    cuts.append(ordered[-1])
    return tuple(cuts)


def bucket_of(value: float, boundaries: Sequence[float]) -> int | None:
    """Return the interval index holding ``value`` or ``None``.

    A value equal to an interior cut belongs to the interval that starts at
    that cut; only the global maximum is accepted on a right edge.
    """

    last = len(boundaries) - 1
    for index in range(last):
        if boundaries[index] <= value < boundaries[index + 1]:
            return index
    if last > 0 and value == boundaries[last]:
        return last - 1
    return None


@dataclass(frozen=True, slots=True)
class AxisBoundaries:
    """Cut points for both grid axes of one session."""

    rpm: tuple[float, ...]
    load: tuple[float, ...]

    @property
    def bucket_count(self) -> int:
        return len(self.rpm) - 1

    def locate(self, sample: Sample) -> tuple[int, int] | None:
        rpm_index = bucket_of(sample.rpm, self.rpm)
        if rpm_index is None:
            return None
        load_index = bucket_of(sample.load, self.load)
        if load_index is None:
            return None
        return rpm_index, load_index


def session_boundaries(store: SampleStore, bucket_count: int = 3) -> AxisBoundaries:
    """Compute RPM and load boundaries from every sample in ``store``."""

    return AxisBoundaries(
        rpm=compute_boundaries([sample.rpm for sample in store], bucket_count),
        load=compute_boundaries([sample.load for sample in store], bucket_count),
    )


@dataclass(slots=True)
class Bucket:
    """One cell of the grid with its samples and detected delays (ms)."""

    rpm_index: int
    load_index: int
    samples: list[Sample] = field(default_factory=list)
    delays: list[float] = field(default_factory=list)

    @property
    def key(self) -> tuple[int, int]:
        return self.rpm_index, self.load_index


@dataclass(slots=True)
class BucketGrid:
    """Square grid of :class:`Bucket` cells indexed ``[rpm][load]``."""

    boundaries: AxisBoundaries
    cells: list[list[Bucket]]

    @classmethod
    def empty(cls, boundaries: AxisBoundaries) -> "BucketGrid":
        size = boundaries.bucket_count
        cells = [[Bucket(i, j) for j in range(size)] for i in range(size)]
        return cls(boundaries=boundaries, cells=cells)

    @property
    def size(self) -> int:
        return len(self.cells)

    def __getitem__(self, key: tuple[int, int]) -> Bucket:
        rpm_index, load_index = key
        return self.cells[rpm_index][load_index]

    def __iter__(self) -> Iterator[Bucket]:
        for row in self.cells:
            yield from row


def assign_buckets(store: SampleStore, boundaries: AxisBoundaries) -> BucketGrid:
    """Distribute ``store`` samples over a grid; out-of-range samples are dropped."""

    grid = BucketGrid.empty(boundaries)
    for sample in store:
        key = boundaries.locate(sample)
        if key is not None:
            grid[key].samples.append(sample)
    return grid
