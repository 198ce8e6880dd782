"""Delay lookup tables indexed by RPM and load bucket."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Iterator, Mapping, Sequence

from .aggregation import median, round_half_up, round_tenth
from .bucketing import BucketGrid

__all__ = ["DelayTable", "axis_midpoints", "build_delay_table", "raw_midpoints"]


def raw_midpoints(boundaries: Sequence[float]) -> tuple[float, ...]:
    return tuple(
        (boundaries[index] + boundaries[index + 1]) / 2.0
        for index in range(len(boundaries) - 1)
    )


def axis_midpoints(boundaries: Sequence[float]) -> tuple[int, ...]:
    """Bucket centre of every interval, rounded to whole units."""

    return tuple(round_half_up(value) for value in raw_midpoints(boundaries))


@dataclass(frozen=True, slots=True)
class DelayTable:
    """Square table of optional delays (ms) with its interpolation axes.

    ``cells[i][j]`` is the delay for RPM bucket ``i`` and load bucket ``j``
    or ``None`` when that bucket produced no measurements.
    """

    rpm_axis: tuple[int, ...]
    load_axis: tuple[int, ...]
    cells: tuple[tuple[float | None, ...], ...]

    def __post_init__(self) -> None:
        size = len(self.cells)
        if any(len(row) != size for row in self.cells):
            raise ValueError("delay table must be square")
        if len(self.rpm_axis) != size or len(self.load_axis) != size:
            raise ValueError("axis length must match the table size")

    @classmethod
    def from_rows(
        cls,
        rows: Sequence[Sequence[float | None]],
        *,
        rpm_axis: Sequence[int] | None = None,
        load_axis: Sequence[int] | None = None,
    ) -> "DelayTable":
        cells = tuple(
            tuple(None if value is None else float(value) for value in row) for row in rows
        )
        size = len(cells)
        return cls(
            rpm_axis=tuple(int(value) for value in (rpm_axis or [0] * size)),
            load_axis=tuple(int(value) for value in (load_axis or [0] * size)),
            cells=cells,
        )

    @property
    def size(self) -> int:
        return len(self.cells)

    def value(self, rpm_index: int, load_index: int) -> float | None:
        return self.cells[rpm_index][load_index]

    def __iter__(self) -> Iterator[tuple[tuple[int, int], float | None]]:
        for i, row in enumerate(self.cells):
            for j, value in enumerate(row):
                yield (i, j), value

    @property
    def filled_cells(self) -> int:
        return sum(1 for _, value in self if value is not None)

    def as_rows(self) -> list[Mapping[str, Any]]:
        return [
            {"rpm": self.rpm_axis[i], "load": list(self.load_axis), "delays": list(row)}
            for i, row in enumerate(self.cells)
        ]

    def as_integer_rows(self) -> list[list[int]]:
        """Whole-millisecond rows with absent cells as ``0`` for firmware tables."""

        return [
            [0 if value is None else round_half_up(value) for value in row]
            for row in self.cells
        ]


def build_delay_table(grid: BucketGrid) -> DelayTable:
    """Median delay per bucket, rounded to 0.1 ms; empty buckets stay ``None``."""

    cells = tuple(
        tuple(round_tenth(median(bucket.delays)) for bucket in row) for row in grid.cells
    )
    return DelayTable(
        rpm_axis=axis_midpoints(grid.boundaries.rpm),
        load_axis=axis_midpoints(grid.boundaries.load),
        cells=cells,
    )
