"""Consistency of per-session delay tables and the derived master table.

For every bucket the per-session medians that are present are pooled and
summarised with population statistics (dividing by ``N``).  A bucket needs
at least two contributing sessions to be reported; anything less stays
absent in both the statistics and the master table.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Mapping, Sequence

import numpy as np

from ..equations.aggregation import round_half_up, round_tenth
from ..equations.bucketing import AxisBoundaries
from ..equations.constants import MIN_SESSIONS_FOR_STATS
from ..equations.tables import DelayTable, raw_midpoints

__all__ = [
    "BucketStatistics",
    "CrossSessionReport",
    "aggregate_sessions",
    "bucket_statistics",
    "consistency_assessment",
    "cross_session_statistics",
    "cv_assessment",
    "master_axes",
    "master_table",
]

logger = logging.getLogger(__name__)


def cv_assessment(cv: float | None) -> str:
    if cv is None:
        return "N/A"
    if cv < 15.0:
        return "EXCELLENT"
    if cv < 25.0:
        return "GOOD"
    if cv < 40.0:
        return "MODERATE"
    return "VARIABLE"


def consistency_assessment(average_cv: float | None, *, moderate_limit: float = 35.0) -> str:
    """Classify an average CV; ``moderate_limit`` is 40 for threshold sweeps."""

    if average_cv is None:
        return "N/A"
    if average_cv < 20.0:
        return "HIGHLY CONSISTENT"
    if average_cv < moderate_limit:
        return "MODERATELY CONSISTENT"
    return "VARIABLE"


@dataclass(frozen=True, slots=True)
class BucketStatistics:
    rpm_index: int
    load_index: int
    values: tuple[float, ...]
    mean: float
    std_dev: float
    cv: float | None
    minimum: float
    maximum: float

    @property
    def key(self) -> tuple[int, int]:
        return self.rpm_index, self.load_index

    @property
    def files_with_data(self) -> int:
        return len(self.values)

    @property
    def range(self) -> float:
        return self.maximum - self.minimum

    @property
    def assessment(self) -> str:
        return cv_assessment(self.cv)


def bucket_statistics(
    values: Sequence[float], *, rpm_index: int = 0, load_index: int = 0
) -> BucketStatistics:
    """Population mean, standard deviation and CV (%) of ``values``."""

    if not values:
        raise ValueError("bucket statistics need at least one value")
    array = np.asarray(values, dtype=float)
    mean = float(array.mean())
    std_dev = float(array.std())
    cv = std_dev / mean * 100.0 if mean != 0.0 else None
    return BucketStatistics(
        rpm_index=rpm_index,
        load_index=load_index,
        values=tuple(float(value) for value in values),
        mean=mean,
        std_dev=std_dev,
        cv=cv,
        minimum=float(array.min()),
        maximum=float(array.max()),
    )


def cross_session_statistics(
    tables: Sequence[DelayTable], *, min_sessions: int = MIN_SESSIONS_FOR_STATS
) -> dict[tuple[int, int], BucketStatistics]:
    """Statistics for every bucket backed by at least ``min_sessions`` tables."""

    if not tables:
        return {}
    size = tables[0].size
    if any(table.size != size for table in tables):
        raise ValueError("all session tables must share the same grid size")

    report: dict[tuple[int, int], BucketStatistics] = {}
    for i in range(size):
        for j in range(size):
            values = [
                value for value in (table.value(i, j) for table in tables) if value is not None
            ]
            if len(values) < min_sessions:
                continue
            report[(i, j)] = bucket_statistics(values, rpm_index=i, load_index=j)
    return report


def master_axes(
    boundaries: Sequence[AxisBoundaries],
) -> tuple[tuple[int, ...], tuple[int, ...]]:
    """Average the unrounded bucket midpoints across sessions."""

    if not boundaries:
        return (), ()
    rpm = np.mean([raw_midpoints(entry.rpm) for entry in boundaries], axis=0)
    load = np.mean([raw_midpoints(entry.load) for entry in boundaries], axis=0)
    return (
        tuple(round_half_up(float(value)) for value in rpm),
        tuple(round_half_up(float(value)) for value in load),
    )


def master_table(
    statistics: Mapping[tuple[int, int], BucketStatistics],
    size: int,
    *,
    rpm_axis: Sequence[int] | None = None,
    load_axis: Sequence[int] | None = None,
) -> DelayTable:
    rows = [
        [
            round_tenth(statistics[(i, j)].mean) if (i, j) in statistics else None
            for j in range(size)
        ]
        for i in range(size)
    ]
    return DelayTable.from_rows(rows, rpm_axis=rpm_axis, load_axis=load_axis)


@dataclass(frozen=True, slots=True)
class CrossSessionReport:
    """Per-bucket statistics, their average CV and the master table."""

    statistics: Mapping[tuple[int, int], BucketStatistics]
    master: DelayTable
    session_count: int

    @property
    def average_cv(self) -> float | None:
        cvs = [entry.cv for entry in self.statistics.values() if entry.cv is not None]
        if not cvs:
            return None
        return float(np.mean(cvs))

    @property
    def consistency(self) -> str:
        return consistency_assessment(self.average_cv)

    def ordered_by_cv(self) -> list[BucketStatistics]:
        return sorted(
            self.statistics.values(),
            key=lambda entry: (entry.cv is None, entry.cv if entry.cv is not None else 0.0),
        )


def aggregate_sessions(
    tables: Sequence[DelayTable],
    boundaries: Sequence[AxisBoundaries] = (),
    *,
    min_sessions: int = MIN_SESSIONS_FOR_STATS,
) -> CrossSessionReport:
    """Build the cross-session report and master table from session tables."""

    if not tables:
        raise ValueError("cross-session aggregation needs at least one session table")
    statistics = cross_session_statistics(tables, min_sessions=min_sessions)
    rpm_axis, load_axis = master_axes(boundaries)
    size = tables[0].size
    master = master_table(
        statistics,
        size,
        rpm_axis=rpm_axis or None,
        load_axis=load_axis or None,
    )
    logger.info(
        "Aggregated session tables",
        extra={
            "sessions": len(tables),
            "buckets_reported": len(statistics),
            "master_cells": master.filled_cells,
        },
    )
    return CrossSessionReport(statistics=statistics, master=master, session_count=len(tables))
