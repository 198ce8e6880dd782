"""Delay-table validation by time-shifted lambda dispersion.

Each sample is moved back in time by the delay its bucket prescribes.  When
a recorded sample sits close enough to that shifted instant the sample's λ
is collected for its bucket.  A table that describes the sensor lag well
groups λ readings with consistent history, so the mean of the per-bucket
population standard deviations serves as an accuracy score (lower is
better).  The score is only comparable between tables evaluated on the same
session.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Mapping, Sequence

import numpy as np

from ..equations.bucketing import AxisBoundaries
from ..equations.constants import MATCH_TOLERANCE_S, MIN_VALIDATION_SAMPLES
from ..equations.samples import SampleStore
from ..equations.tables import DelayTable

__all__ = [
    "AccuracyReport",
    "BucketAccuracy",
    "CrossValidationSummary",
    "TableComparison",
    "classify_difference",
    "compare_accuracy",
    "compare_tables",
    "nearest_index",
    "summarise_comparisons",
    "validate_table",
]

logger = logging.getLogger(__name__)


def nearest_index(times: np.ndarray, target: float) -> int:
    """Index of the timestamp closest to ``target`` in ascending ``times``.

    Equal distances resolve to the lower index, matching a front-to-back
    linear scan.  Returns ``-1`` for an empty array.
    """

    count = len(times)
    if count == 0:
        return -1
    position = int(np.searchsorted(times, target, side="left"))
    if position == 0:
        return 0
    if position == count:
        best = count - 1
    else:
        left_gap = target - times[position - 1]
        right_gap = times[position] - target
        best = position - 1 if left_gap <= right_gap else position
    # first of any run of equal timestamps
    return int(np.searchsorted(times, times[best], side="left"))


@dataclass(frozen=True, slots=True)
class BucketAccuracy:
    """λ dispersion of one bucket under a delay hypothesis."""

    rpm_index: int
    load_index: int
    count: int
    lambda_mean: float
    lambda_std_dev: float
    pw_correlation: float

    @property
    def key(self) -> tuple[int, int]:
        return self.rpm_index, self.load_index

    @property
    def lambda_cv(self) -> float | None:
        if self.lambda_mean == 0.0:
            return None
        return self.lambda_std_dev / self.lambda_mean * 100.0


@dataclass(frozen=True, slots=True)
class AccuracyReport:
    buckets: Mapping[tuple[int, int], BucketAccuracy] = field(default_factory=dict)
    resolved_samples: int = 0

    @property
    def buckets_analyzed(self) -> int:
        return len(self.buckets)

    @property
    def avg_std_dev(self) -> float:
        if not self.buckets:
            return 0.0
        return float(np.mean([entry.lambda_std_dev for entry in self.buckets.values()]))


def _pearson(x: np.ndarray, y: np.ndarray) -> float:
    x_std = float(x.std())
    y_std = float(y.std())
    if x_std <= 0.0 or y_std <= 0.0:
        return 0.0
    covariance = float(np.mean((x - x.mean()) * (y - y.mean())))
    return covariance / (x_std * y_std)


def validate_table(
    store: SampleStore,
    boundaries: AxisBoundaries,
    table: DelayTable,
    *,
    tolerance_s: float = MATCH_TOLERANCE_S,
    min_samples: int = MIN_VALIDATION_SAMPLES,
) -> AccuracyReport:
    """Score ``table`` against ``store`` using the session's ``boundaries``.

    Samples whose bucket has no delay, or whose shifted instant has no
    recorded neighbour strictly within ``tolerance_s``, are skipped.  Buckets
    with fewer than ``min_samples`` collected values are left out of the
    report rather than scored as zero.
    """

    if table.size != boundaries.bucket_count:
        raise ValueError(
            f"table size {table.size} does not match {boundaries.bucket_count} buckets"
        )
    if len(store) < 2:
        return AccuracyReport()

    times = store.times
    lambdas: dict[tuple[int, int], list[float]] = {}
    pw_changes: dict[tuple[int, int], list[float]] = {}
    resolved = 0
    for sample in store:
        key = boundaries.locate(sample)
        if key is None:
            continue
        delay = table.value(*key)
        if delay is None:
            continue
        target = sample.time - delay / 1000.0
        index = nearest_index(times, target)
        if index < 0 or abs(times[index] - target) >= tolerance_s:
            continue
        resolved += 1
        lambdas.setdefault(key, []).append(sample.lambda_)
        pw_changes.setdefault(key, []).append(sample.pulsewidth - store[index].pulsewidth)

    buckets: dict[tuple[int, int], BucketAccuracy] = {}
    for key in sorted(lambdas):
        values = lambdas[key]
        if len(values) < min_samples:
            continue
        lambda_array = np.asarray(values, dtype=float)
        buckets[key] = BucketAccuracy(
            rpm_index=key[0],
            load_index=key[1],
            count=len(values),
            lambda_mean=float(lambda_array.mean()),
            lambda_std_dev=float(lambda_array.std()),
            pw_correlation=_pearson(np.asarray(pw_changes[key], dtype=float), lambda_array),
        )

    report = AccuracyReport(buckets=buckets, resolved_samples=resolved)
    if logger.isEnabledFor(logging.DEBUG):
        logger.debug(
            "Validated delay table",
            extra={
                "source": store.source,
                "resolved_samples": resolved,
                "buckets_analyzed": report.buckets_analyzed,
                "avg_std_dev": report.avg_std_dev,
            },
        )
    return report


def classify_difference(difference_pct: float | None) -> str:
    if difference_pct is None:
        return "N/A"
    magnitude = abs(difference_pct)
    if magnitude < 5.0:
        return "EXCELLENT"
    if magnitude < 10.0:
        return "GOOD"
    if magnitude < 20.0:
        return "MODERATE"
    return "POOR"


def compare_accuracy(master: float, own: float) -> float | None:
    """Percent change of the master score relative to the session's own score."""

    if own == 0.0:
        return None
    return (master - own) / own * 100.0


@dataclass(frozen=True, slots=True)
class TableComparison:
    """Master-table versus own-table accuracy for one session."""

    source: str
    master: AccuracyReport
    own: AccuracyReport

    @property
    def difference_pct(self) -> float | None:
        return compare_accuracy(self.master.avg_std_dev, self.own.avg_std_dev)

    @property
    def rating(self) -> str:
        return classify_difference(self.difference_pct)


def compare_tables(
    master: AccuracyReport, own: AccuracyReport, *, source: str = ""
) -> TableComparison:
    """Pair the master-table and own-table reports scored on one session."""

    return TableComparison(source=source, master=master, own=own)


@dataclass(frozen=True, slots=True)
class CrossValidationSummary:
    avg_master_std_dev: float
    avg_own_std_dev: float
    difference_pct: float | None

    @property
    def rating(self) -> str:
        return classify_difference(self.difference_pct)


def summarise_comparisons(comparisons: Sequence[TableComparison]) -> CrossValidationSummary:
    if not comparisons:
        return CrossValidationSummary(0.0, 0.0, None)
    master = float(np.mean([entry.master.avg_std_dev for entry in comparisons]))
    own = float(np.mean([entry.own.avg_std_dev for entry in comparisons]))
    return CrossValidationSummary(
        avg_master_std_dev=master,
        avg_own_std_dev=own,
        difference_pct=compare_accuracy(master, own),
    )
