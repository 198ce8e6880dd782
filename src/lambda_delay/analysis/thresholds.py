"""Sensitivity of a session's delay table to the detection thresholds.

All three studies run on one parsed log.  Bucket boundaries depend only on
the samples, so they are computed once and every threshold pair reuses
them; only event detection changes between configurations.
"""

from __future__ import annotations

import logging
from collections import Counter
from dataclasses import dataclass
from typing import Iterable, Mapping, Sequence

import numpy as np

from lambda_core.config import AnalysisConfig
from lambda_core.equations import (
    AxisBoundaries,
    DelayTable,
    SampleStore,
    assign_buckets,
    build_delay_table,
    detect_grid_delays,
    session_boundaries,
)
from lambda_core.metrics import (
    AccuracyReport,
    BucketStatistics,
    bucket_statistics,
    consistency_assessment,
    validate_table,
)

__all__ = [
    "COMPARISON_PAIRS",
    "DEFAULT_CHOICES",
    "DEFAULT_LAMBDA_THRESHOLDS",
    "DEFAULT_PW_THRESHOLDS",
    "ChoiceValidation",
    "StdDevSpread",
    "SweepResult",
    "SweepReport",
    "ThresholdChoice",
    "ThresholdComparison",
    "ThresholdRun",
    "compare_threshold_medians",
    "spread_assessment",
    "sweep_thresholds",
    "validate_threshold_choices",
]

logger = logging.getLogger(__name__)

DEFAULT_PW_THRESHOLDS: tuple[float, ...] = (0.2, 0.5, 1.0, 1.5, 2.0)
DEFAULT_LAMBDA_THRESHOLDS: tuple[float, ...] = (0.02, 0.05, 0.1, 0.15, 0.2)

COMPARISON_PAIRS: tuple[tuple[float, float], ...] = (
    (0.2, 0.02),
    (0.2, 0.05),
    (0.2, 0.10),
    (0.5, 0.02),
    (0.5, 0.05),
    (0.5, 0.10),
    (1.0, 0.05),
    (1.0, 0.10),
)

# Consistency limit used when comparing medians across threshold pairs.
THRESHOLD_MODERATE_CV = 40.0


@dataclass(frozen=True, slots=True)
class ThresholdChoice:
    label: str
    pw_change_threshold: float
    lambda_change_threshold: float


DEFAULT_CHOICES: tuple[ThresholdChoice, ...] = (
    ThresholdChoice("Loose", 0.2, 0.02),
    ThresholdChoice("Loose-Med", 0.2, 0.05),
    ThresholdChoice("Default", 0.5, 0.05),
    ThresholdChoice("Med-Tight", 0.5, 0.10),
)


@dataclass(frozen=True, slots=True)
class ThresholdRun:
    """Delays detected on one session for one threshold pair."""

    pw_change_threshold: float
    lambda_change_threshold: float
    table: DelayTable
    counts: Mapping[tuple[int, int], int]

    @property
    def total_measurements(self) -> int:
        return sum(self.counts.values())

    @property
    def buckets_with_data(self) -> int:
        return sum(1 for count in self.counts.values() if count > 0)


def _run(
    store: SampleStore,
    boundaries: AxisBoundaries,
    config: AnalysisConfig,
) -> ThresholdRun:
    grid = assign_buckets(store, boundaries)
    detect_grid_delays(grid, config)
    return ThresholdRun(
        pw_change_threshold=config.pw_change_threshold,
        lambda_change_threshold=config.lambda_change_threshold,
        table=build_delay_table(grid),
        counts={bucket.key: len(bucket.delays) for bucket in grid},
    )


def _runs(
    store: SampleStore,
    config: AnalysisConfig,
    pairs: Iterable[tuple[float, float]],
) -> tuple[AxisBoundaries, list[ThresholdRun]]:
    if not store:
        raise ValueError(f"{store.source or 'session'} holds no valid samples")
    boundaries = session_boundaries(store, config.bucket_count)
    runs = [_run(store, boundaries, config.with_thresholds(pw, lam)) for pw, lam in pairs]
    return boundaries, runs


# -- sweep -------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class SweepResult:
    run: ThresholdRun

    @property
    def pw_change_threshold(self) -> float:
        return self.run.pw_change_threshold

    @property
    def lambda_change_threshold(self) -> float:
        return self.run.lambda_change_threshold

    @property
    def total_measurements(self) -> int:
        return self.run.total_measurements

    @property
    def buckets_with_data(self) -> int:
        return self.run.buckets_with_data


@dataclass(frozen=True, slots=True)
class SweepReport:
    results: tuple[SweepResult, ...]
    bucket_total: int
    default: ThresholdRun | None

    def by_coverage(self, limit: int | None = 5) -> list[SweepResult]:
        ranked = sorted(
            self.results,
            key=lambda entry: (-entry.buckets_with_data, -entry.total_measurements),
        )
        return ranked if limit is None else ranked[:limit]

    def by_measurements(self, limit: int | None = 5) -> list[SweepResult]:
        ranked = sorted(self.results, key=lambda entry: -entry.total_measurements)
        return ranked if limit is None else ranked[:limit]

    @property
    def max_measurements(self) -> int:
        return max((entry.total_measurements for entry in self.results), default=0)

    @property
    def max_coverage(self) -> int:
        return max((entry.buckets_with_data for entry in self.results), default=0)


def sweep_thresholds(
    store: SampleStore,
    config: AnalysisConfig,
    *,
    pw_thresholds: Sequence[float] = DEFAULT_PW_THRESHOLDS,
    lambda_thresholds: Sequence[float] = DEFAULT_LAMBDA_THRESHOLDS,
) -> SweepReport:
    """Measure coverage for every ``pw × lambda`` threshold combination.

    ``config`` supplies the remaining settings; its own threshold pair is
    reported as the default run when it is part of the grid.
    """

    pairs = [(pw, lam) for pw in pw_thresholds for lam in lambda_thresholds]
    boundaries, runs = _runs(store, config, pairs)
    default = next(
        (
            run
            for run in runs
            if run.pw_change_threshold == config.pw_change_threshold
            and run.lambda_change_threshold == config.lambda_change_threshold
        ),
        None,
    )
    for run in runs:
        logger.debug(
            "Threshold sweep step",
            extra={
                "pw_threshold": run.pw_change_threshold,
                "lambda_threshold": run.lambda_change_threshold,
                "measurements": run.total_measurements,
                "buckets_with_data": run.buckets_with_data,
            },
        )
    return SweepReport(
        results=tuple(SweepResult(run) for run in runs),
        bucket_total=boundaries.bucket_count**2,
        default=default,
    )


# -- median comparison -------------------------------------------------------


@dataclass(frozen=True, slots=True)
class ThresholdComparison:
    """Per-bucket medians across threshold pairs and their spread."""

    runs: tuple[ThresholdRun, ...]
    statistics: Mapping[tuple[int, int], BucketStatistics]

    def medians(self, key: tuple[int, int]) -> list[float | None]:
        return [run.table.value(*key) for run in self.runs]

    def ordered_by_cv(self) -> list[BucketStatistics]:
        return sorted(
            self.statistics.values(),
            key=lambda entry: (entry.cv is None, entry.cv if entry.cv is not None else 0.0),
        )

    @property
    def average_cv(self) -> float | None:
        cvs = [entry.cv for entry in self.statistics.values() if entry.cv is not None]
        return float(np.mean(cvs)) if cvs else None

    @property
    def consistency(self) -> str:
        return consistency_assessment(self.average_cv, moderate_limit=THRESHOLD_MODERATE_CV)


def compare_threshold_medians(
    store: SampleStore,
    config: AnalysisConfig,
    *,
    pairs: Sequence[tuple[float, float]] = COMPARISON_PAIRS,
) -> ThresholdComparison:
    """Compare bucket medians across ``pairs``; buckets need two medians."""

    boundaries, runs = _runs(store, config, pairs)
    size = boundaries.bucket_count
    statistics: dict[tuple[int, int], BucketStatistics] = {}
    for i in range(size):
        for j in range(size):
            values = [value for value in (run.table.value(i, j) for run in runs) if value is not None]
            if len(values) > 1:
                statistics[(i, j)] = bucket_statistics(values, rpm_index=i, load_index=j)
    comparison = ThresholdComparison(runs=tuple(runs), statistics=statistics)
    logger.info(
        "Compared threshold medians",
        extra={
            "configurations": len(runs),
            "buckets_compared": len(statistics),
            "average_cv": comparison.average_cv,
        },
    )
    return comparison


# -- delay choice validation -------------------------------------------------


def spread_assessment(range_pct: float) -> str:
    if range_pct < 10.0:
        return "STABLE"
    if range_pct < 25.0:
        return "MODERATE"
    return "VARIABLE"


@dataclass(frozen=True, slots=True)
class StdDevSpread:
    """λ standard deviation of one bucket under each threshold choice."""

    rpm_index: int
    load_index: int
    std_devs: Mapping[str, float]

    @property
    def key(self) -> tuple[int, int]:
        return self.rpm_index, self.load_index

    @property
    def average(self) -> float:
        return float(np.mean(list(self.std_devs.values())))

    @property
    def range(self) -> float:
        values = list(self.std_devs.values())
        return max(values) - min(values)

    @property
    def range_pct(self) -> float:
        average = self.average
        if average == 0.0:
            return 0.0
        return self.range / average * 100.0

    @property
    def assessment(self) -> str:
        return spread_assessment(self.range_pct)


@dataclass(frozen=True, slots=True)
class ChoiceValidation:
    choices: tuple[ThresholdChoice, ...]
    reports: Mapping[str, AccuracyReport]
    spreads: tuple[StdDevSpread, ...]

    def counts(self) -> dict[str, int]:
        tally = {"STABLE": 0, "MODERATE": 0, "VARIABLE": 0}
        for spread in self.spreads:
            tally[spread.assessment] += 1
        return tally


def validate_threshold_choices(
    store: SampleStore,
    config: AnalysisConfig,
    *,
    choices: Sequence[ThresholdChoice] = DEFAULT_CHOICES,
) -> ChoiceValidation:
    """Validate the table of every choice on ``store`` and compare λ spread.

    Each choice's table is rounded to 0.1 ms before it is scored, so the
    spread reflects the tables that would be exported rather than the raw
    bucket medians.  Choice labels key the reports and must be unique;
    a repeated label raises :class:`ValueError`.
    """

    duplicates = sorted(
        label for label, seen in Counter(choice.label for choice in choices).items() if seen > 1
    )
    if duplicates:
        raise ValueError(f"Duplicate threshold choice labels: {', '.join(duplicates)}")
    boundaries, runs = _runs(
        store,
        config,
        [(choice.pw_change_threshold, choice.lambda_change_threshold) for choice in choices],
    )
    reports: dict[str, AccuracyReport] = {}
    for choice, run in zip(choices, runs):
        reports[choice.label] = validate_table(store, boundaries, run.table)

    per_bucket: dict[tuple[int, int], dict[str, float]] = {}
    for label, report in reports.items():
        for key, accuracy in report.buckets.items():
            per_bucket.setdefault(key, {})[label] = accuracy.lambda_std_dev
    spreads = tuple(
        StdDevSpread(rpm_index=key[0], load_index=key[1], std_devs=per_bucket[key])
        for key in sorted(per_bucket)
    )
    validation = ChoiceValidation(choices=tuple(choices), reports=reports, spreads=spreads)
    logger.info(
        "Validated threshold choices",
        extra={"choices": len(choices), "buckets": len(spreads), **validation.counts()},
    )
    return validation
