"""Per-session delay table construction."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from time import monotonic

from lambda_core.config import AnalysisConfig
from lambda_core.equations import (
    AxisBoundaries,
    DelaySummary,
    DelayTable,
    SampleStore,
    assign_buckets,
    build_delay_table,
    detect_grid_delays,
    session_boundaries,
    summarise_delays,
)
from lambda_delay.ingestion import LogFormatError, LogSchema, read_log

__all__ = ["BucketDetail", "SessionAnalysis", "analyze_session", "analyze_store"]

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class BucketDetail:
    rpm_index: int
    load_index: int
    data_points: int
    delays: DelaySummary
    sufficient: bool

    @property
    def key(self) -> tuple[int, int]:
        return self.rpm_index, self.load_index


@dataclass(frozen=True, slots=True)
class SessionAnalysis:
    """Self-contained result of analysing one log."""

    source: str
    config: AnalysisConfig
    sample_count: int
    boundaries: AxisBoundaries
    table: DelayTable
    buckets: tuple[BucketDetail, ...]

    @property
    def total_measurements(self) -> int:
        return sum(detail.delays.count for detail in self.buckets)

    @property
    def buckets_with_data(self) -> int:
        return sum(1 for detail in self.buckets if detail.delays.count > 0)

    @property
    def bucket_total(self) -> int:
        return len(self.buckets)

    def bucket(self, rpm_index: int, load_index: int) -> BucketDetail:
        return self.buckets[rpm_index * self.table.size + load_index]


def analyze_store(store: SampleStore, config: AnalysisConfig) -> SessionAnalysis:
    """Run bucketing, detection and table building over ``store``."""

    if not store:
        raise ValueError(f"{store.source or 'session'} holds no valid samples")

    started = monotonic()
    boundaries = session_boundaries(store, config.bucket_count)
    grid = assign_buckets(store, boundaries)
    insufficient = set(detect_grid_delays(grid, config))
    table = build_delay_table(grid)
    details = tuple(
        BucketDetail(
            rpm_index=bucket.rpm_index,
            load_index=bucket.load_index,
            data_points=len(bucket.samples),
            delays=summarise_delays(bucket.delays),
            sufficient=bucket.key not in insufficient,
        )
        for bucket in grid
    )
    analysis = SessionAnalysis(
        source=store.source or "<memory>",
        config=config,
        sample_count=len(store),
        boundaries=boundaries,
        table=table,
        buckets=details,
    )
    logger.info(
        "Built session delay table",
        extra={
            "source": analysis.source,
            "samples": analysis.sample_count,
            "measurements": analysis.total_measurements,
            "buckets_with_data": analysis.buckets_with_data,
            "insufficient_buckets": len(insufficient),
            "elapsed": monotonic() - started,
        },
    )
    return analysis


def analyze_session(
    path: str | Path,
    config: AnalysisConfig,
    *,
    schema: LogSchema | None = None,
) -> SessionAnalysis:
    """Parse ``path`` and build its delay table.

    Raises :class:`~lambda_delay.ingestion.LogFormatError` when the log has
    no usable samples, in addition to the parser's own errors.
    """

    store = read_log(path, config, schema=schema)
    if not store:
        raise LogFormatError(f"No valid samples in {path}")
    return analyze_store(store, config)
