"""Core computation utilities for PW → λ delay analysis.

The package is free of I/O: callers hand it a :class:`SampleStore` and an
:class:`AnalysisConfig` and receive plain result objects back.
"""

from __future__ import annotations

from lambda_core.config import AnalysisConfig, resolve_config
from lambda_core.equations import (
    AxisBoundaries,
    BucketGrid,
    DelaySummary,
    DelayTable,
    Sample,
    SampleStore,
    assign_buckets,
    bucket_of,
    build_delay_table,
    compute_boundaries,
    detect_delays,
    detect_grid_delays,
    median,
    session_boundaries,
    summarise_delays,
)
from lambda_core.metrics import (
    AccuracyReport,
    CrossSessionReport,
    TableComparison,
    aggregate_sessions,
    compare_tables,
    nearest_index,
    validate_table,
)

__all__ = [
    "AccuracyReport",
    "AnalysisConfig",
    "AxisBoundaries",
    "BucketGrid",
    "CrossSessionReport",
    "DelaySummary",
    "DelayTable",
    "Sample",
    "SampleStore",
    "TableComparison",
    "aggregate_sessions",
    "assign_buckets",
    "bucket_of",
    "build_delay_table",
    "compare_tables",
    "compute_boundaries",
    "detect_delays",
    "detect_grid_delays",
    "median",
    "nearest_index",
    "resolve_config",
    "session_boundaries",
    "summarise_delays",
    "validate_table",
]
