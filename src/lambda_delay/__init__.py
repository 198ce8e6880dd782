"""Top-level package for lambda-delay.

The package reads engine logs, builds per-session injector pulsewidth to
lambda sensor delay tables, aggregates them into a master table across
sessions and validates how well a table compensates the sensor lag.  The
numerical work lives in :mod:`lambda_core`; this package adds log
ingestion, analysis orchestration, exporters and the command line.
"""

from ._version import __version__
from .analysis import (
    MetaAnalysis,
    SessionAnalysis,
    SessionOutcome,
    analyze_session,
    analyze_store,
    compare_threshold_medians,
    discover_logs,
    run_meta_analysis,
    sweep_thresholds,
    validate_threshold_choices,
)
from .exporters import export_session, exporters_registry, load_delay_table
from .ingestion import LogFormatError, MegaLogReader, read_log
from .logging import setup_logging

__all__ = [
    "LogFormatError",
    "MegaLogReader",
    "MetaAnalysis",
    "SessionAnalysis",
    "SessionOutcome",
    "__version__",
    "analyze_session",
    "analyze_store",
    "compare_threshold_medians",
    "discover_logs",
    "export_session",
    "exporters_registry",
    "load_delay_table",
    "read_log",
    "run_meta_analysis",
    "setup_logging",
    "sweep_thresholds",
    "validate_threshold_choices",
]
