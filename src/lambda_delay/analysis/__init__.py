"""Session, meta and threshold analyses built on :mod:`lambda_core`."""

from lambda_delay.analysis.meta import (
    CrossValidationOutcome,
    MetaAnalysis,
    SessionOutcome,
    analyze_sessions,
    cross_validate,
    discover_logs,
    run_meta_analysis,
)
from lambda_delay.analysis.session import (
    BucketDetail,
    SessionAnalysis,
    analyze_session,
    analyze_store,
)
from lambda_delay.analysis.thresholds import (
    COMPARISON_PAIRS,
    DEFAULT_CHOICES,
    DEFAULT_LAMBDA_THRESHOLDS,
    DEFAULT_PW_THRESHOLDS,
    ChoiceValidation,
    StdDevSpread,
    SweepReport,
    SweepResult,
    ThresholdChoice,
    ThresholdComparison,
    ThresholdRun,
    compare_threshold_medians,
    spread_assessment,
    sweep_thresholds,
    validate_threshold_choices,
)

__all__ = [
    "BucketDetail",
    "COMPARISON_PAIRS",
    "ChoiceValidation",
    "CrossValidationOutcome",
    "DEFAULT_CHOICES",
    "DEFAULT_LAMBDA_THRESHOLDS",
    "DEFAULT_PW_THRESHOLDS",
    "MetaAnalysis",
    "SessionAnalysis",
    "SessionOutcome",
    "StdDevSpread",
    "SweepReport",
    "SweepResult",
    "ThresholdChoice",
    "ThresholdComparison",
    "ThresholdRun",
    "analyze_session",
    "analyze_sessions",
    "analyze_store",
    "compare_threshold_medians",
    "cross_validate",
    "discover_logs",
    "run_meta_analysis",
    "spread_assessment",
    "sweep_thresholds",
    "validate_threshold_choices",
]
