"""Serialisable payloads for meta, validation and threshold reports.

Every payload is a plain mapping with a ``report`` key naming its layout so
exporters can render it without knowing the producing object.
"""

from __future__ import annotations

from typing import Any, Mapping

from lambda_core.equations import DelayTable
from lambda_core.metrics import (
    AccuracyReport,
    BucketStatistics,
    CrossValidationSummary,
    TableComparison,
)
from lambda_delay.analysis.meta import MetaAnalysis
from lambda_delay.analysis.thresholds import (
    ChoiceValidation,
    SweepReport,
    ThresholdComparison,
    ThresholdRun,
)

__all__ = [
    "accuracy_payload",
    "choices_payload",
    "comparison_payload",
    "meta_payload",
    "sweep_payload",
    "table_payload",
    "threshold_comparison_payload",
]


def _bucket_label(key: tuple[int, int]) -> str:
    return f"{key[0]},{key[1]}"


def table_payload(table: DelayTable) -> dict[str, Any]:
    return {
        "rpm_axis": list(table.rpm_axis),
        "load_axis": list(table.load_axis),
        "delay_table": table.as_rows(),
        "firmware_table": table.as_integer_rows(),
    }


def _statistics_entry(entry: BucketStatistics) -> dict[str, Any]:
    return {
        "bucket": _bucket_label(entry.key),
        "files_with_data": entry.files_with_data,
        "values": list(entry.values),
        "mean": entry.mean,
        "std_dev": entry.std_dev,
        "cv": entry.cv,
        "min": entry.minimum,
        "max": entry.maximum,
        "range": entry.range,
        "assessment": entry.assessment,
    }


def accuracy_payload(report: AccuracyReport) -> dict[str, Any]:
    return {
        "avg_std_dev": report.avg_std_dev,
        "buckets_analyzed": report.buckets_analyzed,
        "resolved_samples": report.resolved_samples,
        "buckets": [
            {
                "bucket": _bucket_label(key),
                "count": entry.count,
                "lambda_mean": entry.lambda_mean,
                "lambda_std_dev": entry.lambda_std_dev,
                "lambda_cv": entry.lambda_cv,
                "pw_correlation": entry.pw_correlation,
            }
            for key, entry in sorted(report.buckets.items())
        ],
    }


def comparison_payload(comparison: TableComparison) -> dict[str, Any]:
    return {
        "report": "validation",
        "source_file": comparison.source,
        "master": accuracy_payload(comparison.master),
        "own": accuracy_payload(comparison.own),
        "difference_pct": comparison.difference_pct,
        "rating": comparison.rating,
    }


def _summary_payload(summary: CrossValidationSummary) -> dict[str, Any]:
    return {
        "avg_master_std_dev": summary.avg_master_std_dev,
        "avg_own_std_dev": summary.avg_own_std_dev,
        "difference_pct": summary.difference_pct,
        "rating": summary.rating,
    }


def meta_payload(meta: MetaAnalysis) -> dict[str, Any]:
    sessions = [
        {
            "file": outcome.name,
            "success": outcome.success,
            "error": outcome.error,
            "data_points": outcome.analysis.sample_count if outcome.analysis else None,
            "measurements": outcome.analysis.total_measurements if outcome.analysis else None,
            "buckets_with_data": outcome.analysis.buckets_with_data if outcome.analysis else None,
            "bucket_total": outcome.analysis.bucket_total if outcome.analysis else None,
        }
        for outcome in meta.outcomes
    ]
    payload: dict[str, Any] = {
        "report": "meta",
        "elapsed": meta.elapsed,
        "sessions": sessions,
        "successful": len(meta.successes),
        "failed": len(meta.failures),
        "statistics": [],
        "average_cv": None,
        "consistency": "N/A",
        "master": None,
        "cross_validation": [],
        "cross_validation_errors": [],
        "summary": None,
    }
    if meta.report is None:
        return payload
    payload.update(
        {
            "statistics": [_statistics_entry(entry) for entry in meta.report.ordered_by_cv()],
            "average_cv": meta.report.average_cv,
            "consistency": meta.report.consistency,
            "master": table_payload(meta.report.master),
            "cross_validation": [
                {
                    "file": entry.source,
                    "master_std_dev": entry.master.avg_std_dev,
                    "own_std_dev": entry.own.avg_std_dev,
                    "difference_pct": entry.difference_pct,
                    "rating": entry.rating,
                }
                for entry in meta.comparisons
            ],
            "cross_validation_errors": [
                {"file": entry.path, "error": entry.error}
                for entry in meta.validations
                if not entry.success
            ],
            "summary": _summary_payload(meta.summary),
        }
    )
    return payload


def _run_entry(run: ThresholdRun) -> dict[str, Any]:
    return {
        "pw_threshold": run.pw_change_threshold,
        "lambda_threshold": run.lambda_change_threshold,
        "total_measurements": run.total_measurements,
        "buckets_with_data": run.buckets_with_data,
    }


def sweep_payload(report: SweepReport, *, top: int = 5) -> dict[str, Any]:
    default: Mapping[str, Any] | None = None
    if report.default is not None:
        run = report.default
        default = {
            **_run_entry(run),
            "buckets": [
                {
                    "bucket": _bucket_label(key),
                    "count": count,
                    "median": run.table.value(*key),
                }
                for key, count in sorted(run.counts.items())
                if count > 0
            ],
        }
    return {
        "report": "sweep",
        "bucket_total": report.bucket_total,
        "results": [_run_entry(entry.run) for entry in report.results],
        "by_coverage": [_run_entry(entry.run) for entry in report.by_coverage(top)],
        "by_measurements": [_run_entry(entry.run) for entry in report.by_measurements(top)],
        "default": default,
        "max_measurements": report.max_measurements,
        "max_coverage": report.max_coverage,
    }


def threshold_comparison_payload(comparison: ThresholdComparison) -> dict[str, Any]:
    size = comparison.runs[0].table.size if comparison.runs else 0
    return {
        "report": "threshold-comparison",
        "configurations": [
            {"pw_threshold": run.pw_change_threshold, "lambda_threshold": run.lambda_change_threshold}
            for run in comparison.runs
        ],
        "buckets": [
            {
                "bucket": _bucket_label((i, j)),
                "medians": comparison.medians((i, j)),
                "counts": [run.counts.get((i, j), 0) for run in comparison.runs],
            }
            for i in range(size)
            for j in range(size)
        ],
        "statistics": [_statistics_entry(entry) for entry in comparison.ordered_by_cv()],
        "average_cv": comparison.average_cv,
        "consistency": comparison.consistency,
    }


def choices_payload(validation: ChoiceValidation) -> dict[str, Any]:
    return {
        "report": "threshold-choices",
        "choices": [
            {
                "label": choice.label,
                "pw_threshold": choice.pw_change_threshold,
                "lambda_threshold": choice.lambda_change_threshold,
                "accuracy": accuracy_payload(validation.reports[choice.label]),
            }
            for choice in validation.choices
        ],
        "spreads": [
            {
                "bucket": _bucket_label(spread.key),
                "std_devs": dict(spread.std_devs),
                "range": spread.range,
                "range_pct": spread.range_pct,
                "assessment": spread.assessment,
            }
            for spread in validation.spreads
        ],
        "counts": validation.counts(),
    }
