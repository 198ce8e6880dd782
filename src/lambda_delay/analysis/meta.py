"""Multi-log meta analysis: session fan-out, master table, cross-validation.

Every log is analysed independently in a worker process.  Workers receive
only a path and an :class:`AnalysisConfig` and return a picklable outcome,
so no state is shared.  A failing log is recorded as a failed outcome and
never stops its siblings.  Cross-validation is a second fan-out that
re-parses each successful log and scores both the master table and the
log's own table against it.
"""

from __future__ import annotations

import logging
import os
from concurrent.futures import ProcessPoolExecutor, as_completed
from dataclasses import dataclass
from pathlib import Path
from time import monotonic
from typing import Callable, Sequence, TypeVar

from lambda_core.config import AnalysisConfig
from lambda_core.equations import DelayTable, session_boundaries
from lambda_core.metrics import (
    CrossSessionReport,
    CrossValidationSummary,
    TableComparison,
    aggregate_sessions,
    compare_tables,
    summarise_comparisons,
    validate_table,
)
from lambda_delay.analysis.session import SessionAnalysis, analyze_session
from lambda_delay.ingestion import LogFormatError, LogSchema, read_log

__all__ = [
    "CrossValidationOutcome",
    "MetaAnalysis",
    "SessionOutcome",
    "analyze_sessions",
    "cross_validate",
    "discover_logs",
    "run_meta_analysis",
]

logger = logging.getLogger(__name__)

_T = TypeVar("_T")


@dataclass(frozen=True, slots=True)
class SessionOutcome:
    path: str
    analysis: SessionAnalysis | None = None
    error: str | None = None

    @property
    def success(self) -> bool:
        return self.analysis is not None

    @property
    def name(self) -> str:
        return Path(self.path).name


@dataclass(frozen=True, slots=True)
class CrossValidationOutcome:
    path: str
    comparison: TableComparison | None = None
    error: str | None = None

    @property
    def success(self) -> bool:
        return self.comparison is not None


@dataclass(frozen=True, slots=True)
class MetaAnalysis:
    outcomes: tuple[SessionOutcome, ...]
    report: CrossSessionReport | None
    validations: tuple[CrossValidationOutcome, ...]
    elapsed: float

    @property
    def successes(self) -> tuple[SessionOutcome, ...]:
        return tuple(outcome for outcome in self.outcomes if outcome.success)

    @property
    def failures(self) -> tuple[SessionOutcome, ...]:
        return tuple(outcome for outcome in self.outcomes if not outcome.success)

    @property
    def comparisons(self) -> tuple[TableComparison, ...]:
        return tuple(entry.comparison for entry in self.validations if entry.comparison)

    @property
    def summary(self) -> CrossValidationSummary:
        return summarise_comparisons(self.comparisons)


def discover_logs(directory: str | Path, pattern: str = "*.msl") -> list[Path]:
    root = Path(directory).expanduser()
    if not root.is_dir():
        raise FileNotFoundError(root)
    return sorted(path for path in root.glob(pattern) if path.is_file())


def _describe(exc: BaseException) -> str:
    return str(exc) or exc.__class__.__name__


def _analyze_task(
    path: str, config: AnalysisConfig, schema: LogSchema | None
) -> SessionOutcome:
    try:
        analysis = analyze_session(path, config, schema=schema)
    except (OSError, ValueError) as exc:
        return SessionOutcome(path=path, error=_describe(exc))
    return SessionOutcome(path=path, analysis=analysis)


def _cross_validate_task(
    path: str,
    master: DelayTable,
    own: DelayTable,
    config: AnalysisConfig,
    schema: LogSchema | None,
) -> CrossValidationOutcome:
    try:
        store = read_log(path, config, schema=schema)
        if not store:
            raise LogFormatError(f"No valid samples in {path}")
        boundaries = session_boundaries(store, config.bucket_count)
        comparison = compare_tables(
            validate_table(store, boundaries, master),
            validate_table(store, boundaries, own),
            source=Path(path).name,
        )
    except (OSError, ValueError) as exc:
        return CrossValidationOutcome(path=path, error=_describe(exc))
    return CrossValidationOutcome(path=path, comparison=comparison)


def _resolve_workers(workers: int | None, jobs: int) -> int:
    available = workers if workers is not None else (os.cpu_count() or 1)
    return max(1, min(int(available), jobs))


def _crashed(
    job: tuple, exc: BaseException, on_crash: Callable[[tuple, BaseException], _T]
) -> _T:
    logger.warning(
        "Worker failed",
        extra={"job": str(job[0]), "error": repr(exc)},
        exc_info=exc,
    )
    return on_crash(job, exc)


def _fan_out(
    task: Callable[..., _T],
    jobs: Sequence[tuple],
    *,
    workers: int | None,
    on_crash: Callable[[tuple, BaseException], _T],
) -> list[_T]:
    """Run ``task`` over ``jobs`` and return results in job order.

    ``workers=1`` runs inline.  Otherwise at most ``workers`` jobs are in
    flight and a new one starts as soon as any finishes.  ``on_crash`` turns
    a job that raised, or a worker that died, into a result for that job, so
    one failure never stops the remaining jobs.
    """

    if not jobs:
        return []
    max_workers = _resolve_workers(workers, len(jobs))
    if max_workers == 1:
        results: list[_T] = []
        for job in jobs:
            try:
                results.append(task(*job))
            except Exception as exc:
                results.append(_crashed(job, exc, on_crash))
        return results

    pooled: dict[int, _T] = {}
    with ProcessPoolExecutor(max_workers=max_workers) as executor:
        futures = {executor.submit(task, *job): index for index, job in enumerate(jobs)}
        for future in as_completed(futures):
            index = futures[future]
            try:
                pooled[index] = future.result()
            except Exception as exc:  # worker process died or result failed to unpickle
                pooled[index] = _crashed(jobs[index], exc, on_crash)
    return [pooled[index] for index in range(len(jobs))]


def analyze_sessions(
    paths: Sequence[str | Path],
    config: AnalysisConfig,
    *,
    workers: int | None = None,
    schema: LogSchema | None = None,
) -> list[SessionOutcome]:
    """Analyse every log in ``paths``; one outcome per path, in input order."""

    jobs = [(str(path), config, schema) for path in paths]
    outcomes = _fan_out(
        _analyze_task,
        jobs,
        workers=workers,
        on_crash=lambda job, exc: SessionOutcome(path=job[0], error=_describe(exc)),
    )
    for position, outcome in enumerate(outcomes, start=1):
        if outcome.success and outcome.analysis is not None:
            logger.info(
                "Session analysed",
                extra={
                    "progress": f"{position}/{len(outcomes)}",
                    "log": outcome.name,
                    "samples": outcome.analysis.sample_count,
                    "measurements": outcome.analysis.total_measurements,
                    "buckets_with_data": outcome.analysis.buckets_with_data,
                },
            )
        else:
            logger.warning(
                "Session failed",
                extra={
                    "progress": f"{position}/{len(outcomes)}",
                    "log": outcome.name,
                    "error": outcome.error,
                },
            )
    return outcomes


def cross_validate(
    outcomes: Sequence[SessionOutcome],
    master: DelayTable,
    config: AnalysisConfig,
    *,
    workers: int | None = None,
    schema: LogSchema | None = None,
) -> list[CrossValidationOutcome]:
    """Score ``master`` against each successful session's own table."""

    jobs = [
        (outcome.path, master, outcome.analysis.table, config, schema)
        for outcome in outcomes
        if outcome.analysis is not None
    ]
    return _fan_out(
        _cross_validate_task,
        jobs,
        workers=workers,
        on_crash=lambda job, exc: CrossValidationOutcome(path=job[0], error=_describe(exc)),
    )


def run_meta_analysis(
    paths: Sequence[str | Path],
    config: AnalysisConfig,
    *,
    workers: int | None = None,
    schema: LogSchema | None = None,
) -> MetaAnalysis:
    """Analyse ``paths``, aggregate their tables and cross-validate the master."""

    started = monotonic()
    outcomes = tuple(analyze_sessions(paths, config, workers=workers, schema=schema))
    analyses = [outcome.analysis for outcome in outcomes if outcome.analysis is not None]
    if not analyses:
        logger.warning("No session produced a delay table", extra={"logs": len(outcomes)})
        return MetaAnalysis(
            outcomes=outcomes, report=None, validations=(), elapsed=monotonic() - started
        )

    report = aggregate_sessions(
        [analysis.table for analysis in analyses],
        [analysis.boundaries for analysis in analyses],
    )
    validations = tuple(
        cross_validate(outcomes, report.master, config, workers=workers, schema=schema)
    )
    return MetaAnalysis(
        outcomes=outcomes,
        report=report,
        validations=validations,
        elapsed=monotonic() - started,
    )
