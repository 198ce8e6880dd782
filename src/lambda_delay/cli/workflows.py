"""Sub-command handlers for the lambda-delay CLI."""

from __future__ import annotations

import argparse
import logging
from pathlib import Path
from typing import Any, Mapping

from lambda_core.config import AnalysisConfig
from lambda_core.equations import SampleStore, session_boundaries
from lambda_core.metrics import compare_tables, validate_table
from lambda_delay.analysis import (
    analyze_store,
    compare_threshold_medians,
    discover_logs,
    run_meta_analysis,
    sweep_thresholds,
    validate_threshold_choices,
)
from lambda_delay.exporters import (
    choices_payload,
    comparison_payload,
    export_session,
    load_delay_table,
    meta_payload,
    session_payload,
    sweep_payload,
    threshold_comparison_payload,
)
from lambda_delay.ingestion import read_log

from .common import (
    analysis_config_from_namespace,
    render_payload,
    resolve_exports,
    write_output,
)
from .errors import CliError, error_from_exception

__all__ = [
    "_handle_analyze",
    "_handle_meta",
    "_handle_thresholds",
    "_handle_validate",
]

logger = logging.getLogger(__name__)


def _load_store(path: Path, config: AnalysisConfig) -> SampleStore:
    try:
        store = read_log(path, config)
    except (OSError, ValueError) as exc:
        raise error_from_exception(exc, context={"log": str(path)}) from exc
    if not store:
        raise CliError(
            f"No valid samples in {path}",
            category="io",
            context={"log": str(path), "min_rpm": config.min_rpm, "min_pw": config.min_pw},
        )
    return store


def _emit(payload: Mapping[str, Any], namespace: argparse.Namespace) -> str:
    rendered = render_payload(payload, resolve_exports(namespace))
    report_path = getattr(namespace, "report", None)
    if report_path is not None:
        write_output(rendered, Path(report_path))
        logger.info("Report written", extra={"destination": str(report_path)})
    return rendered


def _handle_analyze(namespace: argparse.Namespace, *, config: Mapping[str, Any]) -> str:
    analysis_config = analysis_config_from_namespace(namespace, config)
    store = _load_store(Path(namespace.log), analysis_config)
    analysis = analyze_store(store, analysis_config)
    if not namespace.no_table:
        try:
            export_session(analysis, namespace.output)
        except OSError as exc:
            raise error_from_exception(exc, context={"destination": str(namespace.output)}) from exc
    return _emit(session_payload(analysis), namespace)


def _handle_meta(namespace: argparse.Namespace, *, config: Mapping[str, Any]) -> str:
    analysis_config = analysis_config_from_namespace(namespace, config)
    directory = Path(namespace.directory)
    try:
        paths = discover_logs(directory, namespace.glob)
    except FileNotFoundError as exc:
        raise CliError(
            f"Log directory {directory} does not exist",
            category="not_found",
            context={"directory": str(directory)},
        ) from exc
    if not paths:
        raise CliError(
            f"No logs matching '{namespace.glob}' in {directory}",
            category="not_found",
            context={"directory": str(directory), "glob": namespace.glob},
        )
    logger.info(
        "Starting meta analysis",
        extra={"logs": len(paths), "workers": namespace.workers, "directory": str(directory)},
    )
    meta = run_meta_analysis(paths, analysis_config, workers=namespace.workers)
    if meta.report is None:
        raise CliError(
            "No log file produced a delay table",
            category="io",
            context={"directory": str(directory), "failed": len(meta.failures)},
        )
    return _emit(meta_payload(meta), namespace)


def _handle_validate(namespace: argparse.Namespace, *, config: Mapping[str, Any]) -> str:
    analysis_config = analysis_config_from_namespace(namespace, config)
    table_path = Path(namespace.table)
    try:
        loaded = load_delay_table(table_path)
    except (OSError, ValueError) as exc:
        raise error_from_exception(exc, context={"table": str(table_path)}) from exc
    store = _load_store(Path(namespace.log), analysis_config)
    own = analyze_store(store, analysis_config)
    boundaries = loaded.boundaries if namespace.table_boundaries else session_boundaries(
        store, analysis_config.bucket_count
    )
    try:
        comparison = compare_tables(
            validate_table(store, boundaries, loaded.table),
            validate_table(store, own.boundaries, own.table),
            source=Path(namespace.log).name,
        )
    except ValueError as exc:
        raise error_from_exception(exc, context={"table": str(table_path)}) from exc
    return _emit(comparison_payload(comparison), namespace)


def _handle_thresholds(namespace: argparse.Namespace, *, config: Mapping[str, Any]) -> str:
    analysis_config = analysis_config_from_namespace(namespace, config)
    store = _load_store(Path(namespace.log), analysis_config)
    if namespace.study == "sweep":
        payload = sweep_payload(sweep_thresholds(store, analysis_config), top=namespace.top)
    elif namespace.study == "compare":
        payload = threshold_comparison_payload(compare_threshold_medians(store, analysis_config))
    elif namespace.study == "choices":
        payload = choices_payload(validate_threshold_choices(store, analysis_config))
    else:
        raise CliError(
            f"Unknown threshold study '{namespace.study}'.",
            category="usage",
            context={"study": namespace.study},
        )
    return _emit(payload, namespace)
