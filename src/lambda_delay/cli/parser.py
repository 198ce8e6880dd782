"""Argument parsing for the lambda-delay CLI."""

from __future__ import annotations

import argparse
from pathlib import Path
from typing import Any, Mapping, Optional

from lambda_delay._version import __version__
from lambda_delay.exporters import DEFAULT_TABLE_FILENAME

from .common import add_export_argument, add_threshold_arguments, meta_workers_default
from .io import config_section
from .workflows import _handle_analyze, _handle_meta, _handle_thresholds, _handle_validate

__all__ = ["build_parser"]


def _add_report_argument(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--report",
        type=Path,
        default=None,
        help="Also write the rendered report to this file.",
    )


def build_parser(config: Optional[Mapping[str, Any]] = None) -> argparse.ArgumentParser:
    config = dict(config or {})
    logging_cfg = config_section(config, "logging")
    paths_cfg = config_section(config, "paths")
    meta_cfg = config_section(config, "meta")

    parser = argparse.ArgumentParser(
        prog="lambda-delay",
        description="Injector pulsewidth to lambda sensor delay tables from engine logs",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument(
        "--config",
        dest="config_path",
        type=Path,
        default=None,
        help="Path to the pyproject.toml holding [tool.lambda_delay].",
    )
    parser.add_argument(
        "--log-level",
        dest="log_level",
        default=logging_cfg.get("level", "info"),
        help="Logging level (e.g. debug, info, warning).",
    )
    parser.add_argument(
        "--log-output",
        dest="log_output",
        default=logging_cfg.get("output", "stderr"),
        help="Logging destination (stdout, stderr or a file path).",
    )
    parser.add_argument(
        "--log-format",
        dest="log_format",
        choices=("json", "text"),
        default=logging_cfg.get("format", "text"),
        help="Logging formatter (json or text).",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    analyze_parser = subparsers.add_parser(
        "analyze", help="Build the delay table of a single log file."
    )
    analyze_parser.add_argument("log", type=Path, help="MegaLog (.msl) file to analyse.")
    analyze_parser.add_argument(
        "--output",
        type=Path,
        default=Path(paths_cfg.get("table_output", DEFAULT_TABLE_FILENAME)),
        help=f"Destination of the JSON delay table (default: {DEFAULT_TABLE_FILENAME}).",
    )
    analyze_parser.add_argument(
        "--no-table",
        action="store_true",
        help="Skip writing the JSON delay table.",
    )
    add_threshold_arguments(analyze_parser)
    add_export_argument(analyze_parser, default="text", help_text="Report format.")
    _add_report_argument(analyze_parser)
    analyze_parser.set_defaults(handler=_handle_analyze)

    meta_parser = subparsers.add_parser(
        "meta",
        help="Aggregate every log in a directory into a master table and cross-validate it.",
    )
    meta_parser.add_argument(
        "directory",
        nargs="?",
        type=Path,
        default=Path(paths_cfg.get("log_dir", ".")),
        help="Directory holding the logs (default: paths.log_dir or the working directory).",
    )
    meta_parser.add_argument(
        "--glob",
        default=str(paths_cfg.get("log_glob", "*.msl")),
        help="File pattern selecting the logs (default: *.msl).",
    )
    meta_parser.add_argument(
        "--workers",
        type=int,
        default=meta_workers_default(config),
        help="Worker processes (default: one per CPU; 1 runs in-process).",
    )
    add_threshold_arguments(meta_parser, preset_default=str(meta_cfg.get("preset", "coverage")))
    add_export_argument(meta_parser, default="text", help_text="Report format.")
    _add_report_argument(meta_parser)
    meta_parser.set_defaults(handler=_handle_meta)

    validate_parser = subparsers.add_parser(
        "validate",
        help="Score an exported delay table against a log and against the log's own table.",
    )
    validate_parser.add_argument("log", type=Path, help="MegaLog (.msl) file to validate on.")
    validate_parser.add_argument(
        "--table",
        type=Path,
        default=Path(paths_cfg.get("table_output", DEFAULT_TABLE_FILENAME)),
        help="Delay table JSON written by 'analyze'.",
    )
    validate_parser.add_argument(
        "--table-boundaries",
        action="store_true",
        help="Bucket the log with the boundaries stored in the table instead of its own.",
    )
    add_threshold_arguments(validate_parser)
    add_export_argument(validate_parser, default="text", help_text="Report format.")
    _add_report_argument(validate_parser)
    validate_parser.set_defaults(handler=_handle_validate)

    thresholds_parser = subparsers.add_parser(
        "thresholds", help="Study how detection thresholds change one log's delay table."
    )
    thresholds_parser.add_argument(
        "study",
        choices=("sweep", "compare", "choices"),
        help="sweep: coverage grid; compare: medians across pairs; choices: validator spread.",
    )
    thresholds_parser.add_argument("log", type=Path, help="MegaLog (.msl) file to study.")
    thresholds_parser.add_argument(
        "--top",
        type=int,
        default=5,
        help="Entries listed in the sweep rankings (default: 5).",
    )
    add_threshold_arguments(thresholds_parser)
    add_export_argument(thresholds_parser, default="text", help_text="Report format.")
    _add_report_argument(thresholds_parser)
    thresholds_parser.set_defaults(handler=_handle_thresholds)

    return parser
