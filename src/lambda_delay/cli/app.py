"""Command line entry point for lambda-delay."""

from __future__ import annotations

import argparse
import sys
from pathlib import Path
from typing import Optional, Sequence

from ..logging.config import setup_logging
from .errors import CliError, log_cli_error
from .io import config_section, load_cli_config
from .parser import build_parser

__all__ = ["main", "run_cli"]


def _preliminary_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(add_help=False)
    parser.add_argument("--config", dest="config_path", type=Path, default=None)
    parser.add_argument("--log-level", dest="log_level", default=None)
    parser.add_argument("--log-output", dest="log_output", default=None)
    parser.add_argument("--log-format", dest="log_format", choices=("json", "text"), default=None)
    return parser


def run_cli(args: Optional[Sequence[str]] = None) -> str:
    """Parse ``args``, run the selected sub-command and print its report.

    Failures surface as :class:`SystemExit` carrying the status code of the
    :class:`CliError` category.
    """

    preliminary, _ = _preliminary_parser().parse_known_args(args)
    try:
        config = load_cli_config(preliminary.config_path)
    except ValueError as exc:
        sys.stderr.write(f"Invalid configuration: {exc}\n")
        raise SystemExit(2) from exc

    logging_config = config_section(config, "logging")
    for key in ("level", "output", "format"):
        value = getattr(preliminary, f"log_{key}")
        if value is not None:
            logging_config[key] = value
    logging_config.setdefault("level", "info")
    logging_config.setdefault("output", "stderr")
    logging_config.setdefault("format", "text")
    config["logging"] = logging_config
    try:
        setup_logging(config)
    except (ValueError, OSError) as exc:
        sys.stderr.write(f"Invalid logging configuration: {exc}\n")
        raise SystemExit(2) from exc

    parser = build_parser(config)
    namespace = parser.parse_args(args)
    namespace.config = config

    try:
        result = namespace.handler(namespace, config=config)
    except CliError as exc:
        if not exc.logged:
            log_cli_error(exc.payload, exc_info=exc if exc.category == "runtime" else None)
            exc.logged = True
        sys.stderr.write(f"error: {exc.payload.message}\n")
        raise SystemExit(exc.status_code) from exc
    if result:
        sys.stdout.write(result)
        if not result.endswith("\n"):
            sys.stdout.write("\n")
    return result


def main() -> None:  # pragma: no cover - thin wrapper
    run_cli()


if __name__ == "__main__":  # pragma: no cover - CLI invocation guard
    main()
