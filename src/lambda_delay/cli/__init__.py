"""Command line utilities for lambda-delay."""

from lambda_delay.cli.app import main, run_cli
from lambda_delay.cli.errors import CliError

__all__ = ["CliError", "main", "run_cli"]
