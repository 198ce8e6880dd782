"""Logging utilities for lambda-delay."""

from lambda_delay.logging.config import JsonFormatter, setup_logging

__all__ = ["JsonFormatter", "setup_logging"]
