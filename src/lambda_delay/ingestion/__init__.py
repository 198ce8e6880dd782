"""Log ingestion for lambda-delay."""

from lambda_delay.ingestion.msl import (
    DEFAULT_SCHEMA,
    LogFormatError,
    LogSchema,
    MegaLogReader,
    read_log,
)

__all__ = ["DEFAULT_SCHEMA", "LogFormatError", "LogSchema", "MegaLogReader", "read_log"]
