"""MegaLog text export ingestion.

MegaSquirt ``.msl`` logs are tab separated.  The first two lines carry
free-form capture metadata, the third holds the column headers and samples
start on the fourth line.  Only the five channels the delay analysis needs
are extracted; every other column is ignored.
"""

from __future__ import annotations

import errno
import logging
import math
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Iterator, TextIO

from lambda_core.config import AnalysisConfig
from lambda_core.equations import Sample, SampleStore

__all__ = ["DEFAULT_SCHEMA", "LogFormatError", "LogSchema", "MegaLogReader", "read_log"]

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LogSchema:
    """Column naming and layout of a log export.

    Attributes
    ----------
    time, rpm, pulsewidth, lambda_, load:
        Header names of the channels mapped onto :class:`Sample` fields.
    header_line:
        Zero-based line index holding the column headers.
    delimiter:
        Field separator.
    """

    time: str = "Time"
    rpm: str = "RPM"
    pulsewidth: str = "PW"
    lambda_: str = "Lambda"
    load: str = "FuelLoad"
    header_line: int = 2
    delimiter: str = "\t"

    @property
    def required(self) -> tuple[str, ...]:
        return (self.time, self.rpm, self.pulsewidth, self.lambda_, self.load)


DEFAULT_SCHEMA = LogSchema()


class LogFormatError(ValueError):
    """Raised when a log cannot be interpreted with the active schema."""


def _parse_float(token: str) -> float:
    try:
        value = float(token)
    except ValueError:
        return math.nan
    if not math.isfinite(value):
        return math.nan
    return value


class MegaLogReader:
    """Read MegaLog exports into a :class:`SampleStore`.

    Rows with unparsable, non-finite or missing channels are skipped
    silently, and rows below ``config.min_rpm`` or ``config.min_pw`` are
    filtered out before the store is built.
    """

    def __init__(self, schema: LogSchema | None = None) -> None:
        self.schema = schema or DEFAULT_SCHEMA

    def ingest(
        self,
        source: str | Path | TextIO | Iterable[str],
        config: AnalysisConfig,
    ) -> SampleStore:
        label = str(source) if isinstance(source, (str, Path)) else None
        lines = self._open_source(source)
        header = self._read_header(lines, label)
        columns = [column.strip() for column in header.split(self.schema.delimiter)]
        missing = [name for name in self.schema.required if name not in columns]
        if missing:
            raise LogFormatError(
                f"Required columns not found in {label or 'log'}: {', '.join(missing)}"
            )
        indices = [columns.index(name) for name in self.schema.required]
        width = max(indices)

        samples: list[Sample] = []
        skipped = 0
        filtered = 0
        for line in lines:
            if not line.strip():
                continue
            fields = line.rstrip("\r\n").split(self.schema.delimiter)
            if len(fields) <= width:
                skipped += 1
                continue
            time, rpm, pulsewidth, lambda_, load = (
                _parse_float(fields[index]) for index in indices
            )
            if any(math.isnan(value) for value in (time, rpm, pulsewidth, lambda_, load)):
                skipped += 1
                continue
            if rpm < config.min_rpm or pulsewidth < config.min_pw:
                filtered += 1
                continue
            samples.append(
                Sample(time=time, rpm=rpm, load=load, pulsewidth=pulsewidth, lambda_=lambda_)
            )

        store = SampleStore(samples, source=label)
        logger.info(
            "Loaded log samples",
            extra={
                "source": label,
                "samples": len(store),
                "skipped_rows": skipped,
                "filtered_rows": filtered,
            },
        )
        return store

    def _read_header(self, lines: Iterator[str], label: str | None) -> str:
        for index, line in enumerate(lines):
            if index == self.schema.header_line:
                return line.rstrip("\r\n")
        raise LogFormatError(f"{label or 'log'} ends before the header line")

    @staticmethod
    def _open_source(source: str | Path | TextIO | Iterable[str]) -> Iterator[str]:
        if isinstance(source, (str, Path)):
            path = Path(source)
            if not path.exists():
                raise FileNotFoundError(errno.ENOENT, os.strerror(errno.ENOENT), str(path))
            return iter(path.read_text(encoding="utf-8", errors="replace").splitlines())
        return iter(source)


def read_log(
    path: str | Path,
    config: AnalysisConfig,
    *,
    schema: LogSchema | None = None,
) -> SampleStore:
    """Shortcut for ``MegaLogReader(schema).ingest(path, config)``."""

    return MegaLogReader(schema).ingest(path, config)
