"""JSON persistence of a session delay table.

The export carries everything needed to reuse the table later: both axes,
the cut points the session was bucketed with and the per-bucket detail.
:func:`load_delay_table` reads it back into the objects the validator
expects, keeping absent cells as ``None``.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Mapping

from lambda_core.equations import AxisBoundaries, DelayTable
from lambda_delay.analysis.session import SessionAnalysis

__all__ = [
    "DEFAULT_TABLE_FILENAME",
    "LoadedDelayTable",
    "export_session",
    "load_delay_table",
    "session_payload",
]

logger = logging.getLogger(__name__)

DEFAULT_TABLE_FILENAME = "lambda_delay_table.json"


def _timestamp(moment: datetime | None = None) -> str:
    moment = moment or datetime.now(timezone.utc)
    return moment.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def session_payload(
    analysis: SessionAnalysis, *, generated_at: datetime | None = None
) -> dict[str, Any]:
    """Serialisable view of ``analysis`` in the delay-table export layout."""

    table = analysis.table
    return {
        "report": "session",
        "metadata": {
            "source_file": analysis.source,
            "generated_at": _timestamp(generated_at),
            "total_data_points": analysis.sample_count,
            "config": analysis.config.as_dict(),
        },
        "rpm_axis": list(table.rpm_axis),
        "load_axis": list(table.load_axis),
        "boundaries": {
            "rpm": list(analysis.boundaries.rpm),
            "load": list(analysis.boundaries.load),
        },
        "delay_table": table.as_rows(),
        "detailed_buckets": [
            {
                "rpm_bucket": detail.rpm_index,
                "load_bucket": detail.load_index,
                "data_points": detail.data_points,
                "delay_measurements": detail.delays.count,
                "median_delay": rounded.median,
                "min_delay": rounded.minimum,
                "max_delay": rounded.maximum,
                "sufficient": detail.sufficient,
            }
            for detail in analysis.buckets
            for rounded in (detail.delays.rounded(),)
        ],
    }


def export_session(
    analysis: SessionAnalysis,
    destination: str | Path = DEFAULT_TABLE_FILENAME,
    *,
    generated_at: datetime | None = None,
) -> Path:
    """Write the JSON export of ``analysis`` and return its path."""

    target = Path(destination).expanduser()
    if target.parent != Path("."):
        target.parent.mkdir(parents=True, exist_ok=True)
    payload = session_payload(analysis, generated_at=generated_at)
    target.write_text(json.dumps(payload, indent=2) + "\n", encoding="utf-8")
    logger.info("Exported delay table", extra={"destination": str(target)})
    return target


@dataclass(frozen=True, slots=True)
class LoadedDelayTable:
    table: DelayTable
    boundaries: AxisBoundaries
    metadata: Mapping[str, Any]


def _require(payload: Mapping[str, Any], key: str, source: str) -> Any:
    if key not in payload:
        raise ValueError(f"{source} is missing '{key}'")
    return payload[key]


def load_delay_table(path: str | Path) -> LoadedDelayTable:
    """Read a delay table written by :func:`export_session`."""

    source = Path(path).expanduser()
    try:
        payload = json.loads(source.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise ValueError(f"{source} is not valid JSON: {exc}") from exc
    if not isinstance(payload, Mapping):
        raise ValueError(f"{source} must contain a JSON object")

    rows = _require(payload, "delay_table", str(source))
    boundaries = _require(payload, "boundaries", str(source))
    try:
        table = DelayTable.from_rows(
            [row["delays"] for row in rows],
            rpm_axis=_require(payload, "rpm_axis", str(source)),
            load_axis=_require(payload, "load_axis", str(source)),
        )
        axis_boundaries = AxisBoundaries(
            rpm=tuple(float(value) for value in boundaries["rpm"]),
            load=tuple(float(value) for value in boundaries["load"]),
        )
    except (KeyError, TypeError) as exc:
        raise ValueError(f"{source} holds a malformed delay table: {exc}") from exc
    if axis_boundaries.bucket_count != table.size:
        raise ValueError(f"{source}: boundaries do not match a {table.size}x{table.size} table")
    return LoadedDelayTable(
        table=table,
        boundaries=axis_boundaries,
        metadata=dict(payload.get("metadata") or {}),
    )
