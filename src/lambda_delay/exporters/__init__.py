"""Exporter registry for lambda-delay reports."""

from __future__ import annotations

import json
from typing import Any, Mapping, Protocol

from .delay_table import (
    DEFAULT_TABLE_FILENAME,
    LoadedDelayTable,
    export_session,
    load_delay_table,
    session_payload,
)
from .reports import (
    accuracy_payload,
    choices_payload,
    comparison_payload,
    meta_payload,
    sweep_payload,
    table_payload,
    threshold_comparison_payload,
)
from .text import render_text


class Exporter(Protocol):
    """Exporter callable protocol."""

    def __call__(self, payload: Mapping[str, Any]) -> str:  # pragma: no cover - interface only
        ...


def json_exporter(payload: Mapping[str, Any]) -> str:
    return json.dumps(payload, indent=2)


def text_exporter(payload: Mapping[str, Any]) -> str:
    return render_text(payload)


exporters_registry: Mapping[str, Exporter] = {
    "json": json_exporter,
    "text": text_exporter,
}

__all__ = [
    "DEFAULT_TABLE_FILENAME",
    "Exporter",
    "LoadedDelayTable",
    "accuracy_payload",
    "choices_payload",
    "comparison_payload",
    "export_session",
    "exporters_registry",
    "json_exporter",
    "load_delay_table",
    "meta_payload",
    "render_text",
    "session_payload",
    "sweep_payload",
    "table_payload",
    "text_exporter",
    "threshold_comparison_payload",
]
