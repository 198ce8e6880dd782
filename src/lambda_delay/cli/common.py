"""Helpers shared by the lambda-delay sub-commands."""

from __future__ import annotations

import argparse
from pathlib import Path
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence

from lambda_core.config import AnalysisConfig, resolve_config
from lambda_delay.exporters import exporters_registry

from .errors import CliError, error_from_exception
from .io import config_section

__all__ = [
    "THRESHOLD_OPTIONS",
    "add_export_argument",
    "add_threshold_arguments",
    "analysis_config_from_namespace",
    "meta_workers_default",
    "render_payload",
    "resolve_exports",
    "write_output",
]

# CLI flag destination -> AnalysisConfig field
THRESHOLD_OPTIONS: Mapping[str, str] = {
    "min_rpm": "min_rpm",
    "min_pw": "min_pw",
    "pw_threshold": "pw_change_threshold",
    "lambda_threshold": "lambda_change_threshold",
    "max_delay_ms": "max_delay_ms",
    "bucket_count": "bucket_count",
}


def add_export_argument(
    parser: argparse.ArgumentParser, *, default: str, help_text: str
) -> None:
    parser.add_argument(
        "--export",
        dest="exports",
        choices=sorted(exporters_registry.keys()),
        action="append",
        help=f"{help_text} Repeat the flag to combine exporters.",
    )
    parser.set_defaults(exports=None, export_default=default)


def add_threshold_arguments(
    parser: argparse.ArgumentParser, *, preset_default: Optional[str] = None
) -> None:
    """Register ``--preset`` and the individual threshold overrides."""

    group = parser.add_argument_group("analysis thresholds")
    group.add_argument(
        "--preset",
        default=preset_default,
        help="Named threshold preset (conservative, coverage, loose-med, med-tight).",
    )
    group.add_argument("--min-rpm", dest="min_rpm", type=float, default=None)
    group.add_argument("--min-pw", dest="min_pw", type=float, default=None)
    group.add_argument(
        "--pw-threshold",
        dest="pw_threshold",
        type=float,
        default=None,
        help="Minimum pulsewidth step (ms) that counts as a fuelling event.",
    )
    group.add_argument(
        "--lambda-threshold",
        dest="lambda_threshold",
        type=float,
        default=None,
        help="Minimum lambda swing that counts as the sensor response.",
    )
    group.add_argument("--max-delay-ms", dest="max_delay_ms", type=float, default=None)
    group.add_argument("--bucket-count", dest="bucket_count", type=int, default=None)


def analysis_config_from_namespace(
    namespace: argparse.Namespace, config: Mapping[str, Any]
) -> AnalysisConfig:
    """Resolve thresholds: flags over ``[tool.lambda_delay.analysis]`` over preset."""

    overrides: Dict[str, Any] = config_section(config, "analysis")
    for option, field in THRESHOLD_OPTIONS.items():
        value = getattr(namespace, option, None)
        if value is not None:
            overrides[field] = value
    preset = getattr(namespace, "preset", None)
    try:
        return resolve_config(preset, overrides)
    except (KeyError, ValueError, TypeError) as exc:
        raise error_from_exception(exc, context={"preset": preset}) from exc


def _unique(values: Iterable[str]) -> List[str]:
    return list(dict.fromkeys(values))


def resolve_exports(namespace: argparse.Namespace) -> List[str]:
    selected = getattr(namespace, "exports", None)
    if selected:
        return _unique(selected)
    return [getattr(namespace, "export_default", "text")]


def render_payload(payload: Mapping[str, Any], exporters: Sequence[str] | str) -> str:
    """Render ``payload`` with every exporter in ``exporters``."""

    selected = [exporters] if isinstance(exporters, str) else _unique(exporters)
    rendered: List[str] = []
    for name in selected:
        exporter = exporters_registry.get(name)
        if exporter is None:
            raise CliError(
                f"Unknown exporter '{name}'.",
                category="usage",
                context={"exporter": name},
            )
        rendered.append(exporter(payload).rstrip("\n"))
    return "\n\n".join(rendered)


def write_output(text: str, destination: Path) -> Path:
    target = destination.expanduser()
    try:
        if target.parent != Path("."):
            target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(text if text.endswith("\n") else text + "\n", encoding="utf-8")
    except OSError as exc:
        raise error_from_exception(exc, context={"destination": str(target)}) from exc
    return target


def meta_workers_default(config: Mapping[str, Any]) -> Optional[int]:
    raw = config_section(config, "meta").get("workers")
    if raw is None:
        return None
    try:
        workers = int(raw)
    except (TypeError, ValueError):
        return None
    return workers if workers > 0 else None
