"""Resolve named threshold presets into :class:`AnalysisConfig` values."""

from __future__ import annotations

from collections.abc import Mapping as MappingABC
from importlib import resources
from pathlib import Path
from types import MappingProxyType
from typing import Any, Mapping

import yaml

from .settings import AnalysisConfig

__all__ = ["DEFAULT_PRESET", "load_presets", "resolve_config"]


DEFAULT_PRESET = "conservative"

_PRESET_RESOURCE_PACKAGE = "lambda_core.config"
_PRESET_RESOURCE_NAME = "thresholds.yaml"


def load_presets(path: str | Path | None = None) -> Mapping[str, Mapping[str, Any]]:
    """Return every preset merged over the shared ``defaults`` block.

    When ``path`` is supplied the YAML document is read from disk, otherwise
    the table bundled with :mod:`lambda_core` is used.
    """

    if path is not None:
        candidate = Path(path).expanduser()
        if not candidate.is_file():
            raise FileNotFoundError(candidate)
        payload = candidate.read_text(encoding="utf-8")
        source = str(candidate)
    else:
        resource = resources.files(_PRESET_RESOURCE_PACKAGE).joinpath(
            _PRESET_RESOURCE_NAME
        )
        payload = resource.read_text(encoding="utf-8")
        source = str(resource)

    data = _load_yaml(payload, source=source)
    defaults = data.get("defaults")
    presets = data.get("presets")
    if not isinstance(presets, MappingABC):
        raise TypeError(f"Preset table in {source} must define a 'presets' mapping")

    resolved: dict[str, Mapping[str, Any]] = {}
    for name, entry in presets.items():
        merged: dict[str, Any] = dict(defaults) if isinstance(defaults, MappingABC) else {}
        if isinstance(entry, MappingABC):
            merged.update({str(key): value for key, value in entry.items()})
        resolved[_normalise_identifier(name)] = MappingProxyType(merged)
    return MappingProxyType(resolved)


def resolve_config(
    preset: str | None = None,
    overrides: Mapping[str, Any] | None = None,
    *,
    path: str | Path | None = None,
) -> AnalysisConfig:
    """Build an :class:`AnalysisConfig` from a preset plus explicit overrides.

    ``overrides`` may carry a ``preset`` key of its own (as found in the
    ``[tool.lambda_delay.analysis]`` table); an explicit ``preset`` argument
    wins over it.  Values that are ``None`` do not override.
    """

    overrides = dict(overrides or {})
    name = preset or overrides.pop("preset", None) or DEFAULT_PRESET
    overrides.pop("preset", None)
    presets = load_presets(path)
    key = _normalise_identifier(name)
    if key not in presets:
        known = ", ".join(sorted(presets))
        raise KeyError(f"Unknown threshold preset '{name}' (known: {known})")

    merged = dict(presets[key])
    for field, value in overrides.items():
        if value is not None:
            merged[str(field)] = value
    return AnalysisConfig.from_config(merged)


def _load_yaml(payload: str, *, source: str) -> Mapping[str, Any]:
    try:
        data = yaml.safe_load(payload)
    except yaml.YAMLError as exc:
        raise ValueError(f"Invalid YAML in threshold presets: {source}") from exc
    if data is None:
        return {}
    if not isinstance(data, MappingABC):
        raise TypeError(f"Threshold presets in {source!s} must decode to a mapping")
    return data


def _normalise_identifier(value: Any) -> str:
    return str(value).strip().lower().replace("_", "-")
