"""Reading of the ``[tool.lambda_delay]`` table from ``pyproject.toml``.

The table is split into sections that are each a TOML table of their own:

``logging``
    ``level``, ``output`` and ``format`` for :func:`~lambda_delay.logging.setup_logging`.
``analysis``
    a ``preset`` name and/or explicit :class:`~lambda_core.config.AnalysisConfig` fields.
``paths``
    ``log_dir``, ``log_glob`` and ``table_output`` defaults for the CLI.
``meta``
    ``workers`` and ``preset`` for multi-log runs.

Unknown sections are kept and ignored.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping as ABCMapping
from pathlib import Path
from typing import Any

try:  # Python 3.11+
    import tomllib  # type: ignore[attr-defined]
except ModuleNotFoundError:  # pragma: no cover - Python < 3.11 fallback
    import tomli as tomllib  # type: ignore

__all__ = ["KNOWN_SECTIONS", "find_pyproject", "read_tool_section"]

logger = logging.getLogger(__name__)

KNOWN_SECTIONS: tuple[str, ...] = ("logging", "analysis", "paths", "meta")

_PYPROJECT = "pyproject.toml"
_TOOL_NAME = "lambda_delay"


def find_pyproject(candidate: Path) -> Path | None:
    """Map a directory or a ``pyproject.toml`` path onto the file to read.

    Any other file name yields ``None``.
    """

    candidate = candidate.expanduser()
    if candidate.name == _PYPROJECT:
        return candidate
    if candidate.suffix:
        return None
    return candidate / _PYPROJECT


def _plain(value: Any) -> Any:
    if isinstance(value, ABCMapping):
        return {str(key): _plain(item) for key, item in value.items()}
    if isinstance(value, list):
        return [_plain(item) for item in value]
    return value


def read_tool_section(candidate: Path) -> tuple[dict[str, Any], Path] | None:
    """Return ``[tool.lambda_delay]`` and the file it came from.

    ``None`` means there is no such file or the file has no such table.
    A file that is not valid TOML, or a known section that is not a table,
    raises :class:`ValueError`.
    """

    path = find_pyproject(candidate)
    if path is None:
        return None
    path = path.resolve(strict=False)
    if not path.is_file():
        return None

    try:
        with path.open("rb") as handle:
            document = tomllib.load(handle)
    except tomllib.TOMLDecodeError as exc:
        raise ValueError(f"{path} is not valid TOML: {exc}") from exc

    tool = document.get("tool")
    section = tool.get(_TOOL_NAME) if isinstance(tool, ABCMapping) else None
    if not isinstance(section, ABCMapping):
        return None

    settings = _plain(section)
    for name in KNOWN_SECTIONS:
        if name in settings and not isinstance(settings[name], dict):
            raise ValueError(f"[tool.{_TOOL_NAME}.{name}] in {path} must be a table")
    unknown = sorted(set(settings) - set(KNOWN_SECTIONS))
    if unknown:
        logger.debug(
            "Ignoring unknown configuration sections",
            extra={"config_path": str(path), "sections": unknown},
        )
    return settings, path
