"""Configuration discovery for the lambda-delay CLI."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional

from lambda_delay.configuration import read_tool_section

__all__ = ["CONFIG_ENV_VAR", "config_section", "load_cli_config"]

CONFIG_ENV_VAR = "LAMBDA_DELAY_CONFIG"


def _search_order(path: Optional[Path]) -> List[Path]:
    candidates: List[Path] = []
    if path is not None:
        candidates.append(Path(path))
    env_config = os.environ.get(CONFIG_ENV_VAR)
    if env_config:
        candidates.append(Path(env_config))
    candidates.append(Path.cwd())
    resolved = (candidate.expanduser().resolve(strict=False) for candidate in candidates)
    return list(dict.fromkeys(resolved))


def load_cli_config(path: Optional[Path] = None) -> Dict[str, Any]:
    """Load ``[tool.lambda_delay]`` from the first ``pyproject.toml`` that has it.

    Lookup order is the explicit ``path``, then ``$LAMBDA_DELAY_CONFIG``,
    then the working directory.  The returned mapping always carries a
    ``_config_path`` entry naming the file used, or ``None``.
    """

    for base in _search_order(path):
        loaded = read_tool_section(base)
        if loaded is None:
            continue
        settings, source = loaded
        settings["_config_path"] = str(source)
        return settings
    return {"_config_path": None}


def config_section(config: Mapping[str, Any], name: str) -> Dict[str, Any]:
    section = config.get(name)
    return dict(section) if isinstance(section, Mapping) else {}
