from __future__ import annotations

import logging
import sys
from pathlib import Path
from textwrap import dedent

import pytest


ROOT = Path(__file__).resolve().parents[1]
SRC_ROOT = ROOT / "src"
if str(SRC_ROOT) not in sys.path:
    sys.path.insert(0, str(SRC_ROOT))

from lambda_core.config import AnalysisConfig  # noqa: E402
from lambda_core.equations import SampleStore  # noqa: E402
from tests.helpers import BASE_CONFIG, build_store, segmented_session, write_session_log  # noqa: E402


def write_pyproject(directory: Path, contents: str) -> Path:
    """Persist a ``pyproject.toml`` under ``directory`` and return its path."""

    payload = dedent(contents).lstrip()
    target = directory / "pyproject.toml"
    target.write_text(payload, encoding="utf8")
    return target


@pytest.fixture
def base_config() -> AnalysisConfig:
    return BASE_CONFIG


@pytest.fixture
def session_store() -> SampleStore:
    return build_store(segmented_session(), source="segmented")


@pytest.fixture
def session_log(tmp_path: Path) -> Path:
    return write_session_log(tmp_path / "logs" / "2025-07-09_11-35-15.msl", segmented_session())


@pytest.fixture(autouse=True)
def _reset_package_loggers():
    """Drop handlers installed by ``setup_logging`` between tests."""

    yield
    for name in ("lambda_delay", "lambda_core"):
        logger = logging.getLogger(name)
        for handler in list(logger.handlers):
            if getattr(handler, "_lambda_delay_handler", False):
                logger.removeHandler(handler)
        logger.propagate = True
        logger.setLevel(logging.NOTSET)
