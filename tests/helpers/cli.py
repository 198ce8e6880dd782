"""CLI-related test helpers."""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from pathlib import Path

import pytest

from lambda_delay.cli import run_cli as _run_cli


def run_cli_in_tmp(
    args: Sequence[str] | Iterable[str],
    *,
    tmp_path: Path,
    monkeypatch: pytest.MonkeyPatch,
    capsys: pytest.CaptureFixture[str] | None = None,
    capture_output: bool = False,
) -> str | tuple[str, pytest.CaptureResult[str]]:
    """Execute ``run_cli`` from within ``tmp_path``.

    ``LAMBDA_DELAY_CONFIG`` is cleared so only a ``pyproject.toml`` written
    into ``tmp_path`` is picked up.
    """

    monkeypatch.chdir(tmp_path)
    monkeypatch.delenv("LAMBDA_DELAY_CONFIG", raising=False)
    result = _run_cli(list(args))

    if capture_output:
        if capsys is None:
            raise ValueError("capture_output=True requires providing the capsys fixture")
        return result, capsys.readouterr()

    return result
