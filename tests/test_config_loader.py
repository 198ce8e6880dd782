from __future__ import annotations

from pathlib import Path
from textwrap import dedent

import pytest

from lambda_core.config import REQUIRED_KEYS, AnalysisConfig, load_presets, resolve_config


def test_bundled_presets_cover_every_required_key() -> None:
    presets = load_presets()

    assert {"conservative", "coverage", "loose-med", "med-tight"} <= set(presets)
    for values in presets.values():
        assert set(REQUIRED_KEYS) <= set(values)


@pytest.mark.parametrize(
    ("preset", "pw", "lam"),
    [
        ("conservative", 0.5, 0.05),
        ("coverage", 0.2, 0.02),
        ("loose_med", 0.2, 0.05),
        ("MED-TIGHT", 0.5, 0.10),
    ],
)
def test_resolve_config_from_preset(preset: str, pw: float, lam: float) -> None:
    config = resolve_config(preset)

    assert config.pw_change_threshold == pytest.approx(pw)
    assert config.lambda_change_threshold == pytest.approx(lam)
    assert config.min_rpm == 500.0
    assert config.min_pw == 1.0
    assert config.max_delay_ms == 2000.0
    assert config.bucket_count == 3


def test_default_preset_is_conservative() -> None:
    assert resolve_config() == resolve_config("conservative")


def test_overrides_win_and_none_is_ignored() -> None:
    config = resolve_config(
        "coverage", {"pw_change_threshold": 0.75, "min_rpm": None, "LAMBDA_CHANGE_THRESHOLD": 0.3}
    )

    assert config.pw_change_threshold == 0.75
    assert config.lambda_change_threshold == 0.3
    assert config.min_rpm == 500.0


def test_preset_key_inside_overrides_is_honoured() -> None:
    assert resolve_config(None, {"preset": "coverage"}).pw_change_threshold == 0.2
    assert resolve_config("conservative", {"preset": "coverage"}).pw_change_threshold == 0.5


def test_unknown_preset_raises_key_error() -> None:
    with pytest.raises(KeyError, match="Unknown threshold preset"):
        resolve_config("aggressive")


def test_presets_from_custom_file(tmp_path: Path) -> None:
    source = tmp_path / "thresholds.yaml"
    source.write_text(
        dedent(
            """
            defaults:
              min_rpm: 800
              min_pw: 1.5
              max_delay_ms: 1500
              bucket_count: 4
            presets:
              track_day:
                pw_change_threshold: 0.3
                lambda_change_threshold: 0.04
            """
        ),
        encoding="utf8",
    )

    config = resolve_config("track-day", path=source)

    assert config == AnalysisConfig(
        min_rpm=800.0,
        min_pw=1.5,
        pw_change_threshold=0.3,
        lambda_change_threshold=0.04,
        max_delay_ms=1500.0,
        bucket_count=4,
    )


def test_invalid_yaml_is_reported(tmp_path: Path) -> None:
    source = tmp_path / "broken.yaml"
    source.write_text("presets: [unclosed", encoding="utf8")

    with pytest.raises(ValueError, match="Invalid YAML"):
        load_presets(source)


def test_missing_preset_file(tmp_path: Path) -> None:
    with pytest.raises(FileNotFoundError):
        load_presets(tmp_path / "absent.yaml")


def test_from_config_requires_every_setting() -> None:
    with pytest.raises(ValueError, match="max_delay_ms"):
        AnalysisConfig.from_config(
            {
                "MIN_RPM": 500,
                "MIN_PW": 1.0,
                "PW_CHANGE_THRESHOLD": 0.5,
                "LAMBDA_CHANGE_THRESHOLD": 0.05,
                "BUCKET_COUNT": 3,
            }
        )


@pytest.mark.parametrize(
    "changes",
    [{"bucket_count": 0}, {"max_delay_ms": 0}, {"pw_change_threshold": -0.1}, {"min_rpm": "fast"}],
)
def test_from_config_rejects_invalid_values(changes: dict) -> None:
    values = {**resolve_config().as_dict(), **changes}

    with pytest.raises(ValueError):
        AnalysisConfig.from_config(values)


def test_with_thresholds_returns_new_config() -> None:
    base = resolve_config()

    tuned = base.with_thresholds(0.2, 0.02)

    assert (tuned.pw_change_threshold, tuned.lambda_change_threshold) == (0.2, 0.02)
    assert (base.pw_change_threshold, base.lambda_change_threshold) == (0.5, 0.05)
