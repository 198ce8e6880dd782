"""Immutable analysis settings threaded through every pipeline stage."""

from __future__ import annotations

from collections.abc import Mapping as ABCMapping
from dataclasses import asdict, dataclass, replace
from typing import Any, Mapping

__all__ = ["AnalysisConfig", "REQUIRED_KEYS"]


REQUIRED_KEYS: tuple[str, ...] = (
    "min_rpm",
    "min_pw",
    "pw_change_threshold",
    "lambda_change_threshold",
    "max_delay_ms",
    "bucket_count",
)

_LEGACY_ALIASES: Mapping[str, str] = {
    "MIN_RPM": "min_rpm",
    "MIN_PW": "min_pw",
    "PW_CHANGE_THRESHOLD": "pw_change_threshold",
    "LAMBDA_CHANGE_THRESHOLD": "lambda_change_threshold",
    "MAX_DELAY_MS": "max_delay_ms",
    "BUCKET_COUNT": "bucket_count",
}


@dataclass(frozen=True, slots=True)
class AnalysisConfig:
    """Thresholds used to filter samples and detect PW → λ responses.

    ``min_rpm`` and ``min_pw`` gate which log rows become samples.
    ``pw_change_threshold`` (ms) and ``lambda_change_threshold`` (λ units)
    qualify cause and effect events, and ``max_delay_ms`` bounds the
    accepted response time.  ``bucket_count`` sets the size of the square
    RPM × load grid.
    """

    min_rpm: float
    min_pw: float
    pw_change_threshold: float
    lambda_change_threshold: float
    max_delay_ms: float
    bucket_count: int = 3

    def __post_init__(self) -> None:
        if self.bucket_count < 1:
            raise ValueError(f"bucket_count must be positive, got {self.bucket_count}")
        if self.max_delay_ms <= 0:
            raise ValueError(f"max_delay_ms must be positive, got {self.max_delay_ms}")
        for name in ("pw_change_threshold", "lambda_change_threshold"):
            if getattr(self, name) < 0:
                raise ValueError(f"{name} must not be negative")

    @classmethod
    def from_config(cls, config: Mapping[str, Any]) -> "AnalysisConfig":
        """Build a config from a mapping, accepting upper-case legacy keys.

        Every key in :data:`REQUIRED_KEYS` must be present; unknown keys are
        ignored so that whole TOML sections can be passed through.
        """

        if not isinstance(config, ABCMapping):
            raise TypeError("analysis configuration must be a mapping")
        normalised: dict[str, Any] = {}
        for key, value in config.items():
            name = _LEGACY_ALIASES.get(str(key), str(key).lower().replace("-", "_"))
            normalised[name] = value
        missing = [key for key in REQUIRED_KEYS if normalised.get(key) is None]
        if missing:
            raise ValueError(f"Missing analysis settings: {', '.join(missing)}")
        try:
            return cls(
                min_rpm=float(normalised["min_rpm"]),
                min_pw=float(normalised["min_pw"]),
                pw_change_threshold=float(normalised["pw_change_threshold"]),
                lambda_change_threshold=float(normalised["lambda_change_threshold"]),
                max_delay_ms=float(normalised["max_delay_ms"]),
                bucket_count=int(normalised["bucket_count"]),
            )
        except (TypeError, ValueError) as exc:
            raise ValueError(f"Invalid analysis settings: {exc}") from exc

    def with_thresholds(
        self, pw_change_threshold: float, lambda_change_threshold: float
    ) -> "AnalysisConfig":
        return replace(
            self,
            pw_change_threshold=float(pw_change_threshold),
            lambda_change_threshold=float(lambda_change_threshold),
        )

    def as_dict(self) -> dict[str, Any]:
        return asdict(self)
