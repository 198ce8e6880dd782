"""Paired PW-step / lambda-response detection inside one bucket."""

from __future__ import annotations

import logging
from typing import Sequence

from ..config.settings import AnalysisConfig
from .bucketing import BucketGrid
from .constants import LOOKAHEAD_SAMPLES, MIN_BUCKET_SAMPLES
from .samples import Sample

__all__ = ["detect_delays", "detect_grid_delays", "expected_lambda_direction"]

logger = logging.getLogger(__name__)


def _sign(value: float) -> int:
    if value > 0.0:
        return 1
    if value < 0.0:
        return -1
    return 0


def expected_lambda_direction(pw_change: float) -> int:
    """More fuel drives λ down, less fuel drives it up."""

    return -_sign(pw_change)


def detect_delays(
    samples: Sequence[Sample],
    config: AnalysisConfig,
    *,
    lookahead: int = LOOKAHEAD_SAMPLES,
) -> list[float]:
    """Return response delays (ms) for every qualifying PW step in ``samples``.

    ``samples`` must already be ordered by time.  For each step at index
    ``i`` the scan walks forward at most ``lookahead`` samples and keeps the
    first response that moves λ against the PW change by at least
    ``config.lambda_change_threshold`` within ``config.max_delay_ms``.
    Steps with no such response yield nothing.  Responses with a
    non-positive elapsed time are never accepted.
    """

    delays: list[float] = []
    count = len(samples)
    for i in range(1, count - 1):
        current = samples[i]
        pw_change = current.pulsewidth - samples[i - 1].pulsewidth
        if abs(pw_change) < config.pw_change_threshold:
            continue

        direction = expected_lambda_direction(pw_change)
        for j in range(i + 1, min(i + lookahead, count)):
            future = samples[j]
            lambda_change = future.lambda_ - current.lambda_
            elapsed_ms = (future.time - current.time) * 1000.0
            if elapsed_ms <= 0.0:
                continue
            if (
                _sign(lambda_change) == direction
                and abs(lambda_change) >= config.lambda_change_threshold
                and elapsed_ms <= config.max_delay_ms
            ):
                delays.append(elapsed_ms)
                break
    return delays


def detect_grid_delays(
    grid: BucketGrid,
    config: AnalysisConfig,
    *,
    min_samples: int = MIN_BUCKET_SAMPLES,
) -> tuple[tuple[int, int], ...]:
    """Populate ``bucket.delays`` for every bucket of ``grid``.

    Returns the keys of buckets skipped for holding fewer than
    ``min_samples`` samples; their delay lists stay empty.
    """

    insufficient: list[tuple[int, int]] = []
    for bucket in grid:
        if len(bucket.samples) < min_samples:
            insufficient.append(bucket.key)
            bucket.delays = []
            continue
        ordered = sorted(bucket.samples, key=lambda sample: sample.time)
        bucket.delays = detect_delays(ordered, config)
        if logger.isEnabledFor(logging.DEBUG):
            logger.debug(
                "Detected bucket delays",
                extra={
                    "bucket": list(bucket.key),
                    "samples": len(ordered),
                    "measurements": len(bucket.delays),
                },
            )
    return tuple(insufficient)
