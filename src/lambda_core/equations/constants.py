"""Fixed data-quality bounds shared by the detection and validation stages."""

from __future__ import annotations

__all__ = [
    "LOOKAHEAD_SAMPLES",
    "MATCH_TOLERANCE_S",
    "MIN_BUCKET_SAMPLES",
    "MIN_SESSIONS_FOR_STATS",
    "MIN_VALIDATION_SAMPLES",
]

#: Forward search horizon after a PW step, in samples.
LOOKAHEAD_SAMPLES = 100

#: Buckets holding fewer samples are reported as insufficient data.
MIN_BUCKET_SAMPLES = 10

#: Minimum lambda values a bucket needs before the Validator scores it.
MIN_VALIDATION_SAMPLES = 10

#: Nearest historical sample must lie strictly closer than this (seconds).
MATCH_TOLERANCE_S = 0.5

#: Cross-session statistics need at least this many contributing sessions.
MIN_SESSIONS_FOR_STATS = 2
