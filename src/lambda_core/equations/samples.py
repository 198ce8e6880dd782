"""Sample and sample store definitions for one recording session."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Iterator, Sequence, overload

import numpy as np

__all__ = ["Sample", "SampleStore"]


@dataclass(frozen=True, slots=True)
class Sample:
    """Single engine log row after filtering."""

    time: float
    rpm: float
    load: float
    pulsewidth: float
    lambda_: float


class SampleStore(Sequence[Sample]):
    """Time-ordered, read-only collection of :class:`Sample` objects.

    The constructor sorts its input by ``time`` with a stable sort, so equal
    timestamps keep their original relative order.  ``times`` mirrors the
    timestamps as a read-only NumPy array for indexed lookups.
    """

    __slots__ = ("_samples", "_times", "source")

    def __init__(self, samples: Iterable[Sample], source: str | None = None) -> None:
        self._samples = tuple(sorted(samples, key=lambda sample: sample.time))
        times = np.fromiter(
            (sample.time for sample in self._samples),
            dtype=float,
            count=len(self._samples),
        )
        times.setflags(write=False)
        self._times = times
        self.source = source

    def __repr__(self) -> str:
        return f"SampleStore(source={self.source!r}, samples={len(self._samples)})"

    def __len__(self) -> int:
        return len(self._samples)

    @overload
    def __getitem__(self, index: int) -> Sample: ...

    @overload
    def __getitem__(self, index: slice) -> Sequence[Sample]: ...

    def __getitem__(self, index):  # type: ignore[override]
        return self._samples[index]

    def __iter__(self) -> Iterator[Sample]:
        return iter(self._samples)

    @property
    def samples(self) -> tuple[Sample, ...]:
        return self._samples

    @property
    def times(self) -> np.ndarray:
        return self._times

    def values(self, axis: str) -> np.ndarray:
        """Return the ``axis`` attribute of every sample as an array."""

        return np.fromiter(
            (getattr(sample, axis) for sample in self._samples),
            dtype=float,
            count=len(self._samples),
        )
