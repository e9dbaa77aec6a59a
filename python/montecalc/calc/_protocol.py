"""CalcEngine protocol and result dataclasses."""

from __future__ import annotations

import threading
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Protocol, runtime_checkable

import numpy as np

if TYPE_CHECKING:
    from montecalc._config import Settings
    from montecalc.calc._nodes import Expression


@dataclass(frozen=True)
class SensitivityRecord:
    """OLS fit of a target cell against one other cell."""

    slope: float
    intercept: float
    r_squared: float
    beta: float  # standardized coefficient, slope * sd_x / sd_y


@dataclass(frozen=True)
class Histogram:
    """Equal-width bins starting at the minimum sample."""

    start: float
    bucket_size: float
    counts: tuple[int, ...]

    @property
    def edges(self) -> tuple[float, ...]:
        """Left edge of each bin."""
        return tuple(self.start + i * self.bucket_size for i in range(len(self.counts)))


@dataclass(frozen=True)
class DistributionSummary:
    """Headline statistics for one cell's samples."""

    count: int
    mean: float
    median: float
    low: float  # 5th percentile sample
    high: float  # 95th percentile sample
    histogram: Histogram


@dataclass(frozen=True)
class SimulationResult:
    """Samples from one Monte-Carlo run, plus sensitivities when a target was set."""

    results: dict[str, np.ndarray]  # cell name -> one sample per iteration
    sensitivities: dict[str, SensitivityRecord] | None
    iterations: int
    target: str | None = None
    seed: int | None = None
    settings: Settings | None = field(default=None, repr=False, compare=False)

    def summary(self, name: str, buckets: int | None = None) -> DistributionSummary:
        """Summarize one cell, bucketed per this run's settings by default."""
        from montecalc.calc._summary import summarize

        return summarize(self.results[name], buckets=buckets, settings=self.settings)


@runtime_checkable
class CalcEngine(Protocol):
    """Protocol for Monte-Carlo evaluation engines."""

    def load(self, cells: Mapping[str, Expression]) -> None:
        """Register cells in declaration order."""
        ...

    def run(
        self,
        iterations: int | None = None,
        target: str | None = None,
        *,
        seed: int | None = None,
        cancel: threading.Event | None = None,
    ) -> SimulationResult:
        """Evaluate every cell once per iteration and collect the samples."""
        ...
