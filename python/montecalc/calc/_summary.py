"""Distribution summaries: mean, median, 90% range and a histogram."""

from __future__ import annotations

import math
from collections.abc import Sequence

import numpy as np

from montecalc._config import Settings, get_settings
from montecalc.calc._protocol import DistributionSummary, Histogram


def histogram(values: Sequence[float] | np.ndarray, buckets: int) -> Histogram:
    """Bin *values* into *buckets* equal-width bins starting at the minimum.

    Non-finite values are dropped. The maximum lands in the last bin. When
    every value is the same, all of them land in the first bin.
    """
    if buckets < 1:
        raise ValueError(f"buckets must be positive, got {buckets}")
    values = np.asarray(values, dtype=np.float64)
    values = values[np.isfinite(values)]
    if values.size == 0:
        return Histogram(start=math.nan, bucket_size=0.0, counts=(0,) * buckets)

    lo = float(values.min())
    size = (float(values.max()) - lo) / buckets
    if size == 0:
        counts = np.zeros(buckets, dtype=np.int64)
        counts[0] = values.size
    else:
        idx = np.minimum(np.floor((values - lo) / size).astype(np.int64), buckets - 1)
        counts = np.bincount(idx, minlength=buckets)
    return Histogram(start=lo, bucket_size=size, counts=tuple(int(c) for c in counts))


def summarize(
    values: Sequence[float] | np.ndarray,
    buckets: int | None = None,
    settings: Settings | None = None,
) -> DistributionSummary:
    """Summarize one cell's samples. Non-finite samples are ignored."""
    settings = settings or get_settings()
    if buckets is None:
        buckets = settings.HISTOGRAM_BUCKETS

    arr = np.asarray(values, dtype=np.float64)
    finite = np.sort(arr[np.isfinite(arr)])
    n = finite.size
    if n == 0:
        return DistributionSummary(
            count=0,
            mean=math.nan,
            median=math.nan,
            low=math.nan,
            high=math.nan,
            histogram=histogram(finite, buckets),
        )

    return DistributionSummary(
        count=n,
        mean=float(finite.mean()),
        median=float(finite[n // 2]),
        low=float(finite[int(n * 0.05)]),
        high=float(finite[int(n * 0.95)]),
        histogram=histogram(finite, buckets),
    )
