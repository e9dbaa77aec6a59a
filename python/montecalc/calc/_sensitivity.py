"""Sensitivity analysis: OLS regression of a target cell on every other cell."""

from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence

import numpy as np

from montecalc.calc._graph import DependencyGraph
from montecalc.calc._protocol import SensitivityRecord

logger = logging.getLogger(__name__)


def analyze(
    target_samples: Sequence[float] | np.ndarray,
    variable_samples: Sequence[float] | np.ndarray,
) -> SensitivityRecord | None:
    """Regress *target_samples* (y) on *variable_samples* (x), pairwise by index.

    Pairs where either side is nan or infinite are dropped. Returns None when
    fewer than two pairs remain or either side is constant, since slope or
    beta would be undefined.
    """
    y = np.asarray(target_samples, dtype=np.float64)
    x = np.asarray(variable_samples, dtype=np.float64)
    if x.shape != y.shape:
        raise ValueError(f"Sample arrays differ in length: {x.size} vs {y.size}")

    mask = np.isfinite(x) & np.isfinite(y)
    x = x[mask]
    y = y[mask]
    n = x.size
    if n < 2:
        return None

    mean_x = x.mean()
    mean_y = y.mean()
    dx = x - mean_x
    dy = y - mean_y
    ssxx = float(dx @ dx)
    ssyy = float(dy @ dy)
    ssxy = float(dx @ dy)
    if ssxx == 0 or ssyy == 0:
        return None

    slope = ssxy / ssxx
    intercept = float(mean_y) - slope * float(mean_x)
    r_squared = ssxy**2 / (ssxx * ssyy)

    # Sample (n - 1) standard deviations
    sd_x = np.sqrt(ssxx / (n - 1))
    sd_y = np.sqrt(ssyy / (n - 1))
    beta = slope * float(sd_x / sd_y)

    return SensitivityRecord(slope=slope, intercept=intercept, r_squared=r_squared, beta=beta)


def rank_sensitivities(
    results: Mapping[str, np.ndarray],
    target: str,
    top: int = 5,
    graph: DependencyGraph | None = None,
) -> dict[str, SensitivityRecord]:
    """Fit *target* against each other cell and keep the *top* by ``|beta|``.

    When *graph* is given, only cells upstream of *target* are considered.
    The returned dict is ordered from most to least sensitive.
    """
    if target not in results:
        raise KeyError(f"Unknown target cell: {target!r}")

    candidates = graph.upstream(target) if graph is not None else list(results)
    target_values = results[target]

    records: list[tuple[str, SensitivityRecord]] = []
    for name in candidates:
        if name == target or name not in results:
            continue
        record = analyze(target_values, results[name])
        if record is None:
            logger.debug("Skipping %r: constant or too few samples against %r", name, target)
            continue
        records.append((name, record))

    # Stable sort keeps declaration order among equal |beta|
    records.sort(key=lambda item: abs(item[1].beta), reverse=True)
    return dict(records[:top])
