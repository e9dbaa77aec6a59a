"""SimulationEngine: Monte-Carlo evaluation of an ordered set of cells.

Every iteration starts from an empty context and evaluates the cells in
declaration order, so a cell can read the values earlier cells produced in
the same iteration and nothing from any other iteration. Each cell collects
one sample per iteration in a pre-sized float array; booleans are stored as
1.0 / 0.0.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Mapping
from typing import TYPE_CHECKING

import numpy as np

from montecalc._config import Settings, get_settings
from montecalc.calc._errors import SimulationCancelled
from montecalc.calc._graph import DependencyGraph
from montecalc.calc._protocol import SimulationResult
from montecalc.calc._sensitivity import rank_sensitivities

if TYPE_CHECKING:
    from numpy.random import Generator

    from montecalc.calc._nodes import Expression, Value

logger = logging.getLogger(__name__)


class SimulationEngine:
    """Runs Monte-Carlo simulations over loaded cells.

    Usage::

        engine = SimulationEngine()
        engine.load(cells)
        result = engine.run(10000, target="profit", seed=42)
    """

    def __init__(self, settings: Settings | None = None) -> None:
        self._settings = settings or get_settings()
        self._cells: dict[str, Expression] = {}
        self._graph = DependencyGraph()
        self._loaded = False

    @property
    def graph(self) -> DependencyGraph:
        return self._graph

    def load(self, cells: Mapping[str, Expression]) -> None:
        """Register cells; iteration order of *cells* is declaration order."""
        self._cells = dict(cells)
        self._graph = DependencyGraph.from_cells(self._cells)
        self._loaded = True

    def run(
        self,
        iterations: int | None = None,
        target: str | None = None,
        *,
        seed: int | None = None,
        rng: Generator | None = None,
        cancel: threading.Event | None = None,
        upstream_only: bool = False,
    ) -> SimulationResult:
        """Evaluate every cell once per iteration.

        The first evaluation error aborts the run and propagates. Setting
        *cancel* stops the run between iterations with
        :class:`SimulationCancelled`.
        """
        if not self._loaded:
            raise RuntimeError("Call load() before run()")

        if iterations is None:
            iterations = self._settings.ITERATIONS
        if iterations < 1:
            raise ValueError(f"iterations must be positive, got {iterations}")
        if seed is None:
            seed = self._settings.SEED
        if rng is None:
            rng = np.random.default_rng(seed)

        names = list(self._cells)
        results = {name: np.empty(iterations, dtype=np.float64) for name in names}
        logger.debug("Simulating %d cells for %d iterations", len(names), iterations)

        for i in range(iterations):
            if cancel is not None and cancel.is_set():
                logger.debug("Simulation cancelled after %d iterations", i)
                raise SimulationCancelled(i)
            self._run_iteration(i, results, rng)

        sensitivities = None
        if target is not None and target in results:
            sensitivities = rank_sensitivities(
                results,
                target,
                top=self._settings.TOP_SENSITIVITIES,
                graph=self._graph if upstream_only else None,
            )
        elif target is not None:
            logger.debug("Target %r is not a simulated cell; skipping sensitivities", target)

        return SimulationResult(
            results=results,
            sensitivities=sensitivities,
            iterations=iterations,
            target=target,
            seed=seed,
            settings=self._settings,
        )

    def _run_iteration(self, index: int, results: dict[str, np.ndarray], rng: Generator) -> None:
        context: dict[str, Value] = {}
        for name, expression in self._cells.items():
            try:
                value = expression.calculate(context, rng)
            except Exception:
                logger.error("Simulation aborted at iteration %d evaluating %r", index, name)
                raise
            context[name] = value
            results[name][index] = float(value)


def simulate(
    cells: Mapping[str, Expression],
    iterations: int | None = None,
    target: str | None = None,
    *,
    seed: int | None = None,
    rng: Generator | None = None,
    cancel: threading.Event | None = None,
    upstream_only: bool = False,
    settings: Settings | None = None,
) -> SimulationResult:
    """Run a Monte-Carlo simulation over *cells* in their declaration order."""
    engine = SimulationEngine(settings)
    engine.load(cells)
    return engine.run(
        iterations,
        target,
        seed=seed,
        rng=rng,
        cancel=cancel,
        upstream_only=upstream_only,
    )
