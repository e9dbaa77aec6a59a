"""montecalc — Monte-Carlo cells embedded in plain text.

Usage::

    from montecalc import Document, generate_results, parse_input

    text = "Cost is [cost = normal(100, 15)], price is [price = uniform(150, 200)]."
    text += " Profit is [profit = price - cost]."

    cells = parse_input(text)
    print(cells["profit"].to_formula())  # price - cost

    result = generate_results(cells, iterations=10000, target_cell="profit", seed=1)
    print(result.results["profit"].mean(), result.sensitivities)
"""

from __future__ import annotations

import threading
from collections.abc import Mapping

from montecalc._config import Settings, get_settings
from montecalc._document import Cell, CellError, Document, parse_input
from montecalc.calc import Expression, SimulationResult, simulate

__version__ = "0.1.0"

__all__ = [
    "__version__",
    "Cell",
    "CellError",
    "Document",
    "Settings",
    "generate_results",
    "get_settings",
    "parse_input",
]


def generate_results(
    cells: Mapping[str, Expression],
    iterations: int | None = None,
    target_cell: str | None = None,
    seed: int | None = None,
    cancel: threading.Event | None = None,
    settings: Settings | None = None,
) -> SimulationResult:
    """Simulate *cells* and, when *target_cell* is given, rank sensitivities.

    Parameters
    ----------
    iterations : int, optional
        Number of Monte-Carlo iterations. Defaults to ``Settings.ITERATIONS``
        (10000, or ``MONTECALC_ITERATIONS`` from the environment).
    seed : int, optional
        Seed for the run's random generator; equal seeds give equal samples.
    """
    return simulate(
        cells,
        iterations,
        target_cell,
        seed=seed,
        cancel=cancel,
        settings=settings,
    )
