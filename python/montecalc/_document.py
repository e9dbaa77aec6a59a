"""Document scanner: ``[name = formula]`` cell declarations in free text.

Cells are parsed left to right. Each successfully parsed name becomes
visible to the formulas after it, never to those before it.
"""

from __future__ import annotations

import logging
import re
import threading
from dataclasses import dataclass
from typing import Callable

from montecalc._config import Settings
from montecalc.calc._errors import DuplicateCellError, FormulaError
from montecalc.calc._evaluator import simulate
from montecalc.calc._functions import FunctionRegistry
from montecalc.calc._graph import DependencyGraph
from montecalc.calc._lexer import tokenize
from montecalc.calc._nodes import Expression
from montecalc.calc._parser import parse
from montecalc.calc._protocol import SimulationResult

logger = logging.getLogger(__name__)

# name is \w+, formula is everything up to the next ]
_CELL_RE = re.compile(r"\[(\w+)\s*=\s*([^\]]+)\]", re.ASCII)


@dataclass(frozen=True)
class Cell:
    """One parsed declaration."""

    name: str
    expression: Expression
    order: int  # position among the document's accepted cells
    formula: str  # source text, stripped


@dataclass(frozen=True)
class CellError:
    """A declaration that failed to parse and was left out of the document."""

    name: str
    formula: str
    error: FormulaError
    offset: int  # character offset of the declaration in the document


class Document:
    """The cells parsed out of one document text.

    Usage::

        doc = Document.parse("[a = uniform(0, 1)] and [b = a * 2]")
        result = doc.simulate(10000, target="b")
    """

    def __init__(self, cells: list[Cell], errors: list[CellError]) -> None:
        self._cells: dict[str, Cell] = {cell.name: cell for cell in cells}
        self.errors: list[CellError] = errors
        self._graph: DependencyGraph | None = None

    @classmethod
    def parse(
        cls,
        text: str,
        registry: FunctionRegistry | None = None,
        on_error: Callable[[CellError], None] | None = None,
    ) -> Document:
        """Scan *text* for cell declarations.

        A declaration that fails to parse is logged, reported to *on_error*,
        recorded in :attr:`errors` and skipped; the rest of the document is
        unaffected.
        """
        cells: list[Cell] = []
        errors: list[CellError] = []
        defined: set[str] = set()

        for m in _CELL_RE.finditer(text):
            name, formula = m.group(1), m.group(2).strip()
            try:
                if name in defined:
                    raise DuplicateCellError(name)
                expression = parse(tokenize(formula), defined, registry)
            except FormulaError as e:
                logger.warning("Error parsing formula for %s: %s", name, e)
                failure = CellError(name=name, formula=formula, error=e, offset=m.start())
                errors.append(failure)
                if on_error is not None:
                    on_error(failure)
                continue
            cells.append(Cell(name=name, expression=expression, order=len(cells), formula=formula))
            defined.add(name)

        return cls(cells, errors)

    @property
    def cells(self) -> list[Cell]:
        return list(self._cells.values())

    @property
    def expressions(self) -> dict[str, Expression]:
        """Ordered cell name -> expression map, as the engine consumes it."""
        return {name: cell.expression for name, cell in self._cells.items()}

    @property
    def graph(self) -> DependencyGraph:
        if self._graph is None:
            self._graph = DependencyGraph.from_cells(self.expressions)
        return self._graph

    def __getitem__(self, name: str) -> Cell:
        if name not in self._cells:
            raise KeyError(f"Cell '{name}' does not exist")
        return self._cells[name]

    def __contains__(self, name: str) -> bool:
        return name in self._cells

    def __iter__(self):  # type: ignore[no-untyped-def]
        return iter(self._cells)

    def __len__(self) -> int:
        return len(self._cells)

    def simulate(
        self,
        iterations: int | None = None,
        target: str | None = None,
        *,
        seed: int | None = None,
        cancel: threading.Event | None = None,
        upstream_only: bool = False,
        settings: Settings | None = None,
    ) -> SimulationResult:
        """Run the Monte-Carlo engine over this document's cells."""
        return simulate(
            self.expressions,
            iterations,
            target,
            seed=seed,
            cancel=cancel,
            upstream_only=upstream_only,
            settings=settings,
        )

    def __repr__(self) -> str:
        return f"<Document cells={list(self._cells)} errors={len(self.errors)}>"


def parse_input(
    text: str,
    registry: FunctionRegistry | None = None,
    on_error: Callable[[CellError], None] | None = None,
) -> dict[str, Expression]:
    """Parse every ``[name = formula]`` in *text* into an ordered name -> expression map."""
    return Document.parse(text, registry, on_error).expressions
