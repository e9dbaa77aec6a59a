"""Dependency graph over named cells, built from their expression trees."""

from __future__ import annotations

from collections import deque
from collections.abc import Mapping

from montecalc.calc._nodes import Expression


class DependencyGraph:
    """Tracks which cells read which other cells.

    Insertion order is declaration order; every listing this class returns
    follows it.
    """

    __slots__ = ("dependencies", "dependents", "_order")

    def __init__(self) -> None:
        # cell -> set of cells it reads from
        self.dependencies: dict[str, set[str]] = {}
        # cell -> set of cells that read from it (reverse edges)
        self.dependents: dict[str, set[str]] = {}
        # cell -> declaration index
        self._order: dict[str, int] = {}

    def add_cell(self, name: str, expression: Expression) -> None:
        """Register a cell and the names its formula references."""
        self._order.setdefault(name, len(self._order))
        refs = expression.variables()
        self.dependencies[name] = set(refs)
        for ref in refs:
            self.dependents.setdefault(ref, set()).add(name)

    @property
    def cells(self) -> list[str]:
        return sorted(self._order, key=self._order.__getitem__)

    def _sorted(self, names: set[str]) -> list[str]:
        return sorted(names, key=lambda n: self._order.get(n, len(self._order)))

    def topological_order(self) -> list[str]:
        """Return cells in evaluation order (Kahn's algorithm).

        Ties are broken by declaration order. Raises ValueError if a circular
        reference is detected.
        """
        cells = set(self._order)
        if not cells:
            return []

        # Only count dependencies that are themselves cells
        in_degree = {c: len(self.dependencies.get(c, set()) & cells) for c in cells}
        queue: deque[str] = deque(self._sorted({c for c in cells if in_degree[c] == 0}))

        order: list[str] = []
        while queue:
            cell = queue.popleft()
            order.append(cell)
            ready: set[str] = set()
            for dep in self.dependents.get(cell, set()):
                if dep in cells:
                    in_degree[dep] -= 1
                    if in_degree[dep] == 0:
                        ready.add(dep)
            queue.extend(self._sorted(ready))

        if len(order) != len(cells):
            missing = cells - set(order)
            raise ValueError(f"Circular reference detected involving: {self._sorted(missing)}")

        return order

    def _closure(self, start: str, edges: dict[str, set[str]]) -> list[str]:
        seen: set[str] = set()
        queue: deque[str] = deque(edges.get(start, set()))
        while queue:
            cell = queue.popleft()
            if cell in seen:
                continue
            seen.add(cell)
            queue.extend(edges.get(cell, set()))
        seen.discard(start)
        return self._sorted(seen)

    def upstream(self, name: str) -> list[str]:
        """All cells *name* reads from, directly or transitively."""
        return self._closure(name, self.dependencies)

    def downstream(self, name: str) -> list[str]:
        """All cells that read *name*, directly or transitively."""
        return self._closure(name, self.dependents)

    @classmethod
    def from_cells(cls, cells: Mapping[str, Expression]) -> DependencyGraph:
        """Build a dependency graph from an ordered name -> expression map."""
        graph = cls()
        for name, expression in cells.items():
            graph.add_cell(name, expression)
        return graph
