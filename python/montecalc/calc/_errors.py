"""Exceptions raised while tokenizing, parsing and simulating formulas."""

from __future__ import annotations


class FormulaError(Exception):
    """Base exception for all montecalc formula errors."""


class LexError(FormulaError):
    """A character sequence matched none of the token patterns."""

    def __init__(self, text: str, position: int) -> None:
        super().__init__(f"Unrecognized input {text!r} at position {position}")
        self.text = text
        self.position = position


class FormulaSyntaxError(FormulaError):
    """Malformed grammar: bad parentheses or commas, trailing or missing tokens."""


class UndefinedVariableError(FormulaError):
    """A variable was referenced before it was defined."""

    def __init__(self, name: str, message: str | None = None) -> None:
        super().__init__(message or f"Variable {name!r} is used before it's defined")
        self.name = name


class UnknownFunctionError(FormulaError):
    """A call names a function that is not in the registry."""

    def __init__(self, name: str) -> None:
        super().__init__(f"Unknown function: {name}")
        self.name = name


class DomainError(FormulaError, ValueError):
    """A function argument is outside the function's domain."""


class DuplicateCellError(FormulaError):
    """A document declares the same cell name twice."""

    def __init__(self, name: str) -> None:
        super().__init__(f"Cell {name!r} is already defined")
        self.name = name


class SimulationCancelled(FormulaError):
    """The cancel event was set while a simulation was running."""

    def __init__(self, completed: int) -> None:
        super().__init__(f"Simulation cancelled after {completed} iterations")
        self.completed = completed
