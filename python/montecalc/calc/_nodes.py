"""Expression tree nodes.

Each node renders itself back to formula text with :meth:`Expression.to_formula`
and computes a value with :meth:`Expression.calculate`. Nodes are immutable;
the only source of variation between two evaluations of the same tree is the
random generator handed to stochastic function calls.
"""

from __future__ import annotations

import operator
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Callable, Mapping, Union

import numpy as np

from montecalc.calc._errors import UndefinedVariableError
from montecalc.calc._functions import BuiltinFunction, divide, power, remainder

if TYPE_CHECKING:
    from numpy.random import Generator

Value = Union[float, bool]
Context = Mapping[str, Value]

# Binding strength, lowest first. Used only to decide where to_formula()
# needs parentheses.
PREC_NOT = 1
PREC_OR = 2
PREC_AND = 3
PREC_COMPARE = 4
PREC_ADD = 5
PREC_MUL = 6
PREC_POW = 7
PREC_ATOM = 8

_BINARY_OPS: dict[str, tuple[Callable[[Any, Any], Any], int]] = {
    "+": (operator.add, PREC_ADD),
    "-": (operator.sub, PREC_ADD),
    "*": (operator.mul, PREC_MUL),
    "/": (divide, PREC_MUL),
    "%": (remainder, PREC_MUL),
    "^": (power, PREC_POW),
}

_COMPARISONS: dict[str, Callable[[Any, Any], bool]] = {
    ">": operator.gt,
    "<": operator.lt,
    ">=": operator.ge,
    "<=": operator.le,
    "==": operator.eq,
    "!=": operator.ne,
}


def _wrap(node: Expression, min_prec: int) -> str:
    text = node.to_formula()
    if node.precedence < min_prec:
        return f"({text})"
    return text


def _render_infix(left: Expression, op: str, right: Expression, prec: int) -> str:
    # Every infix level is left-associative: an equal-precedence right
    # operand must keep its parentheses.
    return f"{_wrap(left, prec)} {op} {_wrap(right, prec + 1)}"


def _default_rng(rng: Generator | None) -> Generator:
    return rng if rng is not None else np.random.default_rng()


class Expression:
    """Base class for all expression nodes."""

    precedence: int = PREC_ATOM

    def to_formula(self) -> str:
        raise NotImplementedError

    def calculate(self, context: Context, rng: Generator | None = None) -> Value:
        raise NotImplementedError

    def variables(self) -> frozenset[str]:
        """Names of all variables referenced in this subtree."""
        return frozenset()

    def children(self) -> tuple[Expression, ...]:
        return ()

    def __str__(self) -> str:
        return self.to_formula()


@dataclass(frozen=True, eq=False)
class NumberLiteral(Expression):
    value: float

    def to_formula(self) -> str:
        return np.format_float_positional(self.value, trim="-")

    def calculate(self, context: Context, rng: Generator | None = None) -> Value:
        return self.value


@dataclass(frozen=True, eq=False)
class VariableRef(Expression):
    name: str

    def to_formula(self) -> str:
        return self.name

    def calculate(self, context: Context, rng: Generator | None = None) -> Value:
        try:
            return context[self.name]
        except KeyError:
            raise UndefinedVariableError(
                self.name, f"Undefined variable: {self.name}"
            ) from None

    def variables(self) -> frozenset[str]:
        return frozenset((self.name,))


@dataclass(frozen=True, eq=False)
class BinaryOp(Expression):
    operator: str
    left: Expression
    right: Expression

    @property
    def precedence(self) -> int:  # type: ignore[override]
        return _BINARY_OPS[self.operator][1]

    def to_formula(self) -> str:
        return _render_infix(self.left, self.operator, self.right, self.precedence)

    def calculate(self, context: Context, rng: Generator | None = None) -> Value:
        func = _BINARY_OPS[self.operator][0]
        return func(self.left.calculate(context, rng), self.right.calculate(context, rng))

    def variables(self) -> frozenset[str]:
        return self.left.variables() | self.right.variables()

    def children(self) -> tuple[Expression, ...]:
        return (self.left, self.right)


@dataclass(frozen=True, eq=False)
class Comparison(Expression):
    """Numeric comparison. A boolean operand compares as 1.0 / 0.0."""

    operator: str
    left: Expression
    right: Expression
    precedence = PREC_COMPARE

    def to_formula(self) -> str:
        return _render_infix(self.left, self.operator, self.right, PREC_COMPARE)

    def calculate(self, context: Context, rng: Generator | None = None) -> Value:
        left = self.left.calculate(context, rng)
        right = self.right.calculate(context, rng)
        return _COMPARISONS[self.operator](float(left), float(right))

    def variables(self) -> frozenset[str]:
        return self.left.variables() | self.right.variables()

    def children(self) -> tuple[Expression, ...]:
        return (self.left, self.right)


@dataclass(frozen=True, eq=False)
class LogicalOp(Expression):
    """AND / OR over two operands, NOT over one. Always yields a bool."""

    operator: str
    operands: tuple[Expression, ...]

    @property
    def precedence(self) -> int:  # type: ignore[override]
        return {"NOT": PREC_NOT, "OR": PREC_OR, "AND": PREC_AND}[self.operator]

    def to_formula(self) -> str:
        if self.operator == "NOT":
            # NOT extends to the end of the expression, so its operand never
            # needs parentheses.
            return f"NOT {self.operands[0].to_formula()}"
        left, right = self.operands
        return _render_infix(left, self.operator, right, self.precedence)

    def calculate(self, context: Context, rng: Generator | None = None) -> Value:
        if self.operator == "NOT":
            return not self.operands[0].calculate(context, rng)
        left, right = self.operands
        if self.operator == "AND":
            return bool(left.calculate(context, rng)) and bool(right.calculate(context, rng))
        return bool(left.calculate(context, rng)) or bool(right.calculate(context, rng))

    def variables(self) -> frozenset[str]:
        names: frozenset[str] = frozenset()
        for operand in self.operands:
            names |= operand.variables()
        return names

    def children(self) -> tuple[Expression, ...]:
        return self.operands


@dataclass(frozen=True, eq=False)
class FunctionCall(Expression):
    name: str
    args: tuple[Expression, ...]
    function: BuiltinFunction = field(repr=False)

    def to_formula(self) -> str:
        return f"{self.name}({', '.join(arg.to_formula() for arg in self.args)})"

    def calculate(self, context: Context, rng: Generator | None = None) -> Value:
        if self.function.stochastic:
            rng = _default_rng(rng)
        values = [arg.calculate(context, rng) for arg in self.args]
        return self.function(values, rng)

    def variables(self) -> frozenset[str]:
        names: frozenset[str] = frozenset()
        for arg in self.args:
            names |= arg.variables()
        return names

    def children(self) -> tuple[Expression, ...]:
        return self.args


def tree_depth(node: Expression) -> int:
    """Number of levels in the tree rooted at *node*; a leaf has depth 1."""
    deepest = 0
    stack = [(node, 1)]
    while stack:
        current, depth = stack.pop()
        deepest = max(deepest, depth)
        stack.extend((child, depth + 1) for child in current.children())
    return deepest
