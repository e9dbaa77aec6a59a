"""Recursive descent formula parser.

Precedence, lowest to highest::

    1. NOT          prefix, extends over the rest of the expression
    2. OR           left-assoc
    3. AND          left-assoc
    4. comparison   > < >= <= == !=   left-assoc
    5. additive     + -               left-assoc
    6. multiplicative  * / %          left-assoc
    7. power        ^                 left-assoc, so 2 ^ 3 ^ 2 == 64
    8. factor       ( expr ) | call | variable | number

Variable references are checked against the names defined so far, which is
how "define before use" is enforced across a whole document.

Nodes render and evaluate recursively, so formulas are bounded: at most
``MAX_NESTING`` nested parentheses, calls or NOTs, and an expression tree at
most ``MAX_DEPTH`` levels deep (a chain of N binary operators is N + 1 deep).
Anything larger is a :class:`FormulaSyntaxError`.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence

from montecalc.calc._errors import (
    FormulaSyntaxError,
    UndefinedVariableError,
    UnknownFunctionError,
)
from montecalc.calc._functions import DEFAULT_REGISTRY, FunctionRegistry
from montecalc.calc._lexer import COMPARISON_OPS, is_identifier, is_number, tokenize
from montecalc.calc._nodes import (
    BinaryOp,
    Comparison,
    Expression,
    FunctionCall,
    LogicalOp,
    NumberLiteral,
    VariableRef,
    tree_depth,
)

MAX_NESTING = 64
MAX_DEPTH = 150


class FormulaParser:
    """Parses one token sequence into an :class:`Expression` tree.

    Usage::

        tree = FormulaParser(tokenize("a * 2"), {"a"}).parse()
    """

    def __init__(
        self,
        tokens: Sequence[str],
        defined_variables: Iterable[str],
        registry: FunctionRegistry | None = None,
    ) -> None:
        self._tokens = list(tokens)
        self._pos = 0
        self._nesting = 0
        self._defined = frozenset(defined_variables)
        self._registry = registry if registry is not None else DEFAULT_REGISTRY

    def parse(self) -> Expression:
        """Parse the whole token sequence; trailing tokens are an error."""
        self._pos = 0
        self._nesting = 0
        result = self._parse_expression()
        if self._pos < len(self._tokens):
            raise FormulaSyntaxError(f"Unexpected token at end: {self._peek()}")
        if tree_depth(result) > MAX_DEPTH:
            raise FormulaSyntaxError(
                f"Formula is too long: more than {MAX_DEPTH} levels of operators"
            )
        return result

    # ------------------------------------------------------------------
    # Token cursor
    # ------------------------------------------------------------------

    def _peek(self, offset: int = 0) -> str | None:
        idx = self._pos + offset
        return self._tokens[idx] if idx < len(self._tokens) else None

    def _advance(self) -> str:
        token = self._tokens[self._pos]
        self._pos += 1
        return token

    def _expect(self, token: str, context: str = "") -> None:
        found = self._peek()
        if found != token:
            what = "closing" if token == ")" else "opening"
            raise FormulaSyntaxError(
                f"Expected {what} parenthesis{context}, found {found or 'end of input'}"
            )
        self._pos += 1

    # ------------------------------------------------------------------
    # Precedence levels
    # ------------------------------------------------------------------

    def _parse_expression(self) -> Expression:
        self._nesting += 1
        if self._nesting > MAX_NESTING:
            raise FormulaSyntaxError(
                f"Formula is nested too deeply: more than {MAX_NESTING} levels"
            )
        try:
            if self._peek() == "NOT":
                self._advance()
                return LogicalOp("NOT", (self._parse_expression(),))
            return self._parse_or()
        finally:
            self._nesting -= 1

    def _parse_or(self) -> Expression:
        left = self._parse_and()
        while self._peek() == "OR":
            self._advance()
            left = LogicalOp("OR", (left, self._parse_and()))
        return left

    def _parse_and(self) -> Expression:
        left = self._parse_comparison()
        while self._peek() == "AND":
            self._advance()
            left = LogicalOp("AND", (left, self._parse_comparison()))
        return left

    def _parse_comparison(self) -> Expression:
        left = self._parse_additive()
        while self._peek() in COMPARISON_OPS:
            op = self._advance()
            left = Comparison(op, left, self._parse_additive())
        return left

    def _parse_additive(self) -> Expression:
        left = self._parse_multiplicative()
        while self._peek() in ("+", "-"):
            op = self._advance()
            left = BinaryOp(op, left, self._parse_multiplicative())
        return left

    def _parse_multiplicative(self) -> Expression:
        left = self._parse_power()
        while self._peek() in ("*", "/", "%"):
            op = self._advance()
            left = BinaryOp(op, left, self._parse_power())
        return left

    def _parse_power(self) -> Expression:
        left = self._parse_factor()
        while self._peek() == "^":
            self._advance()
            left = BinaryOp("^", left, self._parse_factor())
        return left

    # ------------------------------------------------------------------
    # Factors
    # ------------------------------------------------------------------

    def _parse_factor(self) -> Expression:
        token = self._peek()
        if token is None:
            raise FormulaSyntaxError("Unexpected end of input")
        if token == "(":
            self._advance()
            expr = self._parse_expression()
            self._expect(")")
            return expr
        if is_identifier(token):
            if self._peek(1) == "(":
                return self._parse_call()
            return self._parse_variable()
        if is_number(token):
            return NumberLiteral(float(self._advance()))
        raise FormulaSyntaxError(f"Unexpected token: {token}")

    def _parse_variable(self) -> VariableRef:
        name = self._advance()
        if name not in self._defined:
            raise UndefinedVariableError(name)
        return VariableRef(name)

    def _parse_call(self) -> FunctionCall:
        name = self._advance()
        function = self._registry.get(name)
        if function is None:
            raise UnknownFunctionError(name)
        self._expect("(", f" after function name {name}")

        args: list[Expression] = []
        if self._peek() != ")":
            args.append(self._parse_expression())
            while self._peek() == ",":
                self._advance()
                args.append(self._parse_expression())
        self._expect(")")

        problem = function.check_arity(len(args))
        if problem is not None:
            raise FormulaSyntaxError(problem)
        return FunctionCall(name, tuple(args), function)


def parse(
    tokens: Sequence[str],
    defined_variables: Iterable[str],
    registry: FunctionRegistry | None = None,
) -> Expression:
    """Parse *tokens* into an expression tree."""
    return FormulaParser(tokens, defined_variables, registry).parse()


def parse_formula(
    formula: str,
    defined_variables: Iterable[str] = (),
    registry: FunctionRegistry | None = None,
) -> Expression:
    """Tokenize and parse a formula string."""
    return parse(tokenize(formula), defined_variables, registry)
