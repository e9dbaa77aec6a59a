"""Builtin function catalog and registry for formula evaluation."""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Callable

from montecalc.calc._errors import DomainError

if TYPE_CHECKING:
    from numpy.random import Generator


# ---------------------------------------------------------------------------
# BuiltinFunction: implementation plus arity rule
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class BuiltinFunction:
    """A named function usable in call expressions.

    ``impl`` receives the list of evaluated arguments. Stochastic functions
    also receive the random generator as a second positional argument.
    ``max_args`` of None means variadic.
    """

    name: str
    impl: Callable[..., Any]
    min_args: int
    max_args: int | None
    stochastic: bool = False

    def check_arity(self, count: int) -> str | None:
        """Return an error message when *count* arguments is not accepted."""
        if self.max_args is None:
            if count < self.min_args:
                return f"{self.name}() takes at least {self.min_args} arguments, got {count}"
            return None
        if not self.min_args <= count <= self.max_args:
            if self.min_args == self.max_args:
                return f"{self.name}() takes {self.min_args} arguments, got {count}"
            return (
                f"{self.name}() takes {self.min_args} to {self.max_args} arguments, "
                f"got {count}"
            )
        return None

    def __call__(self, args: list[Any], rng: Generator) -> Any:
        if self.stochastic:
            return self.impl(args, rng)
        return self.impl(args)


# ---------------------------------------------------------------------------
# Numeric coercion and IEEE-style helpers
# ---------------------------------------------------------------------------


def _coerce_numeric(values: list[Any]) -> list[float]:
    """Coerce values to floats. Booleans become 1.0 / 0.0."""
    return [float(v) for v in values]


def _ieee(func: Callable[[float], float]) -> Callable[[float], float]:
    """Wrap a ``math`` function so domain errors give nan and overflow gives inf."""

    def wrapped(x: float) -> float:
        try:
            return func(x)
        except ValueError:
            return math.nan
        except OverflowError:
            return math.inf

    wrapped.__name__ = func.__name__
    return wrapped


def _log(x: float) -> float:
    if x == 0:
        return -math.inf
    if math.isinf(x) and x > 0:
        return math.inf
    try:
        return math.log(x)
    except ValueError:
        return math.nan


def divide(left: float, right: float) -> float:
    """Floating-point division: +-inf or nan instead of ZeroDivisionError."""
    if right == 0:
        if left == 0 or math.isnan(left):
            return math.nan
        return math.copysign(math.inf, left) * math.copysign(1.0, right)
    return left / right


def remainder(left: float, right: float) -> float:
    """Remainder with the sign of the dividend."""
    if right == 0:
        return math.nan
    try:
        return math.fmod(left, right)
    except ValueError:
        return math.nan


def _is_odd_integer(x: float) -> bool:
    return math.isfinite(x) and x == math.floor(x) and math.fmod(x, 2) != 0


def power(left: float, right: float) -> float:
    """IEEE-754 pow: poles and overflow give a signed infinity, domain errors nan."""
    if left == 0 and right < 0:
        # The sign of zero survives only an odd integer exponent
        if _is_odd_integer(right):
            return math.copysign(math.inf, left)
        return math.inf
    try:
        return math.pow(left, right)
    except ValueError:
        return math.nan
    except OverflowError:
        if left < 0 and _is_odd_integer(right):
            return -math.inf
        return math.inf


# ---------------------------------------------------------------------------
# Builtin implementations
# Each takes a list of evaluated argument values.
# ---------------------------------------------------------------------------


def _builtin_if(args: list[Any]) -> Any:
    condition, when_true, when_false = args
    return when_true if condition else when_false


def _builtin_round(args: list[Any]) -> float:
    # Halves round up, toward +inf: round(-2.5) == -2
    x = float(args[0])
    if not math.isfinite(x):
        return x
    return float(math.floor(x + 0.5))


def _builtin_min(args: list[Any]) -> float:
    return min(_coerce_numeric(args))


def _builtin_max(args: list[Any]) -> float:
    return max(_coerce_numeric(args))


def _builtin_mean(args: list[Any]) -> float:
    nums = _coerce_numeric(args)
    return sum(nums) / len(nums)


def _builtin_median(args: list[Any]) -> float:
    nums = sorted(_coerce_numeric(args))
    mid = len(nums) // 2
    if len(nums) % 2:
        return nums[mid]
    return (nums[mid - 1] + nums[mid]) / 2


def _builtin_stdev(args: list[Any]) -> float:
    """Population standard deviation (divides by n)."""
    nums = _coerce_numeric(args)
    n = len(nums)
    mean = sum(nums) / n
    return math.sqrt(sum((x - mean) ** 2 for x in nums) / n)


def _builtin_percentile(args: list[Any]) -> float:
    """PERCENTILE(p, v1, v2, ...). Linear interpolation between closest ranks."""
    p = float(args[0])
    if not 0 <= p <= 100:
        raise DomainError(f"Percentile must be between 0 and 100, got {p:g}")
    nums = sorted(_coerce_numeric(args[1:]))
    index = (p / 100) * (len(nums) - 1)
    lower = math.floor(index)
    upper = math.ceil(index)
    if lower == upper:
        return nums[lower]
    weight = index - lower
    return nums[lower] * (1 - weight) + nums[upper] * weight


def _unary(func: Callable[[float], float]) -> Callable[[list[Any]], float]:
    def impl(args: list[Any]) -> float:
        return func(float(args[0]))

    impl.__name__ = f"_builtin_{func.__name__}"
    return impl


# ---------------------------------------------------------------------------
# Stochastic builtins: receive the run's random generator
# ---------------------------------------------------------------------------


def _open_unit(rng: Generator) -> float:
    """Uniform draw in (0, 1): Generator.random() is [0, 1), so reject 0."""
    u = 0.0
    while u == 0.0:
        u = rng.random()
    return u


def _builtin_normal(args: list[Any], rng: Generator) -> float:
    """NORMAL(mean, std_dev). One Box-Muller sample."""
    mean, std_dev = _coerce_numeric(args)
    u = _open_unit(rng)
    v = _open_unit(rng)
    z = math.sqrt(-2.0 * math.log(u)) * math.cos(2.0 * math.pi * v)
    return z * std_dev + mean


def _builtin_uniform(args: list[Any], rng: Generator) -> float:
    """UNIFORM(min, max). One sample in [min, max)."""
    lo, hi = _coerce_numeric(args)
    return rng.random() * (hi - lo) + lo


def _builtin_triangular(args: list[Any], rng: Generator) -> float:
    """TRIANGULAR(min, mode, max). Inverse-CDF sample."""
    lo, mode, hi = _coerce_numeric(args)
    if hi == lo:
        return lo
    u = rng.random()
    f = (mode - lo) / (hi - lo)
    if u < f:
        return lo + math.sqrt(u * (hi - lo) * (mode - lo))
    return hi - math.sqrt((1 - u) * (hi - lo) * (hi - mode))


# ---------------------------------------------------------------------------
# Registry
# ---------------------------------------------------------------------------

_BUILTINS: dict[str, BuiltinFunction] = {
    f.name: f
    for f in (
        BuiltinFunction("if", _builtin_if, 3, 3),
        BuiltinFunction("normal", _builtin_normal, 2, 2, stochastic=True),
        BuiltinFunction("uniform", _builtin_uniform, 2, 2, stochastic=True),
        BuiltinFunction("triangular", _builtin_triangular, 3, 3, stochastic=True),
        BuiltinFunction("round", _builtin_round, 1, 1),
        # Aggregates
        BuiltinFunction("min", _builtin_min, 1, None),
        BuiltinFunction("max", _builtin_max, 1, None),
        BuiltinFunction("mean", _builtin_mean, 1, None),
        BuiltinFunction("median", _builtin_median, 1, None),
        BuiltinFunction("stdev", _builtin_stdev, 1, None),
        BuiltinFunction("percentile", _builtin_percentile, 2, None),
        # Transcendental
        BuiltinFunction("log", _unary(_log), 1, 1),
        BuiltinFunction("exp", _unary(_ieee(math.exp)), 1, 1),
        BuiltinFunction("sin", _unary(_ieee(math.sin)), 1, 1),
        BuiltinFunction("cos", _unary(_ieee(math.cos)), 1, 1),
        BuiltinFunction("tan", _unary(_ieee(math.tan)), 1, 1),
    )
}


def is_builtin(name: str) -> bool:
    """Check if *name* is in the builtin catalog. Names are case-sensitive."""
    return name in _BUILTINS


class FunctionRegistry:
    """Registry of callable function implementations.

    Starts with builtins and can be extended with custom functions.
    """

    def __init__(self) -> None:
        self._functions: dict[str, BuiltinFunction] = dict(_BUILTINS)

    def register(
        self,
        name: str,
        func: Callable[..., Any],
        min_args: int = 0,
        max_args: int | None = None,
        stochastic: bool = False,
    ) -> None:
        self._functions[name] = BuiltinFunction(name, func, min_args, max_args, stochastic)

    def get(self, name: str) -> BuiltinFunction | None:
        return self._functions.get(name)

    def has(self, name: str) -> bool:
        return name in self._functions

    @property
    def supported_functions(self) -> frozenset[str]:
        return frozenset(self._functions.keys())


DEFAULT_REGISTRY = FunctionRegistry()
