"""Tests for montecalc.calc function registry and builtins."""

from __future__ import annotations

import math

import numpy as np
import pytest

from montecalc.calc._errors import DomainError
from montecalc.calc._functions import (
    _BUILTINS,
    BuiltinFunction,
    FunctionRegistry,
    divide,
    is_builtin,
    power,
    remainder,
)
from montecalc.calc._parser import parse_formula


def _call(name: str, *args: float) -> float:
    return _BUILTINS[name](list(args), np.random.default_rng(0))


class TestCatalog:
    def test_catalog_names(self) -> None:
        assert set(_BUILTINS) == {
            "if", "normal", "uniform", "round", "triangular",
            "min", "max", "mean", "median", "stdev", "percentile",
            "log", "exp", "sin", "cos", "tan",
        }

    def test_stochastic_flags(self) -> None:
        stochastic = {name for name, f in _BUILTINS.items() if f.stochastic}
        assert stochastic == {"normal", "uniform", "triangular"}

    def test_is_builtin_case_sensitive(self) -> None:
        assert is_builtin("normal")
        assert not is_builtin("NORMAL")
        assert not is_builtin("foo")


class TestFunctionRegistry:
    def test_builtins_registered(self) -> None:
        reg = FunctionRegistry()
        assert reg.has("if")
        assert reg.has("percentile")

    def test_custom_registration(self) -> None:
        reg = FunctionRegistry()
        reg.register("double", lambda args: args[0] * 2, 1, 1)
        assert reg.has("double")
        tree = parse_formula("double(21)", registry=reg)
        assert tree.calculate({}) == 42

    def test_custom_stochastic(self) -> None:
        reg = FunctionRegistry()
        reg.register("coin", lambda args, rng: float(rng.random() < 0.5), 0, 0, stochastic=True)
        tree = parse_formula("coin()", registry=reg)
        assert tree.calculate({}, np.random.default_rng(3)) in (0.0, 1.0)

    def test_registration_does_not_leak(self) -> None:
        FunctionRegistry().register("tmp", lambda args: 0)
        assert not FunctionRegistry().has("tmp")

    def test_supported_functions_property(self) -> None:
        funcs = FunctionRegistry().supported_functions
        assert isinstance(funcs, frozenset)
        assert "stdev" in funcs


class TestArity:
    def test_fixed(self) -> None:
        f = _BUILTINS["triangular"]
        assert f.check_arity(3) is None
        assert "takes 3 arguments, got 2" in f.check_arity(2)

    def test_variadic(self) -> None:
        f = _BUILTINS["percentile"]
        assert f.check_arity(5) is None
        assert "at least 2" in f.check_arity(1)

    def test_range(self) -> None:
        f = BuiltinFunction("f", lambda args: 0, 1, 3)
        assert f.check_arity(2) is None
        assert "1 to 3" in f.check_arity(4)


class TestDeterministic:
    def test_if(self) -> None:
        assert _call("if", True, 1, 2) == 1
        assert _call("if", 0, 1, 2) == 2

    def test_round(self) -> None:
        assert _call("round", 2.4) == 2
        assert _call("round", 2.5) == 3
        assert _call("round", -2.5) == -2

    def test_min_max(self) -> None:
        assert _call("min", 3, 1, 2) == 1
        assert _call("max", 3, 1, 2) == 3

    def test_mean(self) -> None:
        assert _call("mean", 1, 2, 3, 4) == 2.5

    def test_median_odd_even(self) -> None:
        assert _call("median", 5, 1, 3) == 3
        assert _call("median", 4, 1, 3, 2) == 2.5

    def test_stdev_population(self) -> None:
        assert _call("stdev", 2, 4, 4, 4, 5, 5, 7, 9) == pytest.approx(2.0)

    def test_booleans_coerced(self) -> None:
        assert _call("mean", True, False) == 0.5

    def test_transcendental(self) -> None:
        assert _call("log", math.e) == pytest.approx(1.0)
        assert _call("exp", 0) == 1.0
        assert _call("sin", 0) == 0.0
        assert _call("cos", 0) == 1.0
        assert _call("tan", 0) == 0.0


class TestPercentile:
    def test_interpolates(self) -> None:
        assert _call("percentile", 50, 1, 2, 3, 4) == pytest.approx(2.5)

    def test_exact_rank(self) -> None:
        assert _call("percentile", 50, 3, 1, 2) == 2

    def test_bounds(self) -> None:
        assert _call("percentile", 0, 5, 1, 9) == 1
        assert _call("percentile", 100, 5, 1, 9) == 9

    def test_out_of_range(self) -> None:
        with pytest.raises(DomainError):
            _call("percentile", 150, 1, 2, 3)

    def test_negative(self) -> None:
        with pytest.raises(DomainError):
            _call("percentile", -1, 1, 2, 3)

    def test_domain_error_from_formula(self) -> None:
        tree = parse_formula("percentile(150, 1, 2, 3)")
        with pytest.raises(DomainError):
            tree.calculate({})


class TestIEEEArithmetic:
    def test_divide_by_zero(self) -> None:
        assert divide(1, 0) == math.inf
        assert divide(-1, 0) == -math.inf
        assert math.isnan(divide(0, 0))

    def test_remainder_sign_follows_dividend(self) -> None:
        assert remainder(-7, 3) == -1
        assert math.isnan(remainder(1, 0))

    def test_power_domain(self) -> None:
        assert math.isnan(power(-8, 1 / 3))
        assert power(10, 400) == math.inf

    def test_power_zero_base_negative_exponent(self) -> None:
        assert power(0, -1) == math.inf
        assert power(-0.0, -1) == -math.inf
        assert power(-0.0, -2) == math.inf
        assert parse_formula("0 ^ (0 - 1)").calculate({}) == math.inf

    def test_power_overflow_keeps_sign(self) -> None:
        assert power(-10, 401) == -math.inf
        assert power(-10, 400) == math.inf
        assert parse_formula("(0 - 10) ^ 401").calculate({}) == -math.inf

    def test_log_edges(self) -> None:
        assert _call("log", 0) == -math.inf
        assert math.isnan(_call("log", -1))

    def test_exp_overflow(self) -> None:
        assert _call("exp", 1000) == math.inf


class TestStochastic:
    N = 20000

    def _samples(self, name: str, *args: float) -> np.ndarray:
        rng = np.random.default_rng(12345)
        f = _BUILTINS[name]
        return np.array([f(list(args), rng) for _ in range(self.N)])

    def test_normal_moments(self) -> None:
        s = self._samples("normal", 10, 2)
        assert abs(s.mean() - 10) < 0.1
        assert abs(s.std() - 2) < 0.1

    def test_uniform_range_and_mean(self) -> None:
        s = self._samples("uniform", 5, 7)
        assert s.min() >= 5
        assert s.max() < 7
        assert abs(s.mean() - 6) < 0.05

    def test_triangular_range_and_mean(self) -> None:
        s = self._samples("triangular", 0, 3, 6)
        assert s.min() >= 0
        assert s.max() <= 6
        # mean of triangular(a, c, b) is (a + b + c) / 3
        assert abs(s.mean() - 3) < 0.1

    def test_triangular_degenerate(self) -> None:
        assert _call("triangular", 4, 4, 4) == 4

    def test_fresh_draw_each_call(self) -> None:
        tree = parse_formula("uniform(0, 1)")
        rng = np.random.default_rng(1)
        assert tree.calculate({}, rng) != tree.calculate({}, rng)

    def test_seeded_reproducible(self) -> None:
        tree = parse_formula("normal(0, 1)")
        a = [tree.calculate({}, np.random.default_rng(9)) for _ in range(3)]
        b = [tree.calculate({}, np.random.default_rng(9)) for _ in range(3)]
        assert a == b

    def test_without_rng(self) -> None:
        value = parse_formula("uniform(1, 2)").calculate({})
        assert 1 <= value < 2
