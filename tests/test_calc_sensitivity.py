"""Tests for montecalc.calc sensitivity analysis and distribution summaries."""

from __future__ import annotations

import math

import numpy as np
import pytest

from montecalc._config import Settings
from montecalc.calc._graph import DependencyGraph
from montecalc.calc._parser import parse_formula
from montecalc.calc._sensitivity import analyze, rank_sensitivities
from montecalc.calc._summary import histogram, summarize


class TestAnalyze:
    def test_exact_line(self) -> None:
        x = np.array([1.0, 2.0, 3.0, 4.0])
        rec = analyze(3 * x + 1, x)
        assert rec is not None
        assert rec.slope == pytest.approx(3.0)
        assert rec.intercept == pytest.approx(1.0)
        assert rec.r_squared == pytest.approx(1.0)
        assert rec.beta == pytest.approx(1.0)

    def test_negative_relation(self) -> None:
        x = np.array([1.0, 2.0, 3.0])
        rec = analyze(-x, x)
        assert rec.slope == pytest.approx(-1.0)
        assert rec.beta == pytest.approx(-1.0)

    def test_known_values(self) -> None:
        # ssxx = 2, ssyy = 8/3, ssxy = 2 for these points
        x = [1.0, 2.0, 3.0]
        y = [1.0, 3.0, 3.0]
        rec = analyze(y, x)
        assert rec.slope == pytest.approx(1.0)
        assert rec.intercept == pytest.approx(7 / 3 - 2)
        assert rec.r_squared == pytest.approx(4 / (2 * 8 / 3))
        assert rec.beta == pytest.approx(math.sqrt(2 / (8 / 3)))

    def test_constant_variable_skipped(self) -> None:
        assert analyze([1.0, 2.0, 3.0], [5.0, 5.0, 5.0]) is None

    def test_constant_target_skipped(self) -> None:
        assert analyze([4.0, 4.0, 4.0], [1.0, 2.0, 3.0]) is None

    def test_too_few_samples(self) -> None:
        assert analyze([1.0], [2.0]) is None

    def test_non_finite_pairs_dropped(self) -> None:
        x = np.array([1.0, 2.0, np.nan, 3.0, 4.0])
        y = np.array([2.0, 4.0, 6.0, np.inf, 8.0])
        rec = analyze(y, x)
        assert rec.slope == pytest.approx(2.0)

    def test_length_mismatch(self) -> None:
        with pytest.raises(ValueError, match="differ"):
            analyze([1.0, 2.0], [1.0, 2.0, 3.0])


class TestRankSensitivities:
    def _results(self) -> dict[str, np.ndarray]:
        rng = np.random.default_rng(0)
        a = rng.normal(0, 1, 2000)
        b = rng.normal(0, 1, 2000)
        c = rng.normal(0, 1, 2000)
        noise = rng.normal(0, 1, 2000)
        return {
            "a": a,
            "b": b,
            "c": c,
            "k": np.full(2000, 3.0),
            "t": 5 * a + 2 * b + 0.5 * c + noise,
        }

    def test_sorted_by_abs_beta(self) -> None:
        ranked = rank_sensitivities(self._results(), "t")
        assert list(ranked)[:3] == ["a", "b", "c"]

    def test_target_and_constants_excluded(self) -> None:
        ranked = rank_sensitivities(self._results(), "t")
        assert "t" not in ranked
        assert "k" not in ranked

    def test_top_truncates(self) -> None:
        ranked = rank_sensitivities(self._results(), "t", top=2)
        assert list(ranked) == ["a", "b"]

    def test_default_keeps_five(self) -> None:
        results = {f"v{i}": np.arange(10.0) * (i + 1) for i in range(8)}
        results["t"] = np.arange(10.0) ** 2
        assert len(rank_sensitivities(results, "t")) == 5

    def test_unknown_target(self) -> None:
        with pytest.raises(KeyError):
            rank_sensitivities(self._results(), "missing")

    def test_graph_limits_to_upstream(self) -> None:
        cells = {"a": parse_formula("1"), "b": parse_formula("2")}
        cells["t"] = parse_formula("a * 5", cells.keys())
        graph = DependencyGraph.from_cells(cells)
        results = self._results()
        ranked = rank_sensitivities(results, "t", graph=graph)
        assert list(ranked) == ["a"]


class TestHistogram:
    def test_counts_and_edges(self) -> None:
        h = histogram(np.array([0.0, 1.0, 2.0, 3.0, 4.0]), 4)
        assert h.start == 0.0
        assert h.bucket_size == 1.0
        # maximum falls into the last bucket
        assert h.counts == (1, 1, 1, 2)
        assert h.edges == (0.0, 1.0, 2.0, 3.0)

    def test_constant_values(self) -> None:
        h = histogram(np.array([7.0, 7.0, 7.0]), 5)
        assert h.counts == (3, 0, 0, 0, 0)

    def test_empty(self) -> None:
        h = histogram(np.array([]), 3)
        assert h.counts == (0, 0, 0)

    def test_non_finite_dropped(self) -> None:
        h = histogram(np.array([np.nan, 0.0, 1.0, np.inf, 2.0, -np.inf]), 2)
        assert h.start == 0.0
        assert h.counts == (1, 2)

    def test_only_non_finite(self) -> None:
        h = histogram([np.nan, np.inf], 2)
        assert h.counts == (0, 0)
        assert math.isnan(h.start)

    def test_invalid_bucket_count(self) -> None:
        with pytest.raises(ValueError):
            histogram(np.array([1.0]), 0)


class TestSummarize:
    def test_statistics(self) -> None:
        values = np.arange(100.0)
        s = summarize(values, buckets=10)
        assert s.count == 100
        assert s.mean == pytest.approx(49.5)
        assert s.median == 50.0
        assert s.low == 5.0
        assert s.high == 95.0
        assert sum(s.histogram.counts) == 100

    def test_default_buckets_from_settings(self) -> None:
        s = summarize(np.arange(10.0), settings=Settings(HISTOGRAM_BUCKETS=4))
        assert len(s.histogram.counts) == 4

    def test_non_finite_ignored(self) -> None:
        s = summarize([1.0, np.nan, 3.0, np.inf], buckets=2)
        assert s.count == 2
        assert s.mean == 2.0

    def test_all_non_finite(self) -> None:
        s = summarize([np.nan], buckets=2)
        assert s.count == 0
        assert math.isnan(s.mean)
