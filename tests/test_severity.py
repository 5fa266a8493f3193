"""Tests for severity tiers and suppression."""

from __future__ import annotations

import pytest

from query_doctor.config import AnalyzerSettings, Config
from query_doctor.models import Severity
from query_doctor.severity import POLICIES, SeverityCalculator


@pytest.fixture
def calc() -> SeverityCalculator:
    return SeverityCalculator()


class TestNPlusOne:
    def test_suppressed_below_three(self, calc):
        assert calc.should_suppress("n_plus_one", {"count": 2})
        assert not calc.should_suppress("n_plus_one", {"count": 3})

    def test_warning_lower_bound_inclusive(self, calc):
        assert calc.calculate("n_plus_one", {"count": 3}) == Severity.WARNING
        assert calc.calculate("n_plus_one", {"count": 6, "totalDurationMs": 3.0}) == Severity.WARNING

    def test_critical_by_count(self, calc):
        assert calc.calculate("n_plus_one", {"count": 99}) == Severity.WARNING
        assert calc.calculate("n_plus_one", {"count": 100}) == Severity.CRITICAL

    def test_critical_by_count_and_duration(self, calc):
        assert calc.calculate("n_plus_one", {"count": 50, "totalDurationMs": 100}) == Severity.CRITICAL
        assert calc.calculate("n_plus_one", {"count": 50, "totalDurationMs": 99.9}) == Severity.WARNING
        assert calc.calculate("n_plus_one", {"count": 49, "totalDurationMs": 500}) == Severity.WARNING


class TestSlowQuery:
    def test_suppressed_below_ten(self, calc):
        assert calc.should_suppress("slow_query", {"durationMs": 9})
        assert not calc.should_suppress("slow_query", {"durationMs": 10})

    def test_tiers(self, calc):
        assert calc.calculate("slow_query", {"durationMs": 10}) == Severity.WARNING
        assert calc.calculate("slow_query", {"durationMs": 100}) == Severity.WARNING
        assert calc.calculate("slow_query", {"durationMs": 100.1}) == Severity.CRITICAL
        assert calc.calculate("slow_query", {"durationMs": 150}) == Severity.CRITICAL


class TestUnboundedResult:
    def test_suppressed_below_fifty_rows(self, calc):
        assert calc.should_suppress("find_all", {"rows": 49})
        assert not calc.should_suppress("find_all", {"rows": 50})

    def test_tiers(self, calc):
        assert calc.calculate("find_all", {"rows": 50}) == Severity.WARNING
        assert calc.calculate("find_all", {"rows": 10000}) == Severity.WARNING
        assert calc.calculate("find_all", {"rows": 10001}) == Severity.CRITICAL

    def test_order_by_warns_on_duration(self, calc):
        assert calc.calculate("order_by_without_limit", {"rows": 60, "durationMs": 0}) == Severity.INFO
        assert calc.calculate("order_by_without_limit", {"rows": 60, "durationMs": 50}) == Severity.WARNING


class TestOtherKinds:
    def test_frequent_query(self, calc):
        assert calc.should_suppress("frequent_query", {"count": 9})
        assert calc.calculate("frequent_query", {"count": 10, "totalDurationMs": 1}) == Severity.INFO
        assert calc.calculate("frequent_query", {"count": 20}) == Severity.WARNING
        assert calc.calculate("frequent_query", {"count": 10, "totalDurationMs": 100}) == Severity.CRITICAL

    def test_missing_index(self, calc):
        assert calc.should_suppress("missing_index", {"rowsScanned": 499})
        assert calc.calculate("missing_index", {"rowsScanned": 600}) == Severity.INFO
        assert calc.calculate("missing_index", {"rowsScanned": 1000}) == Severity.WARNING
        assert calc.calculate("missing_index", {"rowsScanned": 100000}) == Severity.CRITICAL
        assert calc.calculate("missing_index", {"rowsScanned": 600, "durationMs": 100}) == Severity.CRITICAL

    def test_ineffective_like_never_suppressed(self, calc):
        assert not calc.should_suppress("ineffective_like", {})
        assert calc.calculate("ineffective_like", {"durationMs": 1}) == Severity.WARNING
        assert calc.calculate("ineffective_like", {"durationMs": 100}) == Severity.CRITICAL

    def test_kind_without_policy_uses_fallback(self, calc):
        assert not calc.should_suppress("timezone", {})
        assert calc.calculate("timezone", {}, fallback=Severity.CRITICAL) == Severity.CRITICAL
        assert calc.calculate("timezone", {}) == Severity.WARNING

    def test_missing_metrics_count_as_zero(self, calc):
        assert calc.should_suppress("n_plus_one", {})
        assert calc.calculate("slow_query", {}) == Severity.INFO


class TestConfiguredThresholds:
    def test_override_applies(self):
        config = Config(analyzers={"slow_query": AnalyzerSettings(thresholds={"critical_ms": 500})})
        calc = SeverityCalculator(config)
        assert calc.calculate("slow_query", {"durationMs": 150}) == Severity.WARNING
        assert calc.calculate("slow_query", {"durationMs": 501}) == Severity.CRITICAL

    def test_unrelated_thresholds_keep_defaults(self):
        config = Config(analyzers={"slow_query": AnalyzerSettings(thresholds={"critical_ms": 500})})
        calc = SeverityCalculator(config)
        assert calc.should_suppress("slow_query", {"durationMs": 9})


_DRIVERS = {
    "n_plus_one": ("count", "totalDurationMs"),
    "frequent_query": ("count", "totalDurationMs"),
    "slow_query": ("durationMs",),
    "find_all": ("rows", "durationMs"),
    "order_by_without_limit": ("rows", "durationMs"),
    "missing_index": ("rowsScanned", "durationMs"),
    "ineffective_like": ("durationMs",),
}
_STEPS = [0, 1, 2, 3, 9, 10, 19, 20, 49, 50, 99, 100, 101, 500, 999, 1000, 10000, 10001, 99999, 100000, 200000]
_BASES = [{}, {"count": 50, "totalDurationMs": 5}, {"rows": 60, "durationMs": 20, "rowsScanned": 700}]


class TestMonotonicity:
    def test_every_kind_with_a_policy_is_covered(self):
        assert set(_DRIVERS) == set(POLICIES)

    @pytest.mark.parametrize("kind", sorted(_DRIVERS))
    def test_raising_a_metric_never_lowers_severity(self, calc, kind):
        for base in _BASES:
            for metric in _DRIVERS[kind]:
                previous = None
                for value in _STEPS:
                    rank = calc.calculate(kind, {**base, metric: value}).rank
                    if previous is not None:
                        # lower rank = more severe
                        assert rank <= previous, (kind, metric, value)
                    previous = rank
