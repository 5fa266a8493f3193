"""Tests for query_doctor.registry: analyzer discovery and filtering."""

from __future__ import annotations

from query_doctor.analyzers.base import BaseAnalyzer
from query_doctor.config import AnalyzerSettings, Config
from query_doctor.registry import discover_analyzers

EXPECTED = {
    "charset",
    "performance_config",
    "timezone",
    "find_all",
    "frequent_query",
    "ineffective_like",
    "missing_index",
    "n_plus_one",
    "order_by_without_limit",
    "slow_query",
    "sensitive_data_exposure",
    "sql_injection",
}


class OutsideAnalyzer(BaseAnalyzer):
    name = "outside"
    category = "performance"

    def analyze(self, context):
        return []


class TestDiscoverAnalyzers:
    def test_returns_analyzers(self):
        assert len(discover_analyzers()) > 0

    def test_all_analyzers_have_required_attrs(self):
        for analyzer in discover_analyzers():
            assert analyzer.name, f"Analyzer {analyzer!r} has empty name"
            assert analyzer.category in ("performance", "configuration", "security"), (
                f"Analyzer {analyzer.name} has invalid category: {analyzer.category}"
            )
            assert analyzer.description, f"Analyzer {analyzer.name} has empty description"

    def test_no_duplicate_names(self):
        names = [a.name for a in discover_analyzers()]
        assert len(names) == len(set(names)), (
            f"Duplicate names: {[n for n in names if names.count(n) > 1]}"
        )

    def test_sorted_by_category_then_name(self):
        keys = [(a.category, a.name) for a in discover_analyzers()]
        assert keys == sorted(keys)

    def test_builtin_set(self):
        assert {a.name for a in discover_analyzers()} == EXPECTED

    def test_subclasses_outside_package_ignored(self):
        assert "outside" not in {a.name for a in discover_analyzers()}

    def test_requirements(self):
        requires = {a.name: a.requires for a in discover_analyzers()}
        assert requires["missing_index"] == ("diagnostics",)
        assert requires["timezone"] == ("diagnostics",)
        assert requires["sql_injection"] == ("sources",)
        assert requires["n_plus_one"] == ()


class TestCategoryFiltering:
    def test_single_category(self):
        analyzers = discover_analyzers(categories=["security"])
        assert {a.name for a in analyzers} == {"sensitive_data_exposure", "sql_injection"}

    def test_multiple_categories(self):
        analyzers = discover_analyzers(categories=["security", "configuration"])
        assert all(a.category in ("security", "configuration") for a in analyzers)
        assert len(analyzers) == 5

    def test_unknown_category(self):
        assert discover_analyzers(categories=["nonexistent"]) == []


class TestConfigFiltering:
    def test_disabled_left_out(self):
        config = Config(analyzers={"slow_query": AnalyzerSettings(enabled=False)})
        names = {a.name for a in discover_analyzers(config=config)}
        assert names == EXPECTED - {"slow_query"}

    def test_only(self):
        analyzers = discover_analyzers(config=Config(only={"find_all", "n_plus_one"}))
        assert [a.name for a in analyzers] == ["find_all", "n_plus_one"]

    def test_settings_passed_to_instances(self):
        config = Config(analyzers={"slow_query": AnalyzerSettings(thresholds={"detect_ms": 300})})
        slow = next(a for a in discover_analyzers(config=config) if a.name == "slow_query")
        assert slow.threshold("detect_ms") == 300
