"""Tests for query_doctor.models data classes and properties."""

from __future__ import annotations

from datetime import datetime, timezone

import pytest

from conftest import make_trace

from query_doctor.errors import ValidationError
from query_doctor.models import (
    AnalysisReport,
    AnalyzerResult,
    Frame,
    Issue,
    IssueOperation,
    OperationTrace,
    Severity,
)


class TestSeverity:
    def test_values(self):
        assert Severity.CRITICAL.value == "CRITICAL"
        assert Severity.WARNING.value == "WARNING"
        assert Severity.INFO.value == "INFO"

    def test_ordering_most_severe_first(self):
        assert sorted([Severity.INFO, Severity.CRITICAL, Severity.WARNING]) == [
            Severity.CRITICAL,
            Severity.WARNING,
            Severity.INFO,
        ]

    def test_from_string(self):
        assert Severity.from_string("warning") is Severity.WARNING
        with pytest.raises(ValueError):
            Severity.from_string("fatal")


class TestOperationTrace:
    def test_defaults(self):
        trace = OperationTrace(text="SELECT 1")
        assert trace.duration_ms == 0.0
        assert trace.row_count is None
        assert trace.origin == ()
        assert dict(trace.parameters) == {}

    def test_empty_text_rejected(self):
        with pytest.raises(ValidationError):
            OperationTrace(text="   ")

    def test_negative_duration_rejected(self):
        with pytest.raises(ValidationError):
            OperationTrace(text="SELECT 1", duration_ms=-1)

    def test_nan_duration_rejected(self):
        with pytest.raises(ValidationError):
            OperationTrace(text="SELECT 1", duration_ms=float("nan"))

    def test_non_numeric_duration_rejected(self):
        with pytest.raises(ValidationError):
            OperationTrace(text="SELECT 1", duration_ms="fast")

    def test_negative_row_count_rejected(self):
        with pytest.raises(ValidationError):
            OperationTrace(text="SELECT 1", row_count=-3)

    def test_validation_error_is_value_error(self):
        with pytest.raises(ValueError):
            OperationTrace(text="")

    def test_immutable(self):
        trace = make_trace()
        with pytest.raises(AttributeError):
            trace.text = "DELETE FROM users"

    def test_parameters_are_read_only(self):
        params = {0: 5}
        trace = OperationTrace(text="SELECT * FROM t WHERE id = ?", parameters=params)
        params[0] = 6
        assert trace.parameters[0] == 5
        with pytest.raises(TypeError):
            trace.parameters[0] = 7

    def test_shape_helpers(self):
        trace = make_trace("select * from users where id = 3")
        assert trace.statement_type == "SELECT"
        assert trace.is_select
        assert trace.fingerprint == make_trace("SELECT * FROM users WHERE id = 9").fingerprint

    def test_top_frame(self):
        trace = make_trace(origin=(Frame("a.py", 1), Frame("b.py", 2)))
        assert trace.top_frame == Frame("a.py", 1)
        assert make_trace().top_frame is None


class TestFrame:
    def test_str_with_line(self):
        assert str(Frame("app/models.py", 10)) == "app/models.py:10"

    def test_str_without_line(self):
        assert str(Frame("app/models.py")) == "app/models.py"


class TestIssue:
    def test_duplicate_fingerprints_rejected(self):
        a = make_trace("SELECT * FROM users WHERE id = 1")
        b = make_trace("SELECT * FROM users WHERE id = 2")
        with pytest.raises(ValueError):
            Issue(
                kind="n_plus_one",
                title="t",
                narrative="n",
                severity=Severity.WARNING,
                operations=(
                    IssueOperation(a, a.fingerprint),
                    IssueOperation(b, b.fingerprint),
                ),
            )

    def test_occurrences_and_representative(self):
        a = make_trace("SELECT * FROM users WHERE id = 1")
        issue = Issue(
            kind="n_plus_one",
            title="t",
            narrative="n",
            severity=Severity.WARNING,
            operations=(IssueOperation(a, a.fingerprint, occurrences=6),),
        )
        assert issue.occurrences == 6
        assert issue.representative_fingerprint == a.fingerprint

    def test_no_operations(self):
        issue = Issue(kind="timezone", title="t", narrative="n", severity=Severity.CRITICAL)
        assert issue.representative_fingerprint is None
        assert issue.occurrences == 0


class TestAnalysisReport:
    def test_counts(self, sample_report):
        assert sample_report.critical_count == 1
        assert sample_report.warning_count == 1
        assert sample_report.info_count == 1

    def test_failures_and_skips(self, sample_report):
        assert [r.analyzer_name for r in sample_report.failures] == ["slow_query"]
        assert sample_report.analyzers_total == 2
        assert sample_report.analyzers_skipped == 1

    def test_empty_report(self, empty_report):
        assert empty_report.performed is True
        assert empty_report.issues == []
        assert empty_report.critical_count == 0

    def test_analyzer_result_defaults(self):
        result = AnalyzerResult("x", "performance", "desc")
        assert result.error is None
        assert result.skipped is False
        assert result.finding_count == 0

    def test_timestamp_kept(self):
        ts = datetime(2026, 1, 1, tzinfo=timezone.utc)
        assert AnalysisReport(timestamp=ts).timestamp == ts
