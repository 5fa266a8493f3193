"""Shared fixtures for query-doctor tests."""

from __future__ import annotations

from datetime import datetime, timezone

import pytest

from query_doctor.diagnostics import DiagnosticCapability
from query_doctor.errors import CapabilityUnavailable
from query_doctor.models import (
    AnalysisReport,
    AnalyzerResult,
    Finding,
    Frame,
    Issue,
    IssueOperation,
    OperationTrace,
    Severity,
    Suggestion,
)


def make_trace(
    text: str = "SELECT * FROM users WHERE id = 1",
    duration_ms: float = 1.0,
    row_count: int | None = None,
    **kwargs,
) -> OperationTrace:
    """Factory for creating OperationTrace instances with sensible defaults."""
    return OperationTrace(text=text, duration_ms=duration_ms, row_count=row_count, **kwargs)


def make_finding(
    kind: str = "slow_query",
    title: str = "Test finding",
    narrative: str = "Test narrative",
    metrics: dict | None = None,
    operations: tuple[OperationTrace, ...] | None = None,
    **kwargs,
) -> Finding:
    """Factory for creating Finding instances with sensible defaults."""
    return Finding(
        kind=kind,
        title=title,
        narrative=narrative,
        metrics=metrics if metrics is not None else {"durationMs": 150.0, "count": 1},
        related_operations=operations if operations is not None else (make_trace(),),
        **kwargs,
    )


def seq_scan_plan(table: str = "users", rows: int = 5000, filter: str | None = "(email = 'x'::text)") -> dict:
    """Minimal EXPLAIN (FORMAT JSON) root with one sequential scan."""
    node = {
        "Node Type": "Seq Scan",
        "Relation Name": table,
        "Plan Rows": rows,
        "Total Cost": 1234.5,
    }
    if filter:
        node["Filter"] = filter
    return node


class FakeDiagnostics(DiagnosticCapability):
    """In-memory diagnostic capability recording every call."""

    def __init__(self, plans=None, settings=None, tables=None, fail: bool = False):
        self.plans = plans or {}
        self.settings = settings or {}
        self.tables = tables or {}
        self.fail = fail
        self.calls: list[tuple] = []
        self.timeouts: list[int | None] = []

    def explain(self, text, parameters=None, *, timeout_ms=None):
        self.calls.append(("explain", text))
        self.timeouts.append(timeout_ms)
        if self.fail:
            raise CapabilityUnavailable("canceling statement due to statement timeout")
        return self.plans.get(text, {"Node Type": "Index Scan", "Total Cost": 8.3})

    def setting(self, name, *, timeout_ms=None):
        self.calls.append(("setting", name))
        self.timeouts.append(timeout_ms)
        if self.fail:
            raise CapabilityUnavailable("connection refused")
        return self.settings[name]

    def table_rows(self, table, *, timeout_ms=None):
        self.calls.append(("table_rows", table))
        self.timeouts.append(timeout_ms)
        if self.fail:
            raise CapabilityUnavailable("connection refused")
        return self.tables.get(table)


@pytest.fixture
def fake_diagnostics() -> FakeDiagnostics:
    return FakeDiagnostics(
        settings={
            "TimeZone": "UTC",
            "server_encoding": "UTF8",
            "client_encoding": "UTF8",
            "shared_buffers": "128MB",
            "work_mem": "4MB",
        }
    )


@pytest.fixture
def empty_report() -> AnalysisReport:
    """AnalysisReport with no results."""
    return AnalysisReport(timestamp=datetime(2026, 1, 27, 12, 0, 0, tzinfo=timezone.utc))


@pytest.fixture
def sample_report() -> AnalysisReport:
    """AnalysisReport with a mix of severities, failures, and skipped analyzers."""
    report = AnalysisReport(
        timestamp=datetime(2026, 1, 27, 12, 0, 0, tzinfo=timezone.utc),
        trace_count=8,
        dropped_records=1,
    )
    trace = make_trace("SELECT * FROM orders WHERE user_id = 7", duration_ms=2.0, origin=(Frame("app/views.py", 42),))

    report.issues = [
        Issue(
            kind="n_plus_one",
            title="N+1 query on orders",
            narrative="Same query ran 6 times.",
            severity=Severity.CRITICAL,
            operations=(IssueOperation(trace=trace, fingerprint=trace.fingerprint, occurrences=6),),
            suggestion=Suggestion(code="SELECT * FROM orders WHERE user_id IN (...);", description="Batch it."),
            origin=Frame("app/views.py", 42),
            metrics={"count": 6, "totalDurationMs": 12.0},
            category="performance",
            duplicates=("Frequent query: orders",),
        ),
        Issue(
            kind="timezone",
            title="PostgreSQL uses the 'localtime' timezone",
            narrative="Timezone follows the host.",
            severity=Severity.WARNING,
            category="configuration",
        ),
        Issue(
            kind="performance_config",
            title="work_mem too small (3MB)",
            narrative="work_mem is small.",
            severity=Severity.INFO,
            category="configuration",
        ),
    ]

    report.results = [
        AnalyzerResult("n_plus_one", "performance", "Repeated SELECT shapes", finding_count=1),
        AnalyzerResult(
            "slow_query",
            "performance",
            "Slow operations",
            error="RuntimeError: boom",
        ),
        AnalyzerResult(
            "missing_index",
            "performance",
            "Missing indexes",
            skipped=True,
            skip_reason="requires diagnostics",
        ),
    ]
    return report
