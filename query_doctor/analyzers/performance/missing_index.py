"""Detect filtered sequential scans on large tables using live execution plans."""

import logging

from query_doctor.analyzers.base import AnalysisContext, BaseAnalyzer, excerpt
from query_doctor.models import Finding, OperationTrace
from query_doctor.plan import SeqScan, summarize_plan
from query_doctor.sql_shape import has_where

logger = logging.getLogger(__name__)


class MissingIndexAnalyzer(BaseAnalyzer):
    name = "missing_index"
    category = "performance"
    description = "Slow or repeated queries whose plan scans a large table sequentially"
    requires = ("diagnostics",)

    def analyze(self, context: AnalysisContext) -> list[Finding]:
        """
        Explain candidate queries and report filtered sequential scans.

        Candidates are SELECTs with a WHERE clause that are either slow
        (slowest execution >= ``slow_ms``) or repeated (>= ``repeat_count``
        executions). Each fingerprint is explained once, using its slowest
        execution and that execution's bound parameters. A plan qualifies
        when it contains a ``Seq Scan`` with a filter over a table of at
        least ``detect_rows`` rows. Table size comes from the planner's
        statistics, cached across passes; the node's own row estimate is
        used when statistics are missing.

        A failing diagnostic call (unavailable connection, statement timeout)
        propagates: the pipeline records it against this analyzer.
        """
        slow_ms = self.threshold("slow_ms")
        repeat_count = self.threshold("repeat_count")
        detect_rows = self.threshold("detect_rows")
        findings = []

        for traces in context.groups.values():
            slowest = max(traces, key=lambda t: t.duration_ms)
            if not slowest.is_select or not has_where(slowest.text):
                continue
            if slowest.duration_ms < slow_ms and len(traces) < repeat_count:
                continue

            logger.debug("Explaining %s", excerpt(slowest.text))
            plan = context.diagnostics.explain(slowest.text, slowest.parameters, timeout_ms=context.timeout_ms)
            summary = summarize_plan(plan)

            worst: tuple[SeqScan, int] | None = None
            for scan in summary.filtered_seq_scans:
                rows = self._table_rows(context, scan)
                if rows >= detect_rows and (worst is None or rows > worst[1]):
                    worst = (scan, rows)
            if worst is None:
                continue

            scan, rows = worst
            findings.append(self._finding(traces, slowest, scan, rows, summary.total_cost, len(summary.filtered_seq_scans)))

        return findings

    def _table_rows(self, context: AnalysisContext, scan: SeqScan) -> int:
        estimate = context.cache.get(
            ("table_rows", scan.table),
            lambda: context.diagnostics.table_rows(scan.table, timeout_ms=context.timeout_ms),
        )
        return estimate if estimate is not None else scan.rows

    def _finding(
        self,
        traces: list[OperationTrace],
        slowest: OperationTrace,
        scan: SeqScan,
        rows: int,
        total_cost: float,
        seq_scans: int,
    ) -> Finding:
        return Finding(
            kind=self.name,
            title=f"Missing index on {scan.table}",
            narrative=(
                f"{excerpt(slowest.text)} scans all {rows} rows of {scan.table} "
                f"sequentially to apply the filter {scan.filter}. An index on the "
                "filtered columns lets the database read only the matching rows."
            ),
            metrics={
                "rowsScanned": rows,
                "durationMs": slowest.duration_ms,
                "totalCost": total_cost,
                "seqScans": seq_scans,
            },
            related_operations=tuple(traces),
            related_origin=slowest.top_frame,
            details={"table": scan.table, "filter": scan.filter},
        )
