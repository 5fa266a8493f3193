"""Detect sorted SELECTs that return many rows without a limit."""

from query_doctor.analyzers.base import AnalysisContext, BaseAnalyzer, excerpt
from query_doctor.models import Finding
from query_doctor.sql_shape import has_limit, has_order_by, referenced_tables


class OrderByWithoutLimitAnalyzer(BaseAnalyzer):
    name = "order_by_without_limit"
    category = "performance"
    description = "ORDER BY over large result sets with no LIMIT"

    def analyze(self, context: AnalysisContext) -> list[Finding]:
        detect_rows = self.threshold("detect_rows")
        findings = []

        for trace in context.traces:
            if trace.row_count is None or trace.row_count < detect_rows:
                continue
            if not trace.is_select or not has_order_by(trace.text) or has_limit(trace.text):
                continue

            tables = referenced_tables(trace.text)
            findings.append(
                Finding(
                    kind=self.name,
                    title=f"ORDER BY without LIMIT: {excerpt(trace.text, 60)}",
                    narrative=(
                        f"The query sorts {trace.row_count} rows and returns all of "
                        "them. The database must sort the full result before sending "
                        "the first row; add a LIMIT or paginate."
                    ),
                    metrics={"rows": trace.row_count, "durationMs": trace.duration_ms},
                    related_operations=(trace,),
                    related_origin=trace.top_frame,
                    details={"table": tables[0] if tables else ""},
                )
            )

        return findings
