"""Detect SELECTs that fetch a whole table with no filter and no limit."""

from query_doctor.analyzers.base import AnalysisContext, BaseAnalyzer, excerpt
from query_doctor.models import Finding
from query_doctor.sql_shape import has_limit, has_where, is_aggregate_only, referenced_tables


class FindAllAnalyzer(BaseAnalyzer):
    name = "find_all"
    category = "performance"
    description = "Unbounded SELECTs loading every row of a table"

    def analyze(self, context: AnalysisContext) -> list[Finding]:
        detect_rows = self.threshold("detect_rows")
        assumed_rows = self.threshold("assumed_rows")
        findings = []

        for trace in context.traces:
            if not trace.is_select or has_where(trace.text) or has_limit(trace.text):
                continue
            if is_aggregate_only(trace.text):
                continue
            tables = referenced_tables(trace.text)
            if not tables:
                continue

            # Hosts that do not capture row counts still get a finding.
            rows = trace.row_count if trace.row_count is not None else assumed_rows
            if rows <= detect_rows:
                continue

            findings.append(
                Finding(
                    kind=self.name,
                    title=f"Unbounded result set from {tables[0]}",
                    narrative=(
                        f"{excerpt(trace.text)} has no WHERE clause and no LIMIT and "
                        f"returned {rows:g} rows. Loading a whole table into memory "
                        "grows with the data; filter or paginate the query."
                    ),
                    metrics={"rows": rows, "durationMs": trace.duration_ms},
                    related_operations=(trace,),
                    related_origin=trace.top_frame,
                    details={"table": tables[0], "row_count_known": trace.row_count is not None},
                )
            )

        return findings
