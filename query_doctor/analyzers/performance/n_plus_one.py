"""Detect the same SELECT shape executed many times in one unit of work."""

from query_doctor.analyzers.base import AnalysisContext, BaseAnalyzer, excerpt
from query_doctor.models import Finding
from query_doctor.sql_shape import referenced_tables


class NPlusOneAnalyzer(BaseAnalyzer):
    name = "n_plus_one"
    category = "performance"
    description = "Repeated SELECT shapes, typically lazy loading inside a loop"

    def analyze(self, context: AnalysisContext) -> list[Finding]:
        detect_count = self.threshold("detect_count")
        findings = []

        for traces in context.groups.values():
            first = traces[0]
            if not first.is_select or len(traces) <= detect_count:
                continue

            count = len(traces)
            total = sum(t.duration_ms for t in traces)
            tables = referenced_tables(first.text)
            findings.append(
                Finding(
                    kind=self.name,
                    title=f"N+1 query: {count} executions of {excerpt(first.text, 60)}",
                    narrative=(
                        f"The same query shape ran {count} times in one unit of work, "
                        f"taking {total:.1f}ms in total. This usually means related "
                        "records are loaded one at a time inside a loop. Load them "
                        "up front with a join or a single IN (...) query instead."
                    ),
                    metrics={"count": count, "totalDurationMs": total},
                    related_operations=tuple(traces),
                    related_origin=first.top_frame,
                    details={"table": tables[0] if tables else ""},
                )
            )

        return findings
