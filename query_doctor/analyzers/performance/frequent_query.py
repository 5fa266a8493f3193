"""Detect statements of any kind executed very often in one unit of work."""

from query_doctor.analyzers.base import AnalysisContext, BaseAnalyzer, excerpt
from query_doctor.models import Finding


class FrequentQueryAnalyzer(BaseAnalyzer):
    name = "frequent_query"
    category = "performance"
    description = "Statements executed often enough to be worth batching or caching"

    def analyze(self, context: AnalysisContext) -> list[Finding]:
        detect_count = self.threshold("detect_count")
        findings = []

        for traces in context.groups.values():
            if len(traces) < detect_count:
                continue

            first = traces[0]
            count = len(traces)
            total = sum(t.duration_ms for t in traces)
            findings.append(
                Finding(
                    kind=self.name,
                    title=f"Frequent query: {excerpt(first.text, 60)} ({count} times)",
                    narrative=(
                        f"{first.statement_type} statement executed {count} times "
                        f"({total:.1f}ms total). Consider batching the writes, "
                        "caching the result, or restructuring the loop that issues it."
                    ),
                    metrics={"count": count, "totalDurationMs": total},
                    related_operations=tuple(traces),
                    related_origin=first.top_frame,
                    details={"statement_type": first.statement_type},
                )
            )

        return findings
