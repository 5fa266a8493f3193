"""Detect individual operations slower than a duration threshold."""

from query_doctor.analyzers.base import AnalysisContext, BaseAnalyzer, excerpt
from query_doctor.models import Finding


class SlowQueryAnalyzer(BaseAnalyzer):
    name = "slow_query"
    category = "performance"
    description = "Single operations exceeding the slow-query duration threshold"

    def analyze(self, context: AnalysisContext) -> list[Finding]:
        detect_ms = self.threshold("detect_ms")
        findings = []

        # One finding per operation; the assembler merges them by fingerprint.
        for trace in context.traces:
            if trace.duration_ms <= detect_ms:
                continue
            findings.append(
                Finding(
                    kind=self.name,
                    title=f"Slow query: {excerpt(trace.text, 60)}",
                    narrative=(
                        f"Query took {trace.duration_ms:.1f}ms, above the "
                        f"{detect_ms:g}ms threshold. Check its execution plan for "
                        "sequential scans, missing indexes or large sorts."
                    ),
                    metrics={"durationMs": trace.duration_ms, "count": 1},
                    related_operations=(trace,),
                    related_origin=trace.top_frame,
                )
            )

        return findings
