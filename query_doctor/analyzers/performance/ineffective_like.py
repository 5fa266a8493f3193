"""Detect LIKE patterns with a leading wildcard, which cannot use a b-tree index."""

from query_doctor.analyzers.base import AnalysisContext, BaseAnalyzer, excerpt
from query_doctor.models import Finding
from query_doctor.sql_shape import leading_wildcard_likes, referenced_tables


class IneffectiveLikeAnalyzer(BaseAnalyzer):
    name = "ineffective_like"
    category = "performance"
    description = "LIKE/ILIKE patterns starting with a wildcard"

    def analyze(self, context: AnalysisContext) -> list[Finding]:
        findings = []

        for trace in context.traces:
            patterns = leading_wildcard_likes(trace.text, trace.parameters)
            if not patterns:
                continue

            tables = referenced_tables(trace.text)
            findings.append(
                Finding(
                    kind=self.name,
                    title=f"Leading wildcard in LIKE: {excerpt(trace.text, 60)}",
                    narrative=(
                        f"Pattern {patterns[0]!r} starts with '%', so an index on the "
                        "column cannot be used and every row is scanned. Use a "
                        "trigram index (pg_trgm) or full-text search instead."
                    ),
                    metrics={"durationMs": trace.duration_ms, "count": 1},
                    related_operations=(trace,),
                    related_origin=trace.top_frame,
                    details={"patterns": patterns, "table": tables[0] if tables else ""},
                )
            )

        return findings
