"""Detect SQL statements assembled by string interpolation."""

from query_doctor.analyzers.base import AnalysisContext, BaseAnalyzer
from query_doctor.models import Finding, Frame, Severity
from query_doctor.visitors import SqlInjectionPatternVisitor

_PATTERN_LABELS = {
    "fstring": "an f-string",
    "percent_format": "% formatting",
    "str_format": "str.format()",
    "concatenation": "string concatenation",
}


class SqlInjectionAnalyzer(BaseAnalyzer):
    name = "sql_injection"
    category = "security"
    description = "Interpolated strings passed to SQL execution calls"
    requires = ("sources",)

    def analyze(self, context: AnalysisContext) -> list[Finding]:
        findings = []

        for unit in context.sources:
            for function in unit.functions():
                visitor = SqlInjectionPatternVisitor()
                for statement in function.body:
                    visitor.visit(statement)
                if not visitor.has_matches():
                    continue

                patterns = visitor.matches()
                how = ", ".join(_PATTERN_LABELS[p] for p in patterns)
                findings.append(
                    Finding(
                        kind=self.name,
                        title=f"Possible SQL injection in {function.name}()",
                        narrative=(
                            f"{function.name}() builds a SQL statement with {how} and "
                            "executes it. Pass values as bound parameters instead of "
                            "formatting them into the statement text."
                        ),
                        related_origin=Frame(unit.path, function.lineno),
                        details={"function": function.name, "patterns": patterns},
                        severity=Severity.CRITICAL,
                    )
                )

        return findings
