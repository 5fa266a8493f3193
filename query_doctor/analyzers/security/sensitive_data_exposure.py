"""Detect serialization methods that expose sensitive fields."""

from query_doctor.analyzers.base import AnalysisContext, BaseAnalyzer
from query_doctor.models import Finding, Frame, Severity
from query_doctor.visitors import SensitiveFieldExposureVisitor

SERIALIZATION_METHODS = frozenset(
    {"__str__", "__repr__", "to_dict", "as_dict", "to_json", "__json__", "serialize", "to_array"}
)


class SensitiveDataExposureAnalyzer(BaseAnalyzer):
    name = "sensitive_data_exposure"
    category = "security"
    description = "Serialization methods returning passwords, tokens or other secrets"
    requires = ("sources",)

    def analyze(self, context: AnalysisContext) -> list[Finding]:
        findings = []

        for unit in context.sources:
            for cls, method in unit.methods():
                if method.name not in SERIALIZATION_METHODS:
                    continue

                visitor = SensitiveFieldExposureVisitor(context.sensitive_fields)
                for statement in method.body:
                    visitor.visit(statement)
                if not visitor.has_matches():
                    continue

                fields = visitor.matches()
                findings.append(
                    Finding(
                        kind=self.name,
                        title=f"Sensitive data exposed by {cls.name}.{method.name}()",
                        narrative=(
                            f"{cls.name}.{method.name}() includes {', '.join(fields)}. "
                            "Serialized objects end up in logs, API responses and "
                            "caches; leave secrets out or mask them."
                        ),
                        related_origin=Frame(unit.path, method.lineno),
                        details={"class": cls.name, "method": method.name, "fields": fields},
                        severity=Severity.CRITICAL,
                    )
                )

        return findings
