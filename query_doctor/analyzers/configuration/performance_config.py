"""Check memory settings that are too small for an application workload."""

import re

from query_doctor.analyzers.base import AnalysisContext, BaseAnalyzer
from query_doctor.models import Finding, Severity

_UNITS = {"b": 1, "kb": 1024, "mb": 1024**2, "gb": 1024**3, "tb": 1024**4}
_MEMORY = re.compile(r"^\s*(\d+(?:\.\d+)?)\s*([a-z]*)\s*$", re.IGNORECASE)


def parse_memory(value: str) -> int | None:
    """Bytes in a PostgreSQL memory setting such as ``128MB`` or ``8kB``."""
    match = _MEMORY.match(value)
    if not match:
        return None
    unit = match.group(2).lower() or "b"
    if unit not in _UNITS:
        return None
    return int(float(match.group(1)) * _UNITS[unit])


class PerformanceConfigAnalyzer(BaseAnalyzer):
    name = "performance_config"
    category = "configuration"
    description = "shared_buffers and work_mem sized for the workload"
    requires = ("diagnostics",)

    def analyze(self, context: AnalysisContext) -> list[Finding]:
        findings = []
        checks = (
            ("shared_buffers", self.threshold("min_shared_buffers_mb"), "cache for table and index pages"),
            ("work_mem", self.threshold("min_work_mem_mb"), "memory per sort or hash operation"),
        )

        for setting, minimum_mb, role in checks:
            raw = context.diagnostics.setting(setting, timeout_ms=context.timeout_ms)
            size = parse_memory(raw)
            if size is None or size >= minimum_mb * 1024**2:
                continue
            # Below half the recommended size is a warning, otherwise informational.
            severity = Severity.WARNING if size < minimum_mb * 1024**2 / 2 else Severity.INFO
            findings.append(
                Finding(
                    kind=self.name,
                    title=f"{setting} too small ({raw})",
                    narrative=(
                        f"{setting} is the {role}. At {raw} it is below the "
                        f"recommended minimum of {minimum_mb:g}MB, so queries spill "
                        "to disk more often than necessary."
                    ),
                    details={"setting": setting, "current": raw, "recommended_mb": minimum_mb},
                    severity=severity,
                )
            )

        return findings
