"""Check the server timezone against the timezone the application expects."""

from query_doctor.analyzers.base import AnalysisContext, BaseAnalyzer
from query_doctor.models import Finding, Severity

UTC_ALIASES = frozenset(
    {"utc", "etc/utc", "gmt", "etc/gmt", "gmt0", "etc/gmt0", "uct", "etc/uct", "universal", "etc/universal", "zulu", "etc/zulu", "z"}
)


def same_timezone(a: str, b: str) -> bool:
    a, b = a.strip().lower(), b.strip().lower()
    return a == b or (a in UTC_ALIASES and b in UTC_ALIASES)


class TimezoneAnalyzer(BaseAnalyzer):
    name = "timezone"
    category = "configuration"
    description = "Server timezone matches the application timezone"
    requires = ("diagnostics",)

    def analyze(self, context: AnalysisContext) -> list[Finding]:
        """
        Compare the server's ``TimeZone`` setting with ``expected_timezone``.

        Returns:
            list[Finding]:
              - CRITICAL when the server timezone differs from the expected one;
              - WARNING when the server uses ``localtime``, which silently
                follows the host operating system.
        """
        expected = self.option("expected_timezone", "UTC")
        server_tz = context.diagnostics.setting("TimeZone", timeout_ms=context.timeout_ms)

        if server_tz.strip().lower() == "localtime":
            return [
                Finding(
                    kind=self.name,
                    title="PostgreSQL uses the 'localtime' timezone",
                    narrative=(
                        "The server timezone follows the operating system of the "
                        "database host. Timestamps change meaning if the host is "
                        "reconfigured or the database is moved."
                    ),
                    details={"current": server_tz, "expected": expected},
                    severity=Severity.WARNING,
                )
            ]

        if not same_timezone(server_tz, expected):
            return [
                Finding(
                    kind=self.name,
                    title=f"Timezone mismatch: server '{server_tz}', application '{expected}'",
                    narrative=(
                        f"PostgreSQL converts timestamps using '{server_tz}' while the "
                        f"application works in '{expected}'. Values written without an "
                        "explicit offset are shifted when read back."
                    ),
                    details={"current": server_tz, "expected": expected},
                    severity=Severity.CRITICAL,
                )
            ]

        return []
