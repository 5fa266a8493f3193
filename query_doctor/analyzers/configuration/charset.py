"""Check server and client encodings."""

from query_doctor.analyzers.base import AnalysisContext, BaseAnalyzer
from query_doctor.models import Finding, Severity

PROBLEMATIC_ENCODINGS = ("SQL_ASCII", "LATIN1", "WIN1252")


class CharsetAnalyzer(BaseAnalyzer):
    name = "charset"
    category = "configuration"
    description = "Database encoding is UTF-8 capable and matches the client"
    requires = ("diagnostics",)

    def analyze(self, context: AnalysisContext) -> list[Finding]:
        server = context.diagnostics.setting("server_encoding", timeout_ms=context.timeout_ms).upper()
        client = context.diagnostics.setting("client_encoding", timeout_ms=context.timeout_ms).upper()
        findings = []

        if server in PROBLEMATIC_ENCODINGS:
            if server == "SQL_ASCII":
                detail = (
                    "SQL_ASCII accepts any byte sequence without validation, so "
                    "mixed encodings end up stored side by side and cannot be "
                    "converted reliably later."
                )
            else:
                detail = f"{server} cannot store characters outside Western European scripts."
            findings.append(
                Finding(
                    kind=self.name,
                    title=f"Database using problematic encoding: {server}",
                    narrative=detail + " Recreate the database with UTF8 and reload the data.",
                    details={"encoding": server},
                    severity=Severity.CRITICAL if server == "SQL_ASCII" else Severity.WARNING,
                )
            )

        if server != client:
            findings.append(
                Finding(
                    kind=self.name,
                    title="Encoding mismatch between server and client",
                    narrative=(
                        f"The server stores text as {server} but the client session "
                        f"uses {client}. Every value is converted on the way in and "
                        "out, and characters without a mapping raise errors."
                    ),
                    details={"encoding": server, "client_encoding": client},
                    severity=Severity.WARNING,
                )
            )

        return findings
