"""Markdown report renderer."""

from __future__ import annotations

from query_doctor.models import AnalysisReport, Issue, Severity

_SEVERITY_LABEL = {
    Severity.CRITICAL: "CRITICAL",
    Severity.WARNING: "WARNING",
    Severity.INFO: "INFO",
}


def render(report: AnalysisReport, include_info: bool = True) -> str:
    lines = [
        "# query-doctor report",
        "",
        f"Generated: {report.timestamp.strftime('%Y-%m-%d %H:%M:%S %Z')}",
        "",
    ]

    if not report.performed:
        lines += ["**Analysis not performed:** " + report.abort_reason, ""]
        return "\n".join(lines)

    lines += [
        "## Summary",
        "",
        "| | Count |",
        "|---|---|",
        f"| Operations analyzed | {report.trace_count} |",
        f"| Malformed records dropped | {report.dropped_records} |",
        f"| Critical | {report.critical_count} |",
        f"| Warnings | {report.warning_count} |",
        f"| Info | {report.info_count} |",
        "",
    ]

    issues = [i for i in report.issues if include_info or i.severity != Severity.INFO]
    if issues:
        lines += ["## Issues", ""]
        for n, issue in enumerate(issues, 1):
            lines += _render_issue(n, issue)
    else:
        lines += ["No issues found.", ""]

    failures = report.failures
    skipped = [r for r in report.results if r.skipped]
    if failures or skipped:
        lines += ["## Analyzer notes", ""]
        for result in failures:
            lines.append(f"- `{result.analyzer_name}` failed: {result.error}")
        for result in skipped:
            lines.append(f"- `{result.analyzer_name}` skipped: {result.skip_reason}")
        lines.append("")

    return "\n".join(lines)


def _render_issue(n: int, issue: Issue) -> list[str]:
    lines = [f"### {n}. [{_SEVERITY_LABEL[issue.severity]}] {issue.title}", ""]
    if issue.origin is not None:
        lines += [f"Origin: `{issue.origin}`", ""]
    lines += [issue.narrative, ""]

    if issue.operations:
        lines.append("Operations:")
        lines.append("")
        for op in issue.operations:
            times = f" (x{op.occurrences})" if op.occurrences > 1 else ""
            lines.append(f"- `{' '.join(op.trace.text.split())}`{times}")
        lines.append("")

    if issue.duplicates:
        lines += ["Also reported as: " + "; ".join(issue.duplicates), ""]

    if issue.suggestion is not None:
        lines += [f"**Suggestion:** {issue.suggestion.description}", "", "```", issue.suggestion.code, "```", ""]

    return lines
