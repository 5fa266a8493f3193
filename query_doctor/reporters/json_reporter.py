"""JSON report renderer."""

from __future__ import annotations

import json
from typing import Any

from query_doctor import __version__
from query_doctor.models import AnalysisReport, Issue, Severity


def issue_to_dict(issue: Issue) -> dict[str, Any]:
    """Plain structural form of one issue."""
    data: dict[str, Any] = {
        "kind": issue.kind,
        "category": issue.category,
        "title": issue.title,
        "narrative": issue.narrative,
        "severity": issue.severity.value,
        "metrics": dict(issue.metrics),
        "operations": [
            {
                "text": op.trace.text,
                "fingerprint": op.fingerprint,
                "occurrences": op.occurrences,
                "durationMs": op.trace.duration_ms,
                "rowCount": op.trace.row_count,
                "parameters": {str(k): v for k, v in op.trace.parameters.items()},
            }
            for op in issue.operations
        ],
    }
    if issue.suggestion is not None:
        data["suggestion"] = {"code": issue.suggestion.code, "description": issue.suggestion.description}
    if issue.origin is not None:
        data["origin"] = {"file": issue.origin.file, "line": issue.origin.line}
    if issue.duplicates:
        data["duplicates"] = list(issue.duplicates)
    return data


def render(report: AnalysisReport, include_info: bool = True) -> str:
    """Render an AnalysisReport as a JSON string."""
    issues = [i for i in report.issues if include_info or i.severity != Severity.INFO]
    data = {
        "meta": {
            "tool": "query-doctor",
            "version": __version__,
            "timestamp": report.timestamp.isoformat(),
            "performed": report.performed,
        },
        "summary": {
            "operations": report.trace_count,
            "dropped_records": report.dropped_records,
            "analyzers_run": report.analyzers_total,
            "analyzers_skipped": report.analyzers_skipped,
            "analyzers_failed": len(report.failures),
            "critical": report.critical_count,
            "warnings": report.warning_count,
            "info": report.info_count,
        },
        "issues": [issue_to_dict(issue) for issue in issues],
        "analyzers": [],
    }
    if not report.performed:
        data["meta"]["abort_reason"] = report.abort_reason

    for result in report.results:
        entry = {
            "name": result.analyzer_name,
            "category": result.category,
            "description": result.description,
            "findings": result.finding_count,
            "skipped": result.skipped,
            "error": result.error,
        }
        if result.skipped:
            entry["skip_reason"] = result.skip_reason
        data["analyzers"].append(entry)

    return json.dumps(data, indent=2, default=str)
