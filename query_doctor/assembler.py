"""Turn raw findings into the ranked, deduplicated issue list."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass, field, replace
from typing import Any

from query_doctor.models import Finding, Frame, Issue, IssueOperation, OperationTrace, Severity, Suggestion
from query_doctor.severity import SeverityCalculator
from query_doctor.sql_shape import referenced_tables
from query_doctor.suggestions import SuggestionProvider

logger = logging.getLogger(__name__)

# Metrics summed when findings merge; every other metric keeps the maximum.
ADDITIVE_METRICS = frozenset({"count", "totalDurationMs"})

# kind -> kinds it hides when both describe the same representative operation
SUPERSEDES: dict[str, frozenset[str]] = {
    "n_plus_one": frozenset({"frequent_query"}),
}


def deduplicate_operations(operations: Iterable[OperationTrace]) -> tuple[IssueOperation, ...]:
    """Keep the first operation per fingerprint, counting all that share it."""
    kept: dict[str, OperationTrace] = {}
    counts: dict[str, int] = {}
    for trace in operations:
        fp = trace.fingerprint
        if fp not in kept:
            kept[fp] = trace
        counts[fp] = counts.get(fp, 0) + 1
    return tuple(IssueOperation(trace=t, fingerprint=fp, occurrences=counts[fp]) for fp, t in kept.items())


def merge_metrics(target: dict[str, float], metrics: dict[str, float]) -> None:
    for key, value in metrics.items():
        if key not in target:
            target[key] = value
        elif key in ADDITIVE_METRICS:
            target[key] += value
        else:
            target[key] = max(target[key], value)


@dataclass
class _Group:
    first: Finding
    metrics: dict[str, float] = field(default_factory=dict)
    operations: list[OperationTrace] = field(default_factory=list)
    details: dict[str, Any] = field(default_factory=dict)
    origin: Frame | None = None
    severity: Severity | None = None

    def add(self, finding: Finding) -> None:
        merge_metrics(self.metrics, finding.metrics)
        self.operations.extend(finding.related_operations)
        for key, value in finding.details.items():
            self.details.setdefault(key, value)
        if self.origin is None:
            self.origin = finding.related_origin
        if finding.severity is not None and (self.severity is None or finding.severity < self.severity):
            self.severity = finding.severity


def merge_key(finding: Finding) -> tuple:
    if finding.related_operations:
        return (finding.kind, finding.related_operations[0].fingerprint)
    return (finding.kind, finding.title, finding.related_origin)


class IssueAssembler:
    """Suppress, merge, score and rank findings.

    Args:
        calculator: Severity policy with the configured thresholds.
        suggestions: Optional remediation provider; failures there never
            affect the issue list.
        categories: kind -> category, copied onto each issue.
    """

    def __init__(
        self,
        calculator: SeverityCalculator | None = None,
        suggestions: SuggestionProvider | None = None,
        categories: dict[str, str] | None = None,
    ):
        self.calculator = calculator or SeverityCalculator()
        self.suggestions = suggestions
        self.categories = categories or {}

    def assemble(self, findings: Iterable[Finding]) -> list[Issue]:
        groups: dict[tuple, _Group] = {}
        for finding in findings:
            if self.calculator.should_suppress(finding.kind, finding.metrics):
                logger.debug("Suppressed %s finding: %s", finding.kind, finding.title)
                continue
            key = merge_key(finding)
            if key not in groups:
                groups[key] = _Group(first=finding)
            groups[key].add(finding)

        issues = [self._build(group) for group in groups.values()]
        issues = self._drop_superseded(issues)

        # sorted() is stable, so ties keep first-seen order
        return sorted(issues, key=lambda issue: issue.severity.rank)

    def _build(self, group: _Group) -> Issue:
        finding = group.first
        operations = deduplicate_operations(group.operations)
        severity = self.calculator.calculate(finding.kind, group.metrics, fallback=group.severity)
        return Issue(
            kind=finding.kind,
            title=finding.title,
            narrative=finding.narrative,
            severity=severity,
            operations=operations,
            suggestion=self._suggest(finding.kind, group, operations),
            origin=group.origin,
            metrics=group.metrics,
            category=self.categories.get(finding.kind, ""),
        )

    def _suggest(self, kind: str, group: _Group, operations: tuple[IssueOperation, ...]) -> Suggestion | None:
        if self.suggestions is None:
            return None

        parameters: dict[str, Any] = {**group.details, **group.metrics}
        if operations:
            representative = operations[0].trace
            parameters["sql"] = representative.text
            if not parameters.get("table"):
                tables = referenced_tables(representative.text)
                parameters["table"] = tables[0] if tables else ""

        try:
            return self.suggestions.suggest(kind, parameters)
        except Exception as exc:
            logger.warning("Suggestion provider failed for %s: %s: %s", kind, type(exc).__name__, exc)
            return None

    def _drop_superseded(self, issues: list[Issue]) -> list[Issue]:
        by_key = {(i.kind, i.representative_fingerprint): i for i in issues if i.representative_fingerprint}
        hidden: dict[int, list[str]] = {}
        dropped = set()

        for index, issue in enumerate(issues):
            for hidden_kind in SUPERSEDES.get(issue.kind, ()):
                other = by_key.get((hidden_kind, issue.representative_fingerprint))
                if other is None:
                    continue
                dropped.add(id(other))
                hidden.setdefault(index, []).append(other.title)

        result = []
        for index, issue in enumerate(issues):
            if id(issue) in dropped:
                continue
            if index in hidden:
                issue = _with_duplicates(issue, hidden[index])
            result.append(issue)
        return result


def _with_duplicates(issue: Issue, titles: list[str]) -> Issue:
    return replace(issue, duplicates=(*issue.duplicates, *titles))


def assemble(findings: Iterable[Finding], **kwargs) -> list[Issue]:
    return IssueAssembler(**kwargs).assemble(findings)
