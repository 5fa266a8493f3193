"""Pipeline orchestrator: ingests traces, runs analyzers, assembles issues."""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from datetime import datetime, timezone
from typing import Any

from query_doctor.analyzers.base import AnalysisContext, BaseAnalyzer
from query_doctor.assembler import IssueAssembler
from query_doctor.cache import MetadataCache
from query_doctor.config import Config
from query_doctor.diagnostics import DiagnosticCapability
from query_doctor.errors import AnalyzerFailure
from query_doctor.ingest import ingest
from query_doctor.models import AnalysisReport, AnalyzerResult, Finding, OperationTrace
from query_doctor.registry import discover_analyzers
from query_doctor.severity import SeverityCalculator
from query_doctor.source import SourceUnit
from query_doctor.suggestions import SuggestionProvider, TemplateSuggestionProvider

logger = logging.getLogger(__name__)


class PassCancelled(Exception):
    pass


class Pipeline:
    """Runs one analysis pass per call to `run()`.

    Args:
        config: Thresholds, switches and diagnostics bounds. Defaults apply
            when None.
        analyzers: Explicit analyzer set. When None, every analyzer found by
            the registry and enabled in ``config`` runs.
        suggestions: Remediation provider. Defaults to the built-in templates.
        cache: Metadata cache shared across passes. Created here when None;
            hosts that invalidate on schema change should pass their own.
    """

    def __init__(
        self,
        config: Config | None = None,
        analyzers: list[BaseAnalyzer] | None = None,
        suggestions: SuggestionProvider | None = None,
        cache: MetadataCache | None = None,
    ):
        self.config = config or Config()
        self.analyzers = analyzers if analyzers is not None else discover_analyzers(config=self.config)
        self.suggestions = suggestions if suggestions is not None else TemplateSuggestionProvider()
        self.cache = cache if cache is not None else MetadataCache()

    def run(
        self,
        records: Iterable[Any] | None = None,
        traces: Iterable[OperationTrace] | None = None,
        sources: Iterable[SourceUnit] = (),
        diagnostics: DiagnosticCapability | None = None,
        cancelled: Callable[[], bool] | None = None,
    ) -> AnalysisReport:
        """Execute every analyzer once over one unit of work.

        Args:
            records: Raw operation records; malformed ones are dropped.
            traces: Already-built traces, analyzed after ``records``.
            sources: Parsed code units for the source-based analyzers.
            diagnostics: Live database capability for plan and setting lookups.
            cancelled: Polled between steps; returning True abandons the pass.

        Returns:
            AnalysisReport. When the pass is abandoned or assembly fails,
            ``performed`` is False and no issues are reported.
        """
        report = AnalysisReport(timestamp=datetime.now(timezone.utc))
        cancelled = cancelled or (lambda: False)

        try:
            ingested = ingest(records or ())
            all_traces = (*ingested.traces, *(traces or ()))
            report.dropped_records = ingested.dropped
            report.trace_count = len(all_traces)

            context = AnalysisContext(
                traces=all_traces,
                sources=tuple(sources),
                diagnostics=diagnostics,
                cache=self.cache,
                timeout_ms=self.config.diagnostics.timeout_ms,
                sensitive_fields=tuple(self.config.sensitive_fields),
            )

            findings: list[Finding] = []
            total = len(self.analyzers)
            for i, analyzer in enumerate(self.analyzers, 1):
                _checkpoint(cancelled)
                logger.debug("[%d/%d] %s/%s: %s", i, total, analyzer.category, analyzer.name, analyzer.description)
                result, produced = self._run_analyzer(analyzer, context)
                report.results.append(result)
                findings.extend(produced)

            _checkpoint(cancelled)
            issues = self._assembler().assemble(findings)
            _checkpoint(cancelled)
        except PassCancelled:
            logger.info("Analysis pass cancelled by host")
            return _not_performed(report, "cancelled")
        except Exception as exc:
            logger.exception("Analysis pass abandoned")
            return _not_performed(report, f"{type(exc).__name__}: {exc}")

        report.issues = issues
        logger.debug(
            "Done. %d critical, %d warnings, %d info.",
            report.critical_count,
            report.warning_count,
            report.info_count,
        )
        return report

    def _run_analyzer(self, analyzer: BaseAnalyzer, context: AnalysisContext) -> tuple[AnalyzerResult, list[Finding]]:
        result = AnalyzerResult(
            analyzer_name=analyzer.name,
            category=analyzer.category,
            description=analyzer.description,
        )

        missing = analyzer.missing_requirements(context)
        if missing:
            result.skipped = True
            result.skip_reason = f"requires {', '.join(missing)}"
            return result, []

        try:
            findings = list(analyzer.analyze(context))
        except Exception as exc:
            failure = AnalyzerFailure(analyzer.name, exc)
            result.error = f"{type(exc).__name__}: {exc}"
            logger.warning("Analyzer failed: %s", failure)
            return result, []

        result.finding_count = len(findings)
        return result, findings

    def _assembler(self) -> IssueAssembler:
        return IssueAssembler(
            calculator=SeverityCalculator(self.config),
            suggestions=self.suggestions,
            categories={a.name: a.category for a in self.analyzers},
        )


def _checkpoint(cancelled: Callable[[], bool]) -> None:
    if cancelled():
        raise PassCancelled()


def _not_performed(report: AnalysisReport, reason: str) -> AnalysisReport:
    report.performed = False
    report.abort_reason = reason
    report.issues = []
    return report


def analyze(records: Iterable[Any], **kwargs) -> AnalysisReport:
    """Run a single pass with a fresh pipeline.

    Keyword arguments ``config``, ``analyzers``, ``suggestions`` and ``cache``
    configure the pipeline; the rest are passed to `Pipeline.run`.
    """
    pipeline_kwargs = {k: kwargs.pop(k) for k in ("config", "analyzers", "suggestions", "cache") if k in kwargs}
    return Pipeline(**pipeline_kwargs).run(records=records, **kwargs)
