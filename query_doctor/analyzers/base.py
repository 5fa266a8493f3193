"""Base class and pass context for all analyzers."""

from __future__ import annotations

import abc
from dataclasses import dataclass, field
from functools import cached_property
from typing import Any

from query_doctor.cache import MetadataCache
from query_doctor.config import DEFAULT_SENSITIVE_FIELDS, DEFAULT_THRESHOLDS, AnalyzerSettings
from query_doctor.diagnostics import DiagnosticCapability
from query_doctor.models import Finding, OperationTrace
from query_doctor.source import SourceUnit


def excerpt(text: str, limit: int = 80) -> str:
    """Single-line, length-capped rendering of a statement for titles."""
    flat = " ".join(text.split())
    return flat if len(flat) <= limit else flat[: limit - 3] + "..."


@dataclass(frozen=True)
class AnalysisContext:
    """Read-only view of one analysis pass.

    Attributes:
        traces: Every ingested operation of the unit of work, in execution order.
        sources: Parsed code units for the source-based analyzers.
        diagnostics: Live database capability, None when the host gave none.
        cache: Metadata cache that outlives the pass.
        timeout_ms: Bound, from the host, passed with every diagnostic call.
        sensitive_fields: Field names the security analyzers look for.
    """

    traces: tuple[OperationTrace, ...] = ()
    sources: tuple[SourceUnit, ...] = ()
    diagnostics: DiagnosticCapability | None = None
    cache: MetadataCache = field(default_factory=MetadataCache)
    timeout_ms: int = 2000
    sensitive_fields: tuple[str, ...] = DEFAULT_SENSITIVE_FIELDS

    @cached_property
    def groups(self) -> dict[str, list[OperationTrace]]:
        """Traces grouped by fingerprint, groups in first-seen order."""
        grouped: dict[str, list[OperationTrace]] = {}
        for trace in self.traces:
            grouped.setdefault(trace.fingerprint, []).append(trace)
        return grouped

    def provides(self, capability: str) -> bool:
        if capability == "diagnostics":
            return self.diagnostics is not None
        if capability == "sources":
            return bool(self.sources)
        if capability == "traces":
            return bool(self.traces)
        return False


class BaseAnalyzer(abc.ABC):
    """Abstract base class for all analyzers.

    To create a new analyzer, subclass this and implement `analyze()`.
    The registry auto-discovers all subclasses found in the analyzers/ directory.

    Attributes:
        name: Stable issue kind emitted by this analyzer.
        category: Grouping category (performance, configuration, security).
        description: Human-readable summary of what this analyzer detects.
        requires: Capabilities the pass must provide ("diagnostics",
            "sources"); the analyzer is skipped when one is missing.
        defaults: Threshold defaults, overridable through configuration.
    """

    name: str = ""
    category: str = ""
    description: str = ""
    requires: tuple[str, ...] = ()
    defaults: dict[str, float] = {}

    def __init__(self, settings: AnalyzerSettings | None = None):
        self.settings = settings or AnalyzerSettings()

    @abc.abstractmethod
    def analyze(self, context: AnalysisContext) -> list[Finding]:
        """Inspect one pass.

        Args:
            context: Read-only view of the pass.

        Returns:
            List of Finding objects. Empty list means nothing was detected.
        """
        ...

    def threshold(self, key: str) -> float:
        if key in self.settings.thresholds:
            return self.settings.thresholds[key]
        return self.defaults[key]

    def option(self, key: str, default: Any = None) -> Any:
        return self.settings.options.get(key, default)

    def missing_requirements(self, context: AnalysisContext) -> list[str]:
        return [req for req in self.requires if not context.provides(req)]

    def __init_subclass__(cls, **kwargs):
        super().__init_subclass__(**kwargs)
        if not cls.name:
            cls.name = cls.__name__
        if "defaults" not in cls.__dict__:
            cls.defaults = dict(DEFAULT_THRESHOLDS.get(cls.name, {}))

    def __repr__(self):
        return f"<{self.__class__.__name__} [{self.category}] {self.name}>"
