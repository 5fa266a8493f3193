"""Data models: operation traces, findings, issues and pass reports."""

from __future__ import annotations

import enum
import math
from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime
from types import MappingProxyType
from typing import Any

from query_doctor.errors import ValidationError
from query_doctor.fingerprint import fingerprint
from query_doctor.sql_shape import statement_type


class Severity(enum.Enum):
    CRITICAL = "CRITICAL"
    WARNING = "WARNING"
    INFO = "INFO"

    @property
    def rank(self) -> int:
        return _SEVERITY_RANK[self]

    def __lt__(self, other):
        return self.rank < other.rank

    @classmethod
    def from_string(cls, value: str) -> Severity:
        try:
            return cls(value.upper())
        except ValueError:
            raise ValueError(f"Unknown severity: {value!r}") from None


_SEVERITY_RANK = {Severity.CRITICAL: 0, Severity.WARNING: 1, Severity.INFO: 2}


@dataclass(frozen=True)
class Frame:
    file: str
    line: int | None = None

    def __str__(self):
        return f"{self.file}:{self.line}" if self.line is not None else self.file


@dataclass(frozen=True)
class OperationTrace:
    """One executed database operation, immutable once ingested.

    Attributes:
        text: The statement as sent to the database. Never empty.
        parameters: Values bound at execution, keyed by position or name.
        duration_ms: Execution time in milliseconds, never negative.
        row_count: Rows returned or affected, when the host captured it.
        origin: Call-site frames, most recent first. Empty when the host did
            not enable origin capture.
    """

    text: str
    parameters: Mapping[Any, Any] = field(default_factory=dict)
    duration_ms: float = 0.0
    row_count: int | None = None
    origin: tuple[Frame, ...] = ()

    def __post_init__(self):
        if not isinstance(self.text, str) or not self.text.strip():
            raise ValidationError("Operation text cannot be empty")
        if isinstance(self.duration_ms, bool) or not isinstance(self.duration_ms, (int, float)):
            raise ValidationError(f"Duration must be a number, got {self.duration_ms!r}")
        if math.isnan(self.duration_ms) or self.duration_ms < 0:
            raise ValidationError(f"Duration must be non-negative, got {self.duration_ms!r}")
        if self.row_count is not None:
            if isinstance(self.row_count, bool) or not isinstance(self.row_count, int):
                raise ValidationError(f"Row count must be an integer, got {self.row_count!r}")
            if self.row_count < 0:
                raise ValidationError(f"Row count must be non-negative, got {self.row_count}")

        object.__setattr__(self, "duration_ms", float(self.duration_ms))
        object.__setattr__(self, "parameters", MappingProxyType(dict(self.parameters)))
        object.__setattr__(self, "origin", tuple(self.origin))

    @property
    def fingerprint(self) -> str:
        return fingerprint(self.text)

    @property
    def statement_type(self) -> str:
        return statement_type(self.text)

    @property
    def is_select(self) -> bool:
        return self.statement_type == "SELECT"

    @property
    def top_frame(self) -> Frame | None:
        return self.origin[0] if self.origin else None


@dataclass
class Finding:
    """Raw analyzer output, before suppression, severity and deduplication."""

    kind: str
    title: str
    narrative: str
    metrics: dict[str, float] = field(default_factory=dict)
    related_operations: tuple[OperationTrace, ...] = ()
    related_origin: Frame | None = None
    details: dict[str, Any] = field(default_factory=dict)
    # Only used by kinds without a metric-driven severity function.
    severity: Severity | None = None


@dataclass(frozen=True)
class Suggestion:
    code: str
    description: str


@dataclass(frozen=True)
class IssueOperation:
    """A representative operation plus how many operations share its fingerprint."""

    trace: OperationTrace
    fingerprint: str
    occurrences: int = 1


@dataclass(frozen=True)
class Issue:
    kind: str
    title: str
    narrative: str
    severity: Severity
    operations: tuple[IssueOperation, ...] = ()
    suggestion: Suggestion | None = None
    origin: Frame | None = None
    metrics: Mapping[str, float] = field(default_factory=dict)
    category: str = ""
    duplicates: tuple[str, ...] = ()

    def __post_init__(self):
        seen = set()
        for op in self.operations:
            if op.fingerprint in seen:
                raise ValueError(f"Duplicate operation fingerprint in issue {self.kind!r}")
            seen.add(op.fingerprint)
        object.__setattr__(self, "operations", tuple(self.operations))
        object.__setattr__(self, "metrics", MappingProxyType(dict(self.metrics)))
        object.__setattr__(self, "duplicates", tuple(self.duplicates))

    @property
    def representative_fingerprint(self) -> str | None:
        return self.operations[0].fingerprint if self.operations else None

    @property
    def occurrences(self) -> int:
        return sum(op.occurrences for op in self.operations)


@dataclass
class AnalyzerResult:
    analyzer_name: str
    category: str
    description: str
    finding_count: int = 0
    error: str | None = None
    skipped: bool = False
    skip_reason: str = ""


@dataclass
class AnalysisReport:
    timestamp: datetime
    performed: bool = True
    issues: list[Issue] = field(default_factory=list)
    results: list[AnalyzerResult] = field(default_factory=list)
    abort_reason: str = ""
    dropped_records: int = 0
    trace_count: int = 0

    @property
    def critical_count(self) -> int:
        return sum(1 for i in self.issues if i.severity == Severity.CRITICAL)

    @property
    def warning_count(self) -> int:
        return sum(1 for i in self.issues if i.severity == Severity.WARNING)

    @property
    def info_count(self) -> int:
        return sum(1 for i in self.issues if i.severity == Severity.INFO)

    @property
    def failures(self) -> list[AnalyzerResult]:
        return [r for r in self.results if r.error]

    @property
    def analyzers_total(self) -> int:
        return sum(1 for r in self.results if not r.skipped)

    @property
    def analyzers_skipped(self) -> int:
        return sum(1 for r in self.results if r.skipped)
