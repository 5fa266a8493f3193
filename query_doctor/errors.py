"""Exception taxonomy for query-doctor."""

from __future__ import annotations


class QueryDoctorError(Exception):
    """Base class for every error raised by query-doctor."""


class ValidationError(QueryDoctorError, ValueError):
    """A raw operation record (or source unit) is malformed."""


class ConfigurationError(QueryDoctorError, ValueError):
    """Invalid configuration; raised at load time, before any analysis pass."""


class CapabilityUnavailable(QueryDoctorError):
    """A diagnostic capability (plan lookup, server settings) cannot be used."""


class AnalyzerFailure(QueryDoctorError):
    """An analyzer raised during a pass.

    Wraps the original exception so the pipeline can record it as a
    diagnostic note without aborting the other analyzers.
    """

    def __init__(self, analyzer_name: str, cause: BaseException):
        self.analyzer_name = analyzer_name
        self.cause = cause
        super().__init__(f"{analyzer_name}: {type(cause).__name__}: {cause}")
