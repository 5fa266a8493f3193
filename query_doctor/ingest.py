"""Trace ingestion: turn raw host records into validated OperationTraces."""

from __future__ import annotations

import json
import logging
import math
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from query_doctor.errors import ValidationError
from query_doctor.models import Frame, OperationTrace
from query_doctor.properties import MISSING, first_property, get_property

logger = logging.getLogger(__name__)


@dataclass
class IngestResult:
    traces: list[OperationTrace] = field(default_factory=list)
    dropped: int = 0


def trace_from_record(record: Any) -> OperationTrace:
    """Build one OperationTrace from a raw record.

    Accepts both historical upstream formats: ``sql``/``executionMS``/
    ``row_count``/``backtrace`` as well as ``text``/``durationMs``/
    ``rowCount``/``origin``. A duration strictly between 0 and 1 is in
    seconds and is scaled to milliseconds before validation.

    Raises:
        ValidationError: empty text, negative or non-numeric duration,
            negative row count, or a field that cannot be read or converted.
    """
    try:
        return _build_trace(record)
    except ValidationError:
        raise
    except (TypeError, ValueError, OverflowError, LookupError, AttributeError) as exc:
        raise ValidationError(f"{type(exc).__name__}: {exc}") from exc


def _build_trace(record: Any) -> OperationTrace:
    text = first_property(record, "text", "sql", default="")
    if not isinstance(text, str):
        raise ValidationError(f"Operation text must be a string, got {type(text).__name__}")

    duration = first_property(record, "durationMs", "duration_ms", "executionMS", default=0.0)
    if isinstance(duration, bool) or not isinstance(duration, (int, float)):
        raise ValidationError(f"Duration must be a number, got {duration!r}")
    if 0 < duration < 1:
        duration *= 1000

    row_count = first_property(record, "rowCount", "row_count", default=None)
    if isinstance(row_count, float) and row_count.is_integer():
        row_count = int(row_count)

    return OperationTrace(
        text=text,
        parameters=_parameters(first_property(record, "parameters", "params", default=None)),
        duration_ms=duration,
        row_count=row_count,
        origin=_origin(first_property(record, "origin", "backtrace", default=None)),
    )


def ingest(records: Iterable[Any]) -> IngestResult:
    """Ingest a finite sequence of records, dropping malformed ones.

    A record that fails validation is skipped and logged as a warning; the
    rest of the trace set is kept.
    """
    result = IngestResult()
    for index, record in enumerate(records):
        try:
            result.traces.append(trace_from_record(record))
        except ValidationError as exc:
            result.dropped += 1
            logger.warning("Dropping malformed operation record #%d: %s", index, exc)
    return result


def load_traces(path: str) -> IngestResult:
    """Read a JSON trace file (a list of records, or ``{"queries": [...]}``)."""
    file_path = Path(path)
    if not file_path.is_file():
        raise FileNotFoundError(f"Trace file not found: {path}")

    with open(file_path) as f:
        data = json.load(f)

    if isinstance(data, Mapping):
        data = data.get("queries", data.get("operations", []))
    if not isinstance(data, list):
        raise ValidationError(f"Trace file must contain a list of records: {path}")
    return ingest(data)


def _parameters(raw: Any) -> dict[Any, Any]:
    if raw is None or raw is MISSING:
        return {}
    if isinstance(raw, Mapping):
        return dict(raw)
    if isinstance(raw, Sequence) and not isinstance(raw, (str, bytes)):
        return dict(enumerate(raw))
    return {}


def _origin(raw: Any) -> tuple[Frame, ...]:
    if not raw or isinstance(raw, (str, bytes)) or not isinstance(raw, Iterable):
        return ()
    frames = []
    for entry in raw:
        file = get_property(entry, "file")
        if not file:
            continue
        line = get_property(entry, "line", None)
        frames.append(Frame(file=str(file), line=_line_number(line)))
    return tuple(frames)


def _line_number(raw: Any) -> int | None:
    if isinstance(raw, bool) or not isinstance(raw, (int, float)) or not math.isfinite(raw):
        return None
    return int(raw)
