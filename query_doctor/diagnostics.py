"""Live diagnostic capability: execution plans and server settings.

Analyzers never talk to a driver directly. They call a DiagnosticCapability
injected by the host; any failure, including a statement cancelled by the
timeout bound, surfaces as CapabilityUnavailable and is isolated to the
calling analyzer.
"""

from __future__ import annotations

import abc
import json
import logging
from collections.abc import Mapping
from typing import Any

import psycopg2
from sqlparse import lexer
from sqlparse import tokens as T

from query_doctor.errors import CapabilityUnavailable
from query_doctor.plan import plan_root
from query_doctor.sql_shape import bound_value

logger = logging.getLogger(__name__)


class DiagnosticCapability(abc.ABC):
    """Blocking lookups against the live database behind the traces.

    Every lookup takes the bound the host allows for it as ``timeout_ms``;
    None means the implementation default. Exceeding the bound raises
    CapabilityUnavailable.
    """

    @abc.abstractmethod
    def explain(
        self, text: str, parameters: Mapping[Any, Any] | None = None, *, timeout_ms: int | None = None
    ) -> dict[str, Any]:
        """Return the root node of the statement's execution plan."""

    @abc.abstractmethod
    def setting(self, name: str, *, timeout_ms: int | None = None) -> str:
        """Return the server's current value of a configuration parameter."""

    @abc.abstractmethod
    def table_rows(self, table: str, *, timeout_ms: int | None = None) -> int | None:
        """Return the planner's row estimate for ``table``, None when unknown."""


class PostgresDiagnostics(DiagnosticCapability):
    def __init__(self, conn, timeout_ms: int = 2000):
        self.conn = conn
        self.timeout_ms = timeout_ms

    def explain(self, text, parameters=None, *, timeout_ms=None):
        statement, values = to_pyformat(text, parameters or {})
        row = self._fetchone("EXPLAIN (FORMAT JSON) " + statement, values, timeout_ms)
        output = row[0] if row else []
        if isinstance(output, str):
            output = json.loads(output)
        return plan_root(output)

    def setting(self, name, *, timeout_ms=None):
        row = self._fetchone("SELECT current_setting(%s)", (name,), timeout_ms)
        if row is None:
            raise CapabilityUnavailable(f"Setting {name!r} not reported by server")
        return str(row[0])

    def table_rows(self, table, *, timeout_ms=None):
        row = self._fetchone(
            "SELECT reltuples::bigint FROM pg_class WHERE oid = to_regclass(%s)",
            (table,),
            timeout_ms,
        )
        if row is None or row[0] is None or row[0] < 0:
            return None
        return int(row[0])

    def _fetchone(self, query: str, params: Any = None, timeout_ms: int | None = None):
        bound = self.timeout_ms if timeout_ms is None else timeout_ms
        try:
            with self.conn.cursor() as cur:
                cur.execute("SET statement_timeout = %s", (int(bound),))
                cur.execute(query, params)
                return cur.fetchone()
        except psycopg2.Error as exc:
            logger.debug("Diagnostic query failed: %s", exc)
            raise CapabilityUnavailable(f"{type(exc).__name__}: {str(exc).strip()}") from exc


def to_pyformat(text: str, parameters: Mapping[Any, Any]) -> tuple[str, list[Any] | None]:
    """Rewrite bound-parameter markers to psycopg2's ``%s`` style.

    Every marker (``?``, ``$n``, ``:name``, ``%s``, ``%(name)s``) becomes a
    positional ``%s`` with its bound value resolved from ``parameters``.
    Literal percent signs are escaped only when values are passed.
    """
    parts: list[str] = []
    values: list[Any] = []
    position = 0
    for ttype, value in lexer.tokenize(text):
        if ttype in T.Name.Placeholder:
            values.append(bound_value(parameters, value, position))
            if not value.startswith((":", "$", "%(")):
                position += 1
            parts.append("\x00")
        else:
            parts.append(value)

    if not values:
        return text, None
    statement = "".join(p.replace("%", "%%") for p in parts).replace("\x00", "%s")
    return statement, values
