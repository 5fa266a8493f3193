"""Remediation suggestions rendered from an in-memory template table."""

from __future__ import annotations

import abc
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from query_doctor.models import Suggestion


class SuggestionProvider(abc.ABC):
    @abc.abstractmethod
    def suggest(self, kind: str, parameters: Mapping[str, Any]) -> Suggestion | None:
        """Return a remediation for an issue kind, or None when there is none."""


@dataclass(frozen=True)
class Template:
    """A suggestion template and the context keys it recognizes."""

    code: str
    description: str
    keys: frozenset[str]


def _template(code: str, description: str, *keys: str) -> Template:
    return Template(code=code, description=description, keys=frozenset(keys))


TEMPLATES: dict[str, Template] = {
    "n_plus_one": _template(
        "-- one query for all parents instead of one per parent\nSELECT * FROM {table} WHERE parent_id IN (...);",
        "Load the related {table} rows in bulk ({count} single-row queries ran). "
        "With an ORM, eager-load the relation (joinedload/selectinload or prefetch_related).",
        "table",
        "count",
    ),
    "frequent_query": _template(
        "-- executed {count} times\n{sql}",
        "Cache the result for the duration of the unit of work, or batch the "
        "statements into a single multi-row operation.",
        "count",
        "sql",
    ),
    "slow_query": _template(
        "EXPLAIN (ANALYZE, BUFFERS) {sql};",
        "The query took {durationMs}ms. Inspect the plan for sequential scans and large sorts.",
        "sql",
        "durationMs",
    ),
    "find_all": _template(
        "SELECT ... FROM {table} WHERE ... LIMIT 100;",
        "About {rows} rows were loaded from {table}. Filter in the database or paginate.",
        "table",
        "rows",
    ),
    "order_by_without_limit": _template(
        "{sql} LIMIT 50",
        "Add a LIMIT so the database can stop after the first rows of the sort ({rows} rows returned).",
        "sql",
        "rows",
    ),
    "ineffective_like": _template(
        "CREATE EXTENSION IF NOT EXISTS pg_trgm;\nCREATE INDEX CONCURRENTLY ON {table} USING gin (column gin_trgm_ops);",
        "A trigram index supports LIKE patterns with a leading wildcard ({patterns}).",
        "table",
        "patterns",
    ),
    "missing_index": _template(
        "-- filter: {filter}\nCREATE INDEX CONCURRENTLY ON {table} (column);",
        "Index the columns used by the filter; {rowsScanned} rows of {table} are scanned today.",
        "table",
        "filter",
        "rowsScanned",
    ),
    "timezone": _template(
        "ALTER SYSTEM SET timezone = '{expected}';\nSELECT pg_reload_conf();",
        "Run the database in the same timezone as the application ({expected}).",
        "expected",
    ),
    "charset": _template(
        "createdb -E UTF8 -T template0 new_database",
        "Recreate the database with UTF8 (currently {encoding}) and reload the data.",
        "encoding",
    ),
    "performance_config": _template(
        "ALTER SYSTEM SET {setting} = '{recommended_mb}MB';\nSELECT pg_reload_conf();",
        "Raise {setting} from {current} to at least {recommended_mb}MB.",
        "setting",
        "current",
        "recommended_mb",
    ),
    "sensitive_data_exposure": _template(
        "def {method}(self):\n    data = ...\n    # leave out: {fields}\n    return data",
        "Remove {fields} from {class}.{method}(), or mask the values.",
        "class",
        "method",
        "fields",
    ),
    "sql_injection": _template(
        'cursor.execute("SELECT ... WHERE id = %s", (value,))',
        "Pass values to {function}() as bound parameters instead of formatting them into the SQL text.",
        "function",
    ),
}


class _Blank(dict):
    def __missing__(self, key):
        return ""


def _text(value: Any) -> str:
    if isinstance(value, (list, tuple, set, frozenset)):
        return ", ".join(str(v) for v in value)
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if isinstance(value, float):
        return f"{value:.1f}"
    return str(value)


def render(template_id: str, context: Mapping[str, Any], templates: Mapping[str, Template] = TEMPLATES) -> Suggestion:
    """Render a template with ``context``.

    Keys the template does not declare are ignored; declared keys missing
    from ``context`` render as empty strings.

    Raises:
        KeyError: Unknown ``template_id``.
    """
    template = templates[template_id]
    values = _Blank({key: _text(context[key]) for key in template.keys if key in context})
    return Suggestion(
        code=template.code.format_map(values),
        description=template.description.format_map(values),
    )


class TemplateSuggestionProvider(SuggestionProvider):
    def __init__(self, templates: Mapping[str, Template] | None = None):
        self.templates = TEMPLATES if templates is None else templates

    def suggest(self, kind, parameters):
        if kind not in self.templates:
            return None
        return render(kind, parameters, self.templates)
