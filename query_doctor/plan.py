"""Summaries of PostgreSQL ``EXPLAIN (FORMAT JSON)`` output."""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True)
class SeqScan:
    """A sequential scan node in a plan.

    Attributes:
        table: Relation name as reported by the planner.
        rows: Planner's row estimate for the node.
        filter: The scan's filter condition, empty when it reads every row
            unconditionally. A filtered scan is one an index could replace.
    """

    table: str
    rows: int
    filter: str = ""

    @property
    def has_filter(self) -> bool:
        return bool(self.filter)


@dataclass
class PlanSummary:
    seq_scans: list[SeqScan] = field(default_factory=list)
    total_cost: float = 0.0
    node_types: list[str] = field(default_factory=list)

    @property
    def filtered_seq_scans(self) -> list[SeqScan]:
        return [s for s in self.seq_scans if s.has_filter]


def plan_root(explain_output: Any) -> dict[str, Any]:
    """Unwrap the ``[{"Plan": {...}}]`` envelope psycopg2 returns."""
    if isinstance(explain_output, list):
        explain_output = explain_output[0] if explain_output else {}
    if isinstance(explain_output, dict) and "Plan" in explain_output:
        return explain_output["Plan"]
    return explain_output if isinstance(explain_output, dict) else {}


def iter_nodes(node: dict[str, Any]) -> Iterator[dict[str, Any]]:
    """Depth-first walk over a plan node and all its children."""
    yield node
    for child in node.get("Plans", ()) or ():
        yield from iter_nodes(child)


def summarize_plan(explain_output: Any) -> PlanSummary:
    root = plan_root(explain_output)
    summary = PlanSummary(total_cost=float(root.get("Total Cost", 0.0) or 0.0))
    if not root:
        return summary

    for node in iter_nodes(root):
        node_type = node.get("Node Type", "")
        summary.node_types.append(node_type)
        if node_type in ("Seq Scan", "Parallel Seq Scan"):
            summary.seq_scans.append(
                SeqScan(
                    table=node.get("Relation Name", ""),
                    rows=int(node.get("Plan Rows", 0) or 0),
                    filter=node.get("Filter", "") or "",
                )
            )
    return summary
