"""Metric-driven severity tiers and the below-noise-floor suppression policy.

Every function here is pure and total: it takes a metrics mapping and a
thresholds mapping, treats an absent metric as 0, and never raises for a
missing key. Tiers are checked from most to least severe; within a tier two
metrics combine with OR.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping

from query_doctor.config import Config
from query_doctor.models import Severity

Metrics = Mapping[str, float]
Thresholds = Mapping[str, float]


def _metric(metrics: Metrics, key: str) -> float:
    value = metrics.get(key, 0)
    return value if isinstance(value, (int, float)) else 0


# -- n_plus_one ---------------------------------------------------------------


def n_plus_one_severity(metrics: Metrics, t: Thresholds) -> Severity:
    count = _metric(metrics, "count")
    total = _metric(metrics, "totalDurationMs")
    if count >= t["critical_count"]:
        return Severity.CRITICAL
    if count >= t["critical_count_with_time"] and total >= t["critical_total_ms"]:
        return Severity.CRITICAL
    if count >= t["warning_count"]:
        return Severity.WARNING
    return Severity.INFO


def n_plus_one_suppressed(metrics: Metrics, t: Thresholds) -> bool:
    return _metric(metrics, "count") < t["suppress_count"]


# -- frequent_query -----------------------------------------------------------


def frequent_query_severity(metrics: Metrics, t: Thresholds) -> Severity:
    count = _metric(metrics, "count")
    total = _metric(metrics, "totalDurationMs")
    if count >= t["critical_count"] or total >= t["critical_total_ms"]:
        return Severity.CRITICAL
    if count >= t["warning_count"] or total >= t["warning_total_ms"]:
        return Severity.WARNING
    return Severity.INFO


def frequent_query_suppressed(metrics: Metrics, t: Thresholds) -> bool:
    return _metric(metrics, "count") < t["suppress_count"]


# -- slow_query ---------------------------------------------------------------


def slow_query_severity(metrics: Metrics, t: Thresholds) -> Severity:
    duration = _metric(metrics, "durationMs")
    if duration > t["critical_ms"]:
        return Severity.CRITICAL
    if duration >= t["warning_ms"]:
        return Severity.WARNING
    return Severity.INFO


def slow_query_suppressed(metrics: Metrics, t: Thresholds) -> bool:
    return _metric(metrics, "durationMs") < t["suppress_ms"]


# -- find_all / order_by_without_limit ------------------------------------------


def unbounded_result_severity(metrics: Metrics, t: Thresholds) -> Severity:
    rows = _metric(metrics, "rows")
    duration = _metric(metrics, "durationMs")
    if rows > t["critical_rows"]:
        return Severity.CRITICAL
    if rows >= t["warning_rows"] or duration >= t["warning_ms"]:
        return Severity.WARNING
    return Severity.INFO


def unbounded_result_suppressed(metrics: Metrics, t: Thresholds) -> bool:
    return _metric(metrics, "rows") < t["suppress_rows"]


# -- missing_index ------------------------------------------------------------


def missing_index_severity(metrics: Metrics, t: Thresholds) -> Severity:
    rows = _metric(metrics, "rowsScanned")
    duration = _metric(metrics, "durationMs")
    if rows >= t["critical_rows"] or duration >= t["critical_ms"]:
        return Severity.CRITICAL
    if rows >= t["warning_rows"] or duration >= t["warning_ms"]:
        return Severity.WARNING
    return Severity.INFO


def missing_index_suppressed(metrics: Metrics, t: Thresholds) -> bool:
    return _metric(metrics, "rowsScanned") < t["suppress_rows"]


# -- ineffective_like ---------------------------------------------------------


def ineffective_like_severity(metrics: Metrics, t: Thresholds) -> Severity:
    if _metric(metrics, "durationMs") >= t["critical_ms"]:
        return Severity.CRITICAL
    return Severity.WARNING


def _never(metrics: Metrics, t: Thresholds) -> bool:
    return False


SeverityFn = Callable[[Metrics, Thresholds], Severity]
SuppressFn = Callable[[Metrics, Thresholds], bool]

POLICIES: dict[str, tuple[SeverityFn, SuppressFn]] = {
    "n_plus_one": (n_plus_one_severity, n_plus_one_suppressed),
    "frequent_query": (frequent_query_severity, frequent_query_suppressed),
    "slow_query": (slow_query_severity, slow_query_suppressed),
    "find_all": (unbounded_result_severity, unbounded_result_suppressed),
    "order_by_without_limit": (unbounded_result_severity, unbounded_result_suppressed),
    "missing_index": (missing_index_severity, missing_index_suppressed),
    "ineffective_like": (ineffective_like_severity, _never),
}


class SeverityCalculator:
    """Binds configured thresholds to the per-kind policy functions.

    Kinds without a policy are never suppressed and fall back to the
    severity the analyzer put on the finding.
    """

    def __init__(self, config: Config | None = None):
        self._config = config or Config()
        self._thresholds: dict[str, dict[str, float]] = {}

    def thresholds(self, kind: str) -> dict[str, float]:
        if kind not in self._thresholds:
            self._thresholds[kind] = self._config.thresholds(kind)
        return self._thresholds[kind]

    def has_policy(self, kind: str) -> bool:
        return kind in POLICIES

    def calculate(self, kind: str, metrics: Metrics, fallback: Severity | None = None) -> Severity:
        policy = POLICIES.get(kind)
        if policy is None:
            return fallback or Severity.WARNING
        return policy[0](metrics, self.thresholds(kind))

    def should_suppress(self, kind: str, metrics: Metrics) -> bool:
        policy = POLICIES.get(kind)
        if policy is None:
            return False
        return policy[1](metrics, self.thresholds(kind))
