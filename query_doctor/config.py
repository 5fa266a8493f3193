"""Configuration loading and management for query-doctor."""

from __future__ import annotations

import os
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any

import yaml

from query_doctor.errors import ConfigurationError

CONFIG_FILENAME = "query-doctor.yaml"

# Detection and severity thresholds per built-in kind. Severity keys are
# read by query_doctor.severity, detection keys by the analyzers.
DEFAULT_THRESHOLDS: dict[str, dict[str, float]] = {
    "n_plus_one": {
        "detect_count": 5,
        "suppress_count": 3,
        "warning_count": 3,
        "critical_count": 100,
        "critical_count_with_time": 50,
        "critical_total_ms": 100,
    },
    "frequent_query": {
        "detect_count": 10,
        "suppress_count": 10,
        "warning_count": 20,
        "warning_total_ms": 20,
        "critical_count": 100,
        "critical_total_ms": 100,
    },
    "slow_query": {
        "detect_ms": 100,
        "suppress_ms": 10,
        "warning_ms": 10,
        "critical_ms": 100,
    },
    "find_all": {
        "detect_rows": 99,
        "assumed_rows": 999,
        "suppress_rows": 50,
        "warning_rows": 50,
        "warning_ms": 50,
        "critical_rows": 10000,
    },
    "order_by_without_limit": {
        "detect_rows": 50,
        "suppress_rows": 50,
        "warning_rows": 100,
        "warning_ms": 50,
        "critical_rows": 10000,
    },
    "ineffective_like": {
        "critical_ms": 100,
    },
    "missing_index": {
        "slow_ms": 50,
        "repeat_count": 3,
        "detect_rows": 1000,
        "suppress_rows": 500,
        "warning_rows": 1000,
        "warning_ms": 10,
        "critical_rows": 100000,
        "critical_ms": 100,
    },
    "timezone": {},
    "charset": {},
    "performance_config": {
        "min_shared_buffers_mb": 128,
        "min_work_mem_mb": 4,
    },
    "sensitive_data_exposure": {},
    "sql_injection": {},
}

DEFAULT_SENSITIVE_FIELDS = (
    "password",
    "passwd",
    "pwd",
    "secret",
    "token",
    "api_key",
    "apikey",
    "private_key",
    "privatekey",
    "credit_card",
    "creditcard",
    "card_number",
    "cvv",
    "ssn",
    "social_security",
    "tax_id",
    "bank_account",
)


@dataclass
class AnalyzerSettings:
    """Per-analyzer settings: on/off switch, threshold overrides, extra options."""

    enabled: bool = True
    thresholds: dict[str, float] = field(default_factory=dict)
    options: dict[str, Any] = field(default_factory=dict)


@dataclass
class DiagnosticsConfig:
    timeout_ms: int = 2000


@dataclass
class ReportConfig:
    include_info: bool = True


@dataclass
class Config:
    """Complete configuration for query-doctor."""

    analyzers: dict[str, AnalyzerSettings] = field(default_factory=dict)
    sensitive_fields: tuple[str, ...] = DEFAULT_SENSITIVE_FIELDS
    diagnostics: DiagnosticsConfig = field(default_factory=DiagnosticsConfig)
    report: ReportConfig = field(default_factory=ReportConfig)
    only: set[str] | None = None  # None = no whitelist, run every enabled analyzer

    def settings_for(self, kind: str) -> AnalyzerSettings:
        return self.analyzers.get(kind) or AnalyzerSettings()

    def is_enabled(self, kind: str) -> bool:
        if self.only is not None and kind not in self.only:
            return False
        return self.settings_for(kind).enabled

    def thresholds(self, kind: str) -> dict[str, float]:
        """Built-in defaults for ``kind`` overlaid with configured overrides."""
        merged = dict(DEFAULT_THRESHOLDS.get(kind, {}))
        merged.update(self.settings_for(kind).thresholds)
        return merged


def find_config_file() -> str | None:
    """Search for query-doctor.yaml in cwd, then home dir.

    Returns:
        Path to config file if found, None otherwise.
    """
    cwd_config = Path.cwd() / CONFIG_FILENAME
    if cwd_config.is_file():
        return str(cwd_config)

    home_config = Path.home() / CONFIG_FILENAME
    if home_config.is_file():
        return str(home_config)

    return None


def load_config(config_path: str | None = None, auto_discover: bool = True) -> Config:
    """Load configuration from YAML file.

    Args:
        config_path: Explicit path to config file. If None and auto_discover is True,
                     searches default locations.
        auto_discover: If True and config_path is None, search for config file.

    Returns:
        Config object. Returns default config if no file found.

    Raises:
        ConfigurationError: The file is not valid YAML or holds invalid values.
    """
    if config_path is None and auto_discover:
        config_path = find_config_file()

    if config_path is None:
        return Config()

    if not os.path.isfile(config_path):
        raise FileNotFoundError(f"Config file not found: {config_path}")

    with open(config_path) as f:
        try:
            data = yaml.safe_load(f) or {}
        except yaml.YAMLError as exc:
            raise ConfigurationError(f"Invalid YAML in {config_path}: {exc}") from exc

    return _parse_config(data)


def _parse_config(data: Any) -> Config:
    """Parse YAML data into Config object."""
    if not isinstance(data, dict):
        raise ConfigurationError("Top level of the config file must be a mapping")

    config = Config()

    for kind, section in (data.get("analyzers") or {}).items():
        config.analyzers[kind] = _parse_analyzer_settings(kind, section or {})

    if "sensitive_fields" in data:
        fields = data["sensitive_fields"]
        if not isinstance(fields, list) or not all(isinstance(f, str) for f in fields):
            raise ConfigurationError("sensitive_fields must be a list of names")
        config.sensitive_fields = tuple(fields)

    if "diagnostics" in data:
        timeout = (data["diagnostics"] or {}).get("timeout_ms", DiagnosticsConfig.timeout_ms)
        if isinstance(timeout, bool) or not isinstance(timeout, int) or timeout <= 0:
            raise ConfigurationError(f"diagnostics.timeout_ms must be a positive integer, got {timeout!r}")
        config.diagnostics = DiagnosticsConfig(timeout_ms=timeout)

    if "report" in data:
        report_data = data["report"] or {}
        include_info = report_data.get("include_info", True)
        if not isinstance(include_info, bool):
            raise ConfigurationError("report.include_info must be true or false")
        config.report = ReportConfig(include_info=include_info)

    return config


def _parse_analyzer_settings(kind: str, data: Any) -> AnalyzerSettings:
    """Parse one ``analyzers.<kind>`` section."""
    if not isinstance(data, dict):
        raise ConfigurationError(f"analyzers.{kind} must be a mapping")

    enabled = data.get("enabled", True)
    if not isinstance(enabled, bool):
        raise ConfigurationError(f"analyzers.{kind}.enabled must be true or false")

    thresholds = data.get("thresholds") or {}
    if not isinstance(thresholds, dict):
        raise ConfigurationError(f"analyzers.{kind}.thresholds must be a mapping")
    known = DEFAULT_THRESHOLDS.get(kind)
    for key, value in thresholds.items():
        if known is not None and key not in known:
            raise ConfigurationError(f"Unknown threshold {key!r} for analyzer {kind!r}")
        if isinstance(value, bool) or not isinstance(value, (int, float)) or value < 0:
            raise ConfigurationError(f"analyzers.{kind}.thresholds.{key} must be a non-negative number")

    options = {k: v for k, v in data.items() if k not in ("enabled", "thresholds")}
    return AnalyzerSettings(enabled=enabled, thresholds=dict(thresholds), options=options)


def merge_cli_with_config(
    config: Config,
    cli_disable: set[str] | None = None,
    cli_only: set[str] | None = None,
) -> Config:
    """Merge CLI arguments with config file settings.

    CLI arguments take precedence over config file.

    Args:
        config: Loaded configuration.
        cli_disable: Analyzers to switch off (from --disable flag).
        cli_only: Analyzers to run exclusively (from --only flag).

    Returns:
        A new Config with the overrides applied.
    """
    analyzers = dict(config.analyzers)

    # CLI disable adds to config disables
    for kind in cli_disable or ():
        analyzers[kind] = replace(config.settings_for(kind), enabled=False)

    # CLI only completely overrides config
    only = set(cli_only) if cli_only is not None else config.only

    return replace(config, analyzers=analyzers, only=only)
