"""Auto-discovery and registration of analyzer modules."""

from __future__ import annotations

import importlib
import logging
import pkgutil
from pathlib import Path

from query_doctor.analyzers.base import BaseAnalyzer
from query_doctor.config import Config

logger = logging.getLogger(__name__)


def discover_analyzers(
    categories: list[str] | None = None,
    config: Config | None = None,
) -> list[BaseAnalyzer]:
    """
    Discover and instantiate all BaseAnalyzer subclasses under the query_doctor.analyzers package.

    Parameters:
        categories (list[str] | None): If provided, only include analyzers whose `category` is in this list.
        config (Config | None): If provided, analyzers it disables are left out and the rest
            receive their configured settings.

    Returns:
        list[BaseAnalyzer]: Instantiated analyzers, sorted by (category, name).
    """
    analyzers_package = importlib.import_module("query_doctor.analyzers")
    assert analyzers_package.__file__ is not None
    analyzers_dir = Path(analyzers_package.__file__).parent

    _import_submodules("query_doctor.analyzers", analyzers_dir)

    instances = []
    seen = set()
    for cls in _all_subclasses(BaseAnalyzer):
        if cls in seen or not cls.name or getattr(cls, "__abstractmethods__", None):
            continue
        if not cls.__module__.startswith("query_doctor.analyzers."):
            continue
        seen.add(cls)
        if categories and cls.category not in categories:
            continue
        if config is None:
            instances.append(cls())
            continue
        if not config.is_enabled(cls.name):
            continue
        instances.append(cls(config.settings_for(cls.name)))

    instances.sort(key=lambda a: (a.category, a.name))
    return instances


def _import_submodules(package_name: str, package_dir: Path):
    """
    Recursively import all submodules in a package directory.

    A submodule that fails to import is logged and skipped so discovery continues.
    """
    for _importer, modname, _ispkg in pkgutil.walk_packages(
        path=[str(package_dir)],
        prefix=package_name + ".",
    ):
        try:
            importlib.import_module(modname)
        except Exception as exc:
            logger.warning("Skipping analyzer module %s: %s: %s", modname, type(exc).__name__, exc)


def _all_subclasses(cls):
    """
    Collect all subclasses of a class recursively, depth-first.

    Returns:
        list[type]: Every direct and indirect subclass of `cls`, excluding `cls` itself.
    """
    result = []
    for sub in cls.__subclasses__():
        result.append(sub)
        result.extend(_all_subclasses(sub))
    return result
