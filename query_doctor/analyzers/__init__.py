"""Analyzer implementations, auto-discovered by :mod:`query_doctor.registry`."""
