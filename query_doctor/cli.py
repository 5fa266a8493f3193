"""CLI entry point for query-doctor."""

from __future__ import annotations

import argparse
import json
import logging
import os
import sys
from datetime import datetime

from query_doctor import __version__

# File extensions per output format
_FORMAT_EXT = {"json": ".json", "markdown": ".md"}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="query-doctor",
        description="Analyze the database operations of one unit of work and report ranked issues.",
    )
    parser.add_argument("--version", action="version", version=f"query-doctor {__version__}")

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # -- analyze --
    analyze_parser = subparsers.add_parser("analyze", help="Analyze a captured trace file")
    analyze_parser.add_argument("traces", help="Path to a JSON file of operation records")
    analyze_parser.add_argument(
        "--source",
        action="append",
        default=[],
        help="Python source file for the security analyzers (repeatable)",
    )
    analyze_parser.add_argument("--dsn", help="PostgreSQL URI enabling plan and setting lookups")
    analyze_parser.add_argument("--config", help="Path to query-doctor.yaml (default: auto-discover)")
    analyze_parser.add_argument("--disable", help="Comma-separated analyzer kinds to switch off")
    analyze_parser.add_argument("--only", help="Comma-separated analyzer kinds to run exclusively")
    _add_output_args(analyze_parser)
    analyze_parser.add_argument("--verbose", "-v", action="store_true", help="Print progress")

    # -- list-analyzers --
    list_parser = subparsers.add_parser("list-analyzers", help="List all available analyzers")
    list_parser.add_argument(
        "--categories",
        help="Comma-separated list of categories to filter",
    )

    return parser


def _add_output_args(parser: argparse.ArgumentParser):
    grp = parser.add_argument_group("output")
    grp.add_argument(
        "--format",
        "-f",
        choices=["json", "markdown"],
        default="markdown",
        help="Report format (default: markdown)",
    )
    grp.add_argument("--output", "-o", help="Output file path (default: stdout)")


def main(argv: list[str] | None = None):
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        sys.exit(1)

    if args.command == "list-analyzers":
        _cmd_list_analyzers(args)
    elif args.command == "analyze":
        _cmd_analyze(args)


def _split(value: str | None) -> set[str] | None:
    if value is None:
        return None
    return {part.strip() for part in value.split(",") if part.strip()}


def _configure_logging(verbose: bool):
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )


def _fail(message: str):
    print(f"Error: {message}", file=sys.stderr)
    sys.exit(1)


def _cmd_analyze(args):
    from query_doctor.config import load_config, merge_cli_with_config
    from query_doctor.errors import QueryDoctorError
    from query_doctor.ingest import load_traces
    from query_doctor.pipeline import Pipeline
    from query_doctor.source import SourceUnit

    _configure_logging(args.verbose)

    try:
        config = load_config(args.config)
    except (QueryDoctorError, FileNotFoundError) as e:
        _fail(str(e))
    config = merge_cli_with_config(config, cli_disable=_split(args.disable), cli_only=_split(args.only))

    try:
        ingested = load_traces(args.traces)
        sources = [SourceUnit.from_file(path) for path in args.source]
    except (QueryDoctorError, OSError, json.JSONDecodeError) as e:
        _fail(str(e))

    conn = _connect(args.dsn) if args.dsn else None
    try:
        diagnostics = None
        if conn is not None:
            from query_doctor.diagnostics import PostgresDiagnostics

            diagnostics = PostgresDiagnostics(conn, timeout_ms=config.diagnostics.timeout_ms)
        report = Pipeline(config).run(traces=ingested.traces, sources=sources, diagnostics=diagnostics)
    finally:
        if conn is not None:
            conn.close()
    report.dropped_records = ingested.dropped

    output = _render_report(report, args.format, include_info=config.report.include_info)
    _write_output(output, args)

    if not report.performed:
        sys.exit(2)


def _connect(dsn: str):
    import psycopg2
    from query_doctor.connection import connect

    try:
        return connect(dsn=dsn)
    except psycopg2.OperationalError as e:
        error_msg = str(e).strip()
        print("Error: Could not connect to database.", file=sys.stderr)
        print(f"       {error_msg}", file=sys.stderr)
        if "no password supplied" in error_msg:
            print("\nHint: Put the password in the DSN, or set PGPASSWORD environment variable.", file=sys.stderr)
        elif "does not exist" in error_msg:
            print("\nHint: Check that the database name is correct.", file=sys.stderr)
        sys.exit(1)


def _cmd_list_analyzers(args):
    from query_doctor.registry import discover_analyzers

    categories = args.categories.split(",") if args.categories else None
    analyzers = discover_analyzers(categories=categories)

    if not analyzers:
        print("No analyzers found.")
        return

    current_cat = None
    for analyzer in analyzers:
        if analyzer.category != current_cat:
            current_cat = analyzer.category
            print(f"\n[{current_cat}]")
        needs = f"[{','.join(analyzer.requires)}]" if analyzer.requires else ""
        print(f"  {analyzer.name:26s} {needs:14s} {analyzer.description}")


def _write_output(output: str, args):
    """Write report to file (with timestamped name) or stdout."""
    if not args.output:
        print(output)
        return

    path = _make_output_path(args.output, args.format)
    parent = os.path.dirname(path)
    if parent:
        os.makedirs(parent, exist_ok=True)
    with open(path, "w") as f:
        f.write(output)
    print(f"Report written to {path}", file=sys.stderr)


def _make_output_path(user_path: str, fmt: str) -> str:
    """Insert a timestamp into the output filename.

    If the user provides a path like ``report.json``, the result is
    ``report_20260127_131504.json``.  If they provide a bare directory,
    the file is placed there with an auto-generated name.
    """
    ts = datetime.now().strftime("%Y%m%d_%H%M%S")
    ext = _FORMAT_EXT.get(fmt, "")

    if os.path.isdir(user_path):
        return os.path.join(user_path, f"query-doctor_{ts}{ext}")

    base, existing_ext = os.path.splitext(user_path)
    if not existing_ext:
        existing_ext = ext
    return f"{base}_{ts}{existing_ext}"


def _render_report(report, fmt: str, include_info: bool = True) -> str:
    if fmt == "json":
        from query_doctor.reporters.json_reporter import render
    elif fmt == "markdown":
        from query_doctor.reporters.markdown_reporter import render
    else:
        raise ValueError(f"Unknown format: {fmt}")
    return render(report, include_info=include_info)
