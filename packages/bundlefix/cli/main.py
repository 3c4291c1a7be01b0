"""Command-line interface for bundlefix.

Two entry points:
- ``bundlefix resolve|scan ...`` with configuration flags
- ``resolve-collisions <archive-path> <main-identifier> [<output-path>]``
"""

from __future__ import annotations

import argparse
import logging
from pathlib import Path
import sys
from typing import Any

from rich.console import Console
from rich.markup import escape
from rich.table import Table

from bundlefix.core.config.loader import load_engine_config
from bundlefix.core.config.models import EngineConfig, ReportFormat, RewriteMode, ScanScope
from bundlefix.core.engine import default_output_path, plan_collisions, resolve_collisions
from bundlefix.core.errors import EngineError
from bundlefix.core.reporting.models import RunReport
from bundlefix.core.utils.logging import configure_logging

console = Console()
err_console = Console(stderr=True)
logger = logging.getLogger(__name__)


def _load_config(args: argparse.Namespace) -> EngineConfig:
    """Load the config file (if any) and apply CLI flags on top."""
    scan: dict[str, Any] = {}
    if getattr(args, "scope", None):
        scan["scope"] = args.scope
    if getattr(args, "subtree", None):
        scan["subtrees"] = args.subtree

    logging_overrides: dict[str, Any] = {}
    if getattr(args, "log_level", None):
        logging_overrides["level"] = args.log_level
    if getattr(args, "json_logs", False):
        logging_overrides["structured"] = True

    report: dict[str, Any] = {}
    if getattr(args, "report_format", None):
        report["format"] = args.report_format
    if getattr(args, "no_report", False):
        report["enabled"] = False

    overrides = {
        "main_identifier": args.main_identifier,
        "mode": getattr(args, "mode", None),
        "scan": scan or None,
        "report": report or None,
        "logging": logging_overrides or None,
    }
    return load_engine_config(getattr(args, "config", None), overrides)


def _setup_logging(config: EngineConfig) -> None:
    log = config.logging
    configure_logging(
        level=log.level,
        format_string=log.format,
        filename=log.filename,
        structured=log.structured,
    )


def _print_report(report: RunReport) -> None:
    table = Table(title=f"Bundle identifiers ({report.main_identifier})")
    table.add_column("Component")
    table.add_column("Kind")
    table.add_column("Before")
    table.add_column("After")
    table.add_column("Resolution")

    for row in report.nodes:
        after = f"[yellow]{row.after}[/yellow]" if row.changed else (row.after or "")
        table.add_row(
            row.path,
            row.kind.value,
            row.before or "[dim]<none>[/dim]",
            after,
            row.resolution.value,
        )
    console.print(table)

    console.print(f"Components: {report.total_nodes}")
    console.print(f"Unique identifiers: {report.unique_identifiers}")
    console.print(f"Collisions found: {report.collisions_found}")
    if report.dry_run:
        console.print(f"Would change: {report.changed}")
    else:
        console.print(f"Collisions fixed: {report.collisions_fixed}")
        console.print(f"Missing fixed: {report.missing_fixed}")
        console.print(f"Invalid fixed: {report.invalid_fixed}")
        if report.forced:
            console.print(f"Forced: {report.forced}")


def _print_error(e: EngineError) -> None:
    err_console.print(f"[red]ERROR ({e.stage}):[/red] {escape(str(e))}")


def run_resolve(args: argparse.Namespace) -> int:
    """Resolve collisions and publish the fixed artifact.

    Returns:
        Exit code (0 for success, 1 for failure)
    """
    try:
        config = _load_config(args)
        _setup_logging(config)
        archive = Path(args.archive)
        if args.output:
            output = Path(args.output)
        else:
            output = default_output_path(archive, config.output_suffix)
        console.print(f"[bold]📦 Processing:[/bold] {archive}")
        report = resolve_collisions(archive, config.main_identifier, output, config)
    except EngineError as e:
        _print_error(e)
        return 1

    _print_report(report)
    console.print(f"\n[bold green]✅ Verified output written to:[/bold green] {report.output}")
    return 0


def run_scan(args: argparse.Namespace) -> int:
    """Print what a resolve run would change, without writing anything.

    Returns:
        Exit code (0 when the plan is valid, 1 otherwise)
    """
    try:
        config = _load_config(args)
        _setup_logging(config)
        report = plan_collisions(args.archive, config.main_identifier, config)
    except EngineError as e:
        _print_error(e)
        return 1

    _print_report(report)
    return 0


def _add_common_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("archive", help="Path to the .ipa file or .xcarchive directory")
    parser.add_argument(
        "main_identifier",
        nargs="?",
        default=None,
        help="Main bundle identifier (default: $BUNDLE_ID or the config file)",
    )
    parser.add_argument("--config", default=None, help="Path to engine config (JSON or YAML)")
    parser.add_argument(
        "--mode",
        choices=[m.value for m in RewriteMode],
        default=None,
        help="Rewrite only collisions, or every nested component",
    )
    parser.add_argument(
        "--scope",
        choices=[s.value for s in ScanScope],
        default=None,
        help="Scan every metadata file, or only bundle directories",
    )
    parser.add_argument(
        "--subtree",
        action="append",
        default=None,
        help="Limit scanning to this app-relative subtree (repeatable)",
    )
    parser.add_argument("--log-level", default=None, help="Log level (default: INFO)")
    parser.add_argument("--json-logs", action="store_true", help="Emit structured JSON logs")


def build_arg_parser() -> argparse.ArgumentParser:
    """Build argument parser for CLI."""
    p = argparse.ArgumentParser(
        prog="bundlefix",
        description="bundlefix - resolve bundle identifier collisions in iOS packages",
    )
    sub = p.add_subparsers(dest="cmd", required=True)

    resolve = sub.add_parser("resolve", help="Resolve collisions and write a fixed copy")
    _add_common_arguments(resolve)
    resolve.add_argument(
        "output",
        nargs="?",
        default=None,
        help="Output path (default: <archive-name>_fixed.<ext> beside the input)",
    )
    resolve.add_argument(
        "--report-format",
        choices=[f.value for f in ReportFormat],
        default=None,
        help="Report file format (default: json)",
    )
    resolve.add_argument("--no-report", action="store_true", help="Do not write a report file")

    scan = sub.add_parser("scan", help="Show what resolve would change (dry run)")
    _add_common_arguments(scan)

    return p


def build_resolve_parser() -> argparse.ArgumentParser:
    """Build the parser for the positional ``resolve-collisions`` form."""
    p = argparse.ArgumentParser(
        prog="resolve-collisions",
        description="Give every bundle inside an iOS package a unique identifier",
    )
    p.add_argument("archive", help="Path to the .ipa file or .xcarchive directory")
    p.add_argument("main_identifier", help="Main bundle identifier")
    p.add_argument(
        "output",
        nargs="?",
        default=None,
        help="Output path (default: <archive-name>_fixed.<ext> beside the input)",
    )
    return p


def main(argv: list[str] | None = None) -> int:
    """Main entry point for the ``bundlefix`` command."""
    p = build_arg_parser()
    args = p.parse_args(argv)

    if args.cmd == "resolve":
        return run_resolve(args)
    if args.cmd == "scan":
        return run_scan(args)
    p.error(f"unknown command {args.cmd}")
    return 2


def resolve_collisions_main(argv: list[str] | None = None) -> int:
    """Main entry point for the ``resolve-collisions`` command."""
    args = build_resolve_parser().parse_args(argv)
    return run_resolve(args)


if __name__ == "__main__":
    sys.exit(main())
