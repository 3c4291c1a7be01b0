"""Report serialisation."""

from __future__ import annotations

import logging
from pathlib import Path

import yaml

from bundlefix.core.config.models import ReportFormat
from bundlefix.core.reporting.models import RunReport

logger = logging.getLogger(__name__)


def report_path_for(output: Path, fmt: ReportFormat = ReportFormat.JSON) -> Path:
    """Report location next to an output artifact.

    Example:
        >>> report_path_for(Path("build/App_fixed.ipa"))
        PosixPath('build/App_fixed.report.json')
    """
    return output.with_name(f"{output.stem}.report.{fmt.value}")


def write_report(report: RunReport, path: Path, fmt: ReportFormat = ReportFormat.JSON) -> Path:
    """Write a report as JSON or YAML.

    Args:
        report: Report to write
        path: Destination file
        fmt: Output format

    Returns:
        The destination path
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    if fmt is ReportFormat.YAML:
        content = yaml.safe_dump(report.model_dump(mode="json"), sort_keys=False)
    else:
        content = report.model_dump_json(indent=2) + "\n"
    path.write_text(content, encoding="utf-8")
    logger.debug(f"Wrote report to {path}")
    return path
