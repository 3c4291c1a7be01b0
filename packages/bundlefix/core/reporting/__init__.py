"""Run reports."""

from bundlefix.core.reporting.models import NodeReport, RunReport, build_report
from bundlefix.core.reporting.writer import report_path_for, write_report

__all__ = [
    "NodeReport",
    "RunReport",
    "build_report",
    "report_path_for",
    "write_report",
]
