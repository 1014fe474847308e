# investigator/reporting/__init__.py
"""
Report output: HTML document and console summary.
"""

from investigator.reporting.console import print_summary, summary_lines
from investigator.reporting.report import render_report, report_filename, write_report

__all__ = [
    "print_summary",
    "summary_lines",
    "render_report",
    "report_filename",
    "write_report",
]
