# investigator/reporting/console.py
"""
Terminal recap of an investigation.
"""

from pathlib import Path

from investigator.models import Finding, FindingStatus, Investigation, Recommendation
from investigator.reporting.report import format_value, status_label


def _storage_found(finding: Finding | None) -> str:
    if finding is None or finding.is_error:
        return status_label(finding)
    return format_value(finding.status == FindingStatus.ACTIVE)


def summary_lines(investigation: Investigation, recommendation: Recommendation) -> list[str]:
    """One line per field: alias, account, mailbox, storage, data, recommendation."""
    return [
        f"Alias:           {investigation.alias}",
        f"Account Status:  {status_label(investigation.directory)}",
        f"Mailbox Status:  {status_label(investigation.mailbox)}",
        f"Storage Found:   {_storage_found(investigation.storage)}",
        f"Has Data:        {format_value(investigation.has_data)}",
        f"Recommendation:  {recommendation.decision.value.upper()} - {recommendation.action}",
    ]


def print_summary(
    investigation: Investigation,
    recommendation: Recommendation,
    report_path: Path | None = None,
) -> None:
    print("\n=== Retention Investigation ===\n")
    for line in summary_lines(investigation, recommendation):
        print(line)
    if report_path is not None:
        print(f"\nReport: {report_path}")
    print()
