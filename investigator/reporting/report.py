# investigator/reporting/report.py
"""
HTML retention report.

Renders an Investigation and its Recommendation into one self-contained
HTML document with six sections: Account Status, Retention Status, Mailbox
Information, Deletion Timeline, Storage Information and Recommendation.
Absent values render as "N/A"; failed backends render as "Unavailable".
"""

import html
import logging
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

from investigator.constants import ReportDefaults, RetentionWindow
from investigator.errors import TimestampParseError
from investigator.models import (
    Decision,
    Finding,
    FindingStatus,
    Investigation,
    Recommendation,
)
from investigator.services.reconciliation import parse_timestamp

logger = logging.getLogger(__name__)

NA = ReportDefaults.NOT_AVAILABLE

STATUS_LABELS = {
    FindingStatus.ACTIVE: "Active",
    FindingStatus.SOFT_DELETED: "Soft-deleted",
    FindingStatus.DELETED: "Deleted",
    FindingStatus.NOT_FOUND: "Not found",
    FindingStatus.ERROR: ReportDefaults.UNAVAILABLE,
}


# -----------------------------------------------------------------------------
# Value formatting
# -----------------------------------------------------------------------------


def format_value(value: Any) -> str:
    """Render a scalar; None and empty strings become N/A."""
    if value is None:
        return NA
    if isinstance(value, bool):
        return "Yes" if value else "No"
    if isinstance(value, (list, tuple)):
        return ", ".join(str(v) for v in value) if value else "None"
    text = str(value).strip()
    return text if text else NA


def format_datetime(value: datetime | str | None) -> str:
    """Render a timestamp in UTC; unparseable strings are shown as reported."""
    if value is None:
        return NA
    try:
        return parse_timestamp(value).strftime("%Y-%m-%d %H:%M:%S UTC")
    except TimestampParseError:
        return format_value(value)


def format_bytes(size: int | None) -> str:
    """Render a byte count as a human-readable size."""
    if size is None:
        return NA
    value = float(size)
    for unit in ("B", "KB", "MB", "GB"):
        if value < 1024:
            return f"{value:.0f} {unit}" if unit == "B" else f"{value:.2f} {unit}"
        value /= 1024
    return f"{value:.2f} TB"


def status_label(finding: Finding | None) -> str:
    if finding is None:
        return NA
    return STATUS_LABELS[finding.status]


def report_filename(alias: str, generated_at: datetime) -> str:
    """RetentionReport_<ALIAS>_<yyyyMMdd_HHmmss>.html"""
    stamp = generated_at.strftime(ReportDefaults.FILENAME_TIMESTAMP_FORMAT)
    return f"{ReportDefaults.FILENAME_PREFIX}_{alias}_{stamp}.{ReportDefaults.FILE_EXTENSION}"


# -----------------------------------------------------------------------------
# Sections
# -----------------------------------------------------------------------------


def _rows(rows: list[tuple[str, str]]) -> str:
    return "".join(
        f'<tr><th>{html.escape(label)}</th><td>{html.escape(value)}</td></tr>'
        for label, value in rows
    )


def _section(title: str, rows: list[tuple[str, str]], note: str | None = None) -> str:
    note_html = f'<p class="note">{html.escape(note)}</p>' if note else ""
    return f"""
    <section>
        <h2>{html.escape(title)}</h2>
        {note_html}
        <table>{_rows(rows)}</table>
    </section>"""


def _error_note(finding: Finding | None) -> str | None:
    if finding is not None and finding.is_error:
        return f"Source unavailable: {finding.detail.get('error', 'unknown error')}"
    return None


def _account_section(finding: Finding | None) -> str:
    detail = finding.detail if finding else {}
    rows = [
        ("Status", status_label(finding)),
        ("Display Name", format_value(detail.get("display_name"))),
        ("Primary Address", format_value(detail.get("primary_address"))),
        ("Object ID", format_value(detail.get("object_id"))),
        ("Deleted", format_datetime(finding.deleted_at if finding else None)),
    ]
    return _section("Account Status", rows, _error_note(finding))


def _retention_section(finding: Finding | None) -> str:
    has_mailbox = finding is not None and finding.status in (FindingStatus.ACTIVE, FindingStatus.SOFT_DELETED)
    detail = finding.detail if has_mailbox else {}
    rows = [
        ("Litigation Hold", format_value(detail.get("litigation_hold"))),
        ("In-Place Holds", format_value(detail.get("in_place_holds"))),
        ("Retention Policy", format_value(detail.get("retention_policy"))),
    ]
    return _section("Retention Status", rows, _error_note(finding))


def _mailbox_section(finding: Finding | None) -> str:
    detail = finding.detail if finding else {}
    rows = [
        ("Status", status_label(finding)),
        ("Display Name", format_value(detail.get("display_name"))),
        ("Primary Address", format_value(detail.get("primary_address"))),
        ("Mailbox Type", format_value(detail.get("recipient_type"))),
        ("Soft-deleted", format_datetime(finding.deleted_at if finding else None)),
        ("Item Count", format_value(detail.get("item_count"))),
        ("Total Size", format_bytes(detail.get("total_size_bytes"))),
    ]
    note = _error_note(finding)
    if note is None and detail.get("statistics_error"):
        note = f"Mailbox statistics unavailable: {detail['statistics_error']}"
    return _section("Mailbox Information", rows, note)


def _timeline_section(investigation: Investigation) -> str:
    timeline = investigation.timeline
    source = investigation.deletion_source
    rows = [
        ("Deletion Date", format_datetime(investigation.canonical_deleted_at)),
        ("Deletion Source", source.label() if source else NA),
        ("Recovery Window", f"{RetentionWindow.RECOVERY_WINDOW_DAYS} days"),
        ("Days Since Deletion", format_value(timeline.days_since_deletion if timeline else None)),
        ("Days Remaining", format_value(timeline.days_remaining if timeline else None)),
        ("Expiration Date", format_datetime(timeline.expiration_date if timeline else None)),
    ]
    note = None
    if source is not None and timeline is None:
        note = f"Deletion date reported by {source.label()} could not be interpreted"
    elif timeline is not None and timeline.window_elapsed:
        note = "The recovery window has elapsed"
    return _section("Deletion Timeline", rows, note)


def _storage_section(finding: Finding | None) -> str:
    detail = finding.detail if finding else {}
    rows = [
        ("Status", status_label(finding)),
        ("Tenant", format_value(detail.get("tenant"))),
        ("Site URL", format_value(detail.get("url"))),
        ("Storage Used", format_bytes(detail.get("usage_bytes"))),
        ("Storage Quota", format_bytes(detail.get("quota_bytes"))),
        ("Tenants Checked", format_value(detail.get("tenants_checked"))),
    ]
    for tenant, error in (detail.get("tenant_errors") or {}).items():
        rows.append((f"Tenant {tenant}", f"{ReportDefaults.UNAVAILABLE}: {error}"))
    return _section("Storage Information", rows, _error_note(finding))


def _recommendation_section(investigation: Investigation, recommendation: Recommendation) -> str:
    rows = [
        ("Recommendation", recommendation.decision.value.upper()),
        ("Rationale", recommendation.rationale),
        ("Action", recommendation.action),
        ("Recoverable Data Found", format_value(investigation.has_data)),
    ]
    return _section("Recommendation", rows)


# -----------------------------------------------------------------------------
# Document
# -----------------------------------------------------------------------------


def render_report(
    investigation: Investigation,
    recommendation: Recommendation,
    generated_at: datetime,
) -> str:
    """
    Render the HTML report.

    Args:
        investigation: Completed investigation
        recommendation: Decision derived from the investigation
        generated_at: Report generation time

    Returns:
        HTML string
    """
    alias = html.escape(investigation.alias)
    banner_color = "#EF4444" if recommendation.decision == Decision.RETAIN else "#10B981"

    sections = "".join(
        [
            _account_section(investigation.directory),
            _retention_section(investigation.mailbox),
            _mailbox_section(investigation.mailbox),
            _timeline_section(investigation),
            _storage_section(investigation.storage),
            _recommendation_section(investigation, recommendation),
        ]
    )

    return f"""<!DOCTYPE html>
<html lang="en">
<head>
    <meta charset="utf-8">
    <title>Retention Report - {alias}</title>
    <style>
        body {{ font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', Roboto, sans-serif; color: #1F2937; margin: 32px; }}
        h1 {{ font-size: 22px; margin-bottom: 4px; }}
        h2 {{ font-size: 16px; border-bottom: 1px solid #E5E7EB; padding-bottom: 6px; margin-top: 28px; }}
        table {{ border-collapse: collapse; width: 100%; max-width: 760px; }}
        th {{ text-align: left; width: 220px; color: #6B7280; font-weight: 500; padding: 4px 8px 4px 0; }}
        td {{ padding: 4px 0; }}
        .note {{ background: #FEF3C7; border-left: 4px solid #F59E0B; padding: 8px 12px; font-size: 13px; }}
        .banner {{ border-left: 6px solid {banner_color}; padding: 12px 16px; background: #F9FAFB; max-width: 744px; }}
        .meta {{ color: #6B7280; font-size: 12px; }}
    </style>
</head>
<body>
    <h1>Retention Report: {alias}</h1>
    <p class="meta">Generated {generated_at.strftime("%Y-%m-%d %H:%M:%S %Z").strip()}</p>
    <div class="banner"><strong>{html.escape(recommendation.decision.value.upper())}</strong>
        - {html.escape(recommendation.rationale)}</div>
    {sections}
</body>
</html>
"""


def write_report(
    investigation: Investigation,
    recommendation: Recommendation,
    output_dir: str | Path = ".",
    generated_at: datetime | None = None,
) -> Path:
    """
    Render and write the report.

    Returns:
        Path of the written file
    """
    generated_at = generated_at or datetime.now(UTC)
    directory = Path(output_dir)
    directory.mkdir(parents=True, exist_ok=True)

    path = directory / report_filename(investigation.alias, generated_at)
    path.write_text(render_report(investigation, recommendation, generated_at), encoding="utf-8")

    logger.info(f"Report written to {path}", extra={"event": "report_written", "alias": investigation.alias})
    return path
