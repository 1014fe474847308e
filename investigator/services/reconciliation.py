# investigator/services/reconciliation.py
"""
Reconciliation of per-backend findings into one Investigation.

Deletion-timestamp precedence:
1. The directory finding's deletion timestamp, when it carries one.
2. Otherwise the mailbox finding's soft-delete timestamp, when the mailbox
   is soft-deleted and carries one.
3. Otherwise no canonical deletion timestamp.

The directory rule wins even when the mailbox timestamp is earlier, and an
unparseable directory timestamp does not fall back to the mailbox: it only
suppresses the timeline.
"""

import logging
import re
from collections.abc import Iterable
from datetime import UTC, datetime, timedelta

from investigator.constants import RetentionWindow
from investigator.errors import TimestampParseError
from investigator.models import (
    Finding,
    FindingSource,
    FindingStatus,
    Investigation,
    SourceKind,
    Timeline,
)

logger = logging.getLogger(__name__)

# Exchange serialized dates: /Date(1700000000000)/ or /Date(1700000000000+0000)/
MS_DATE_PATTERN = re.compile(r"^/Date\((-?\d+)(?:[+-]\d{4})?\)/$")

FALLBACK_FORMATS = (
    "%m/%d/%Y %I:%M:%S %p",
    "%m/%d/%Y %H:%M:%S",
    "%m/%d/%Y",
)


def parse_timestamp(value: datetime | str | None) -> datetime:
    """
    Parse a backend deletion timestamp into an aware UTC datetime.

    Accepts datetimes, ISO-8601 strings, Exchange /Date(ms)/ values and US
    M/D/YYYY strings. Naive values are taken as UTC.

    Raises:
        TimestampParseError: If the value cannot be interpreted
    """
    if isinstance(value, datetime):
        return _as_utc(value)
    if not isinstance(value, str) or not value.strip():
        raise TimestampParseError(value)

    text = value.strip()

    match = MS_DATE_PATTERN.match(text)
    if match:
        try:
            return datetime.fromtimestamp(int(match.group(1)) / 1000, tz=UTC)
        except (ValueError, OverflowError, OSError):
            raise TimestampParseError(value)

    try:
        return _as_utc(datetime.fromisoformat(text.replace("Z", "+00:00")))
    except (ValueError, OverflowError):
        pass

    for fmt in FALLBACK_FORMATS:
        try:
            return _as_utc(datetime.strptime(text, fmt))
        except (ValueError, OverflowError):
            continue

    raise TimestampParseError(value)


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


def resolve_deletion_source(findings: Iterable[Finding]) -> tuple[FindingSource, datetime | str] | None:
    """
    Pick the finding whose deletion timestamp is canonical.

    Returns:
        (source, raw timestamp) or None when no finding qualifies
    """
    directory: Finding | None = None
    mailbox: Finding | None = None
    for finding in findings:
        if finding.source.kind == SourceKind.DIRECTORY and directory is None:
            directory = finding
        elif finding.source.kind == SourceKind.MAILBOX and mailbox is None:
            mailbox = finding

    if directory is not None and directory.deleted_at is not None:
        return directory.source, directory.deleted_at

    if (
        mailbox is not None
        and mailbox.status == FindingStatus.SOFT_DELETED
        and mailbox.deleted_at is not None
    ):
        return mailbox.source, mailbox.deleted_at

    return None


def aggregate_has_data(findings: Iterable[Finding]) -> bool:
    """True if any finding reports recoverable data, whatever its status."""
    return any(finding.data_present for finding in findings)


def compute_timeline(
    deleted_at: datetime,
    now: datetime,
    window_days: int = RetentionWindow.RECOVERY_WINDOW_DAYS,
) -> Timeline:
    """
    Compute the recovery timeline for a deletion.

    Whole elapsed days are floored. days_remaining goes negative once the
    window has elapsed.
    """
    days_since = (_as_utc(now) - _as_utc(deleted_at)).days
    return Timeline(
        days_since_deletion=days_since,
        days_remaining=window_days - days_since,
        expiration_date=_as_utc(deleted_at) + timedelta(days=window_days),
    )


def reconcile(alias: str, findings: Iterable[Finding], now: datetime | None = None) -> Investigation:
    """
    Merge finalized findings into an Investigation.

    Args:
        alias: Normalized alias
        findings: One finding per backend category, in report order
        now: Reference time for the timeline (default: current UTC time)

    Returns:
        Immutable Investigation
    """
    findings = tuple(findings)
    now = now or datetime.now(UTC)

    has_data = aggregate_has_data(findings)
    resolved = resolve_deletion_source(findings)

    canonical_deleted_at: datetime | None = None
    deletion_source: FindingSource | None = None
    timeline: Timeline | None = None

    if resolved is not None:
        deletion_source, raw_deleted_at = resolved
        try:
            canonical_deleted_at = parse_timestamp(raw_deleted_at)
            timeline = compute_timeline(canonical_deleted_at, now)
        except (TimestampParseError, OverflowError) as e:
            logger.warning(
                f"Deletion timestamp from {deletion_source.label()} is unusable, timeline omitted: {e}",
                extra={"event": "timestamp_parse_failed", "alias": alias},
            )
            canonical_deleted_at = None
            timeline = None

    logger.info(
        f"Reconciled {len(findings)} findings for {alias}: has_data={has_data}, "
        f"deleted_at={canonical_deleted_at.isoformat() if canonical_deleted_at else None}",
        extra={"event": "reconciled", "alias": alias},
    )

    return Investigation(
        alias=alias,
        findings=findings,
        canonical_deleted_at=canonical_deleted_at,
        deletion_source=deletion_source,
        has_data=has_data,
        timeline=timeline,
    )
