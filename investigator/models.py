# investigator/models.py
"""
Data types for retention investigations.

Findings are write-once values, one per backend category. An Investigation
is assembled once from the finalized findings and never mutated.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any

from investigator.errors import InputError


class FindingStatus(str, Enum):
    """Outcome of querying one backend."""
    ACTIVE = "active"
    SOFT_DELETED = "soft_deleted"
    DELETED = "deleted"
    NOT_FOUND = "not_found"
    ERROR = "error"


class SourceKind(str, Enum):
    """Backend category a finding came from."""
    DIRECTORY = "directory"
    MAILBOX = "mailbox"
    STORAGE = "storage"


class Decision(str, Enum):
    """Binary retain/purge outcome."""
    RETAIN = "retain"
    PURGE = "purge"


def normalize_alias(raw: str | None) -> str:
    """
    Trim and upper-case an alias.

    Raises:
        InputError: If the alias is empty or only whitespace
    """
    alias = (raw or "").strip().upper()
    if not alias:
        raise InputError("An alias is required")
    return alias


@dataclass(frozen=True)
class FindingSource:
    """
    Tag identifying the backend behind a finding.

    tenant is set only for storage findings that came from a specific tenant.
    """
    kind: SourceKind
    tenant: str | None = None

    @classmethod
    def directory(cls) -> "FindingSource":
        return cls(SourceKind.DIRECTORY)

    @classmethod
    def mailbox(cls) -> "FindingSource":
        return cls(SourceKind.MAILBOX)

    @classmethod
    def storage(cls, tenant: str | None = None) -> "FindingSource":
        return cls(SourceKind.STORAGE, tenant)

    def label(self) -> str:
        if self.tenant:
            return f"{self.kind.value}({self.tenant})"
        return self.kind.value


@dataclass(frozen=True)
class Finding:
    """
    Normalized result of one backend query.

    Attributes:
        source: Which backend produced this finding
        status: Outcome of the query
        deleted_at: Deletion timestamp as reported by the backend (datetime
            or raw string); only present for DELETED / SOFT_DELETED
        data_present: Backend reports a non-zero quantity of recoverable content
        detail: Backend-specific attributes used only for reporting
    """
    source: FindingSource
    status: FindingStatus
    deleted_at: datetime | str | None = None
    data_present: bool = False
    detail: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def error(cls, source: FindingSource, message: str, **detail: Any) -> "Finding":
        """Finding for a backend that failed; never carries data."""
        return cls(
            source=source,
            status=FindingStatus.ERROR,
            data_present=False,
            detail={"error": message, **detail},
        )

    @property
    def is_error(self) -> bool:
        return self.status == FindingStatus.ERROR


@dataclass(frozen=True)
class Timeline:
    """Recovery timeline derived from the canonical deletion timestamp."""
    days_since_deletion: int
    days_remaining: int
    expiration_date: datetime

    @property
    def window_elapsed(self) -> bool:
        return self.days_remaining < 0


@dataclass(frozen=True)
class Investigation:
    """
    Merged result for one alias.

    Findings are ordered directory, mailbox, storage. timeline is present
    if and only if canonical_deleted_at is set.
    """
    alias: str
    findings: tuple[Finding, ...]
    canonical_deleted_at: datetime | None = None
    deletion_source: FindingSource | None = None
    has_data: bool = False
    timeline: Timeline | None = None

    def finding_for(self, kind: SourceKind) -> Finding | None:
        """Return the finding for a backend category, if present."""
        for finding in self.findings:
            if finding.source.kind == kind:
                return finding
        return None

    @property
    def directory(self) -> Finding | None:
        return self.finding_for(SourceKind.DIRECTORY)

    @property
    def mailbox(self) -> Finding | None:
        return self.finding_for(SourceKind.MAILBOX)

    @property
    def storage(self) -> Finding | None:
        return self.finding_for(SourceKind.STORAGE)


@dataclass(frozen=True)
class Recommendation:
    """Retain/purge decision with operator-facing wording."""
    decision: Decision
    rationale: str
    action: str
