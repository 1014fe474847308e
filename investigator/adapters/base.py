# investigator/adapters/base.py
"""
Base classes and record types for backend adapters.

Every adapter call is single-attempt from the collector's point of view and
answers in one of three ways:
- a record (found)
- None (not found)
- AdapterError (the backend could not answer)
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime


@dataclass(frozen=True)
class DeletedAccountRecord:
    """A deleted identity from the directory's deleted-items container."""
    deleted_at: datetime | str | None
    primary_address: str | None = None
    display_name: str | None = None
    object_id: str | None = None


@dataclass(frozen=True)
class MailboxRecord:
    """An active or soft-deleted mailbox."""
    identity: str
    soft_deleted: bool
    display_name: str | None = None
    primary_address: str | None = None
    recipient_type: str | None = None
    litigation_hold: bool = False
    in_place_holds: tuple[str, ...] = field(default_factory=tuple)
    retention_policy: str | None = None
    soft_deleted_at: datetime | str | None = None


@dataclass(frozen=True)
class MailboxStatistics:
    """Usage statistics of a mailbox."""
    item_count: int
    total_size_bytes: int | None = None


@dataclass(frozen=True)
class SiteRecord:
    """A personal storage site."""
    url: str
    usage_bytes: int
    quota_bytes: int | None = None
    status: str | None = None


class DirectoryAdapter(ABC):
    """Looks up deleted accounts in the directory service."""

    name = "directory"

    @abstractmethod
    async def lookup_deleted_account(self, alias: str) -> DeletedAccountRecord | None:
        """Return the deleted account matching alias (case-insensitive), or None."""
        pass

    async def close(self) -> None:
        """Clean up resources (close HTTP client, etc.)."""
        pass


class MailboxAdapter(ABC):
    """Looks up mailboxes and their usage in the mailbox service."""

    name = "mailbox"

    @abstractmethod
    async def lookup_mailbox(self, alias: str, include_soft_deleted: bool = False) -> MailboxRecord | None:
        """
        Look up a mailbox by alias.

        Args:
            alias: Normalized alias
            include_soft_deleted: Search soft-deleted mailboxes instead of active ones

        Returns:
            MailboxRecord or None if no mailbox matches
        """
        pass

    @abstractmethod
    async def get_mailbox_statistics(self, mailbox: MailboxRecord) -> MailboxStatistics:
        """Return item count and size of a mailbox found by lookup_mailbox."""
        pass

    async def close(self) -> None:
        """Clean up resources (close HTTP client, etc.)."""
        pass


class StorageAdapter(ABC):
    """Looks up sites through one storage tenant's admin endpoint."""

    name = "storage"

    @abstractmethod
    async def lookup_site(self, admin_url: str, site_url: str) -> SiteRecord | None:
        """Return the site at site_url via the tenant admin endpoint, or None."""
        pass

    async def close(self) -> None:
        """Clean up resources (close HTTP client, etc.)."""
        pass
