# investigator/adapters/__init__.py
"""
Backend adapters for retention investigations.

Each adapter wraps one external system and answers with a record, None
(not found) or AdapterError:
- Directory: deleted accounts (Microsoft Graph)
- Mailbox: active/soft-deleted mailboxes and statistics (Exchange Online)
- Storage: personal sites per tenant (SharePoint Online admin)
"""

from investigator.adapters.base import (
    DeletedAccountRecord,
    DirectoryAdapter,
    MailboxAdapter,
    MailboxRecord,
    MailboxStatistics,
    SiteRecord,
    StorageAdapter,
)
from investigator.adapters.exchange_mailbox import ExchangeMailboxAdapter
from investigator.adapters.graph_directory import GraphDirectoryAdapter
from investigator.adapters.sharepoint_storage import SharePointStorageAdapter

__all__ = [
    "DeletedAccountRecord",
    "DirectoryAdapter",
    "MailboxAdapter",
    "MailboxRecord",
    "MailboxStatistics",
    "SiteRecord",
    "StorageAdapter",
    "ExchangeMailboxAdapter",
    "GraphDirectoryAdapter",
    "SharePointStorageAdapter",
]
