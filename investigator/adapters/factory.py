# investigator/adapters/factory.py
"""
Factory for the live backend adapter set.
"""

import logging
from dataclasses import dataclass

from investigator.adapters.auth import TokenProvider
from investigator.adapters.base import DirectoryAdapter, MailboxAdapter, StorageAdapter
from investigator.adapters.exchange_mailbox import ExchangeMailboxAdapter
from investigator.adapters.graph_directory import GraphDirectoryAdapter
from investigator.adapters.sharepoint_storage import SharePointStorageAdapter
from investigator.config import Settings
from investigator.constants import STORAGE_TENANTS, StorageTenant

logger = logging.getLogger(__name__)


@dataclass
class AdapterSet:
    """Adapters for one investigation run; storage tenants in priority order."""

    directory: DirectoryAdapter
    mailbox: MailboxAdapter
    storage: list[tuple[StorageTenant, StorageAdapter]]
    tokens: TokenProvider | None = None

    async def close(self) -> None:
        """Close every adapter, logging rather than raising close failures."""
        adapters = [self.directory, self.mailbox, *(adapter for _, adapter in self.storage)]
        for adapter in adapters:
            try:
                await adapter.close()
            except Exception as e:
                logger.warning(f"Failed to close {adapter.name} adapter: {e}")
        if self.tokens is not None:
            self.tokens.close()


def build_adapters(
    settings: Settings,
    tenants: tuple[StorageTenant, ...] = STORAGE_TENANTS,
) -> AdapterSet:
    """
    Create the live adapters from settings.

    Args:
        settings: Validated application settings
        tenants: Storage tenants in priority order

    Returns:
        AdapterSet sharing one token provider
    """
    tokens = TokenProvider(settings.CLIENT_ID, settings.CLIENT_SECRET)
    common = {
        "tokens": tokens,
        "timeout": settings.ADAPTER_TIMEOUT_SECONDS,
        "max_attempts": settings.ADAPTER_MAX_ATTEMPTS,
    }

    adapters = AdapterSet(
        directory=GraphDirectoryAdapter(settings.DIRECTORY_TENANT_ID, **common),
        mailbox=ExchangeMailboxAdapter(settings.DIRECTORY_TENANT_ID, **common),
        storage=[(tenant, SharePointStorageAdapter(tenant, **common)) for tenant in tenants],
        tokens=tokens,
    )
    logger.info(f"Adapters initialized: directory, mailbox, {len(tenants)} storage tenant(s)")
    return adapters
