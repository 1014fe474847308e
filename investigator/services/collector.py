# investigator/services/collector.py
"""
Evidence collection across the directory, mailbox and storage backends.

Each backend category is queried independently and always yields exactly
one Finding. A failing backend becomes an Error finding and never stops the
other categories from being queried. Nothing is retried here.

Ordered attempts:
- Mailbox: active lookup, then soft-deleted lookup only if the active
  lookup found nothing; statistics for whichever mailbox was found.
- Storage: tenants in priority order, stopping at the first site found.
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable, Sequence
from datetime import UTC, datetime
from typing import Any, TypeVar

from investigator.adapters.base import DirectoryAdapter, MailboxAdapter, StorageAdapter
from investigator.adapters.sharepoint_storage import personal_site_url
from investigator.constants import StorageTenant
from investigator.errors import AdapterError
from investigator.logging_config import log_backend_call, log_stage
from investigator.models import Finding, FindingSource, FindingStatus, Investigation, normalize_alias
from investigator.services.reconciliation import reconcile
from investigator.services.resilience import with_timeout

logger = logging.getLogger(__name__)

T = TypeVar("T")


class EvidenceCollector:
    """
    Query every backend for one alias and reconcile the findings.

    Usage:
        collector = EvidenceCollector(directory, mailbox, storage, user_domain="contoso.com")
        investigation = await collector.collect("jdoe")
    """

    DEFAULT_TIMEOUT = 30.0

    def __init__(
        self,
        directory: DirectoryAdapter,
        mailbox: MailboxAdapter,
        storage: Sequence[tuple[StorageTenant, StorageAdapter]],
        user_domain: str,
        timeout_seconds: float = DEFAULT_TIMEOUT,
        clock: Callable[[], datetime] | None = None,
    ):
        """
        Initialize the collector.

        Args:
            directory: Directory adapter
            mailbox: Mailbox adapter
            storage: (tenant, adapter) pairs in priority order
            user_domain: Default UPN suffix for personal site URLs
            timeout_seconds: Upper bound for each backend call
            clock: Source of "now" for the timeline (default: UTC now)
        """
        self.directory = directory
        self.mailbox = mailbox
        self.storage = list(storage)
        self.user_domain = user_domain
        self.timeout_seconds = timeout_seconds
        self.clock = clock or (lambda: datetime.now(UTC))

    async def collect(self, raw_alias: str | None) -> Investigation:
        """
        Investigate one alias.

        Raises:
            InputError: If the alias is empty; no backend is queried
        """
        alias = normalize_alias(raw_alias)

        with log_stage("collect"):
            directory, mailbox, storage = await asyncio.gather(
                self.collect_directory(alias),
                self.collect_mailbox(alias),
                self.collect_storage(alias),
            )

        with log_stage("reconcile"):
            return reconcile(alias, (directory, mailbox, storage), now=self.clock())

    async def _call(
        self,
        backend: str,
        operation: str,
        call: Callable[[], Awaitable[T]],
        tenant: str | None = None,
    ) -> T:
        """
        Run one backend call with the per-call timeout.

        Unexpected exceptions are logged with traceback and raised as
        AdapterError so one broken adapter cannot abort the investigation.
        """
        with log_backend_call(backend, operation, tenant=tenant) as log_call:
            try:
                result = await with_timeout(call(), self.timeout_seconds, backend)
            except AdapterError:
                raise
            except Exception as e:
                logger.exception(f"Unexpected failure in {backend}.{operation}")
                raise AdapterError(backend, f"unexpected error: {e}") from e
            log_call["status"] = "not_found" if result is None else "found"
            return result

    # -------------------------------------------------------------------------
    # Directory
    # -------------------------------------------------------------------------

    async def collect_directory(self, alias: str) -> Finding:
        source = FindingSource.directory()
        try:
            record = await self._call(
                self.directory.name,
                "lookup_deleted_account",
                lambda: self.directory.lookup_deleted_account(alias),
            )
        except AdapterError as e:
            return Finding.error(source, e.message)

        if record is None:
            return Finding(source=source, status=FindingStatus.NOT_FOUND)

        return Finding(
            source=source,
            status=FindingStatus.DELETED,
            deleted_at=record.deleted_at,
            data_present=False,
            detail={
                "primary_address": record.primary_address,
                "display_name": record.display_name,
                "object_id": record.object_id,
            },
        )

    # -------------------------------------------------------------------------
    # Mailbox
    # -------------------------------------------------------------------------

    async def collect_mailbox(self, alias: str) -> Finding:
        source = FindingSource.mailbox()
        backend = self.mailbox.name

        try:
            record = await self._call(
                backend,
                "lookup_mailbox",
                lambda: self.mailbox.lookup_mailbox(alias, include_soft_deleted=False),
            )
            if record is None:
                record = await self._call(
                    backend,
                    "lookup_soft_deleted_mailbox",
                    lambda: self.mailbox.lookup_mailbox(alias, include_soft_deleted=True),
                )
        except AdapterError as e:
            return Finding.error(source, e.message)

        if record is None:
            return Finding(source=source, status=FindingStatus.NOT_FOUND)

        detail: dict[str, Any] = {
            "display_name": record.display_name,
            "primary_address": record.primary_address,
            "recipient_type": record.recipient_type,
            "litigation_hold": record.litigation_hold,
            "in_place_holds": list(record.in_place_holds),
            "retention_policy": record.retention_policy,
            "item_count": None,
            "total_size_bytes": None,
        }

        data_present = False
        try:
            stats = await self._call(
                backend,
                "get_mailbox_statistics",
                lambda: self.mailbox.get_mailbox_statistics(record),
            )
        except AdapterError as e:
            # Statistics failure only costs the data flag, never the status
            detail["statistics_error"] = e.message
        else:
            detail["item_count"] = stats.item_count
            detail["total_size_bytes"] = stats.total_size_bytes
            data_present = stats.item_count > 0 or (stats.total_size_bytes or 0) > 0

        if record.soft_deleted:
            return Finding(
                source=source,
                status=FindingStatus.SOFT_DELETED,
                deleted_at=record.soft_deleted_at,
                data_present=data_present,
                detail=detail,
            )
        return Finding(
            source=source,
            status=FindingStatus.ACTIVE,
            data_present=data_present,
            detail=detail,
        )

    # -------------------------------------------------------------------------
    # Storage
    # -------------------------------------------------------------------------

    async def collect_storage(self, alias: str) -> Finding:
        tenants_checked = 0
        tenant_errors: dict[str, str] = {}

        for tenant, adapter in self.storage:
            tenants_checked += 1
            site_url = personal_site_url(tenant.my_site_host, alias, tenant.user_domain or self.user_domain)
            try:
                site = await self._call(
                    adapter.name,
                    "lookup_site",
                    lambda: adapter.lookup_site(tenant.admin_url, site_url),
                    tenant=tenant.name,
                )
            except AdapterError as e:
                tenant_errors[tenant.name] = e.message
                continue

            if site is not None:
                return Finding(
                    source=FindingSource.storage(tenant.name),
                    status=FindingStatus.ACTIVE,
                    data_present=site.usage_bytes > 0,
                    detail={
                        "tenant": tenant.name,
                        "url": site.url,
                        "usage_bytes": site.usage_bytes,
                        "quota_bytes": site.quota_bytes,
                        "site_status": site.status,
                        "tenants_checked": tenants_checked,
                        "tenant_errors": tenant_errors,
                    },
                )

        summary = f"checked {tenants_checked} tenants"
        if tenants_checked and len(tenant_errors) == tenants_checked:
            return Finding.error(
                FindingSource.storage(),
                f"all {tenants_checked} tenants failed",
                tenants_checked=tenants_checked,
                tenant_errors=tenant_errors,
            )

        return Finding(
            source=FindingSource.storage(),
            status=FindingStatus.NOT_FOUND,
            detail={
                "summary": summary,
                "tenants_checked": tenants_checked,
                "tenant_errors": tenant_errors,
            },
        )
