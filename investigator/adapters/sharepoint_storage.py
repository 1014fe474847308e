# investigator/adapters/sharepoint_storage.py
"""
Storage adapter backed by a SharePoint Online tenant admin endpoint.

One adapter instance serves one tenant. Personal sites live under
https://<tenant>-my.sharepoint.com/personal/<alias>_<domain_with_underscores>.
"""

import logging
from typing import Any

from investigator.adapters.auth import TokenProvider
from investigator.adapters.base import SiteRecord, StorageAdapter
from investigator.adapters.http import BackendHttpClient
from investigator.constants import StorageTenant
from investigator.errors import AdapterError

logger = logging.getLogger(__name__)

BYTES_PER_MB = 1024 * 1024

NOT_FOUND_MARKERS = (
    "Cannot get site",
    "SPNoSiteException",
    "Cannot find site",
)


def personal_site_url(my_site_host: str, alias: str, domain: str) -> str:
    """Build the personal site URL for alias@domain."""
    owner = f"{alias}_{domain}".lower().replace(".", "_").replace("@", "_")
    return f"https://{my_site_host}/personal/{owner}"


class SharePointStorageAdapter(StorageAdapter):
    """Look up personal sites through one tenant's admin endpoint."""

    def __init__(
        self,
        tenant: StorageTenant,
        tokens: TokenProvider,
        timeout: float = BackendHttpClient.DEFAULT_TIMEOUT,
        max_attempts: int = 3,
        http: BackendHttpClient | None = None,
    ):
        self.tenant = tenant
        self.http = http or BackendHttpClient(
            backend=self.name,
            tokens=tokens,
            scope=f"{tenant.admin_url}/.default",
            timeout=timeout,
            max_attempts=max_attempts,
        )

    async def lookup_site(self, admin_url: str, site_url: str) -> SiteRecord | None:
        data = await self.http.request_json(
            "POST",
            f"{admin_url.rstrip('/')}/_api/SPO.Tenant/GetSitePropertiesByUrl",
            tenant_id=self.tenant.tenant_id,
            json_body={"url": site_url, "includeDetail": True},
            headers={"Accept": "application/json;odata=nometadata"},
            not_found_markers=NOT_FOUND_MARKERS,
        )
        if data is None or not data.get("Url"):
            return None
        return self._to_record(data)

    def _to_record(self, site: dict[str, Any]) -> SiteRecord:
        usage_mb = site.get("StorageUsage")
        if usage_mb is None:
            raise AdapterError(self.name, f"site {site.get('Url')} has no StorageUsage")
        try:
            usage_bytes = int(float(usage_mb) * BYTES_PER_MB)
        except (TypeError, ValueError):
            raise AdapterError(self.name, f"invalid StorageUsage: {usage_mb!r}")

        quota_mb = site.get("StorageMaximumLevel")
        try:
            quota_bytes = int(float(quota_mb) * BYTES_PER_MB) if quota_mb is not None else None
        except (TypeError, ValueError):
            logger.warning(f"Ignoring invalid StorageMaximumLevel {quota_mb!r} for {site.get('Url')}")
            quota_bytes = None

        return SiteRecord(
            url=site["Url"],
            usage_bytes=usage_bytes,
            quota_bytes=quota_bytes,
            status=site.get("Status"),
        )

    async def close(self) -> None:
        await self.http.close()
