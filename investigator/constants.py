# investigator/constants.py
"""
Centralized constants organized by domain.

Tenant endpoints and the recovery window are compiled in rather than
configured: changing them changes what a report means.
"""

from dataclasses import dataclass


class RetentionWindow:
    """Recovery window applied from the canonical deletion timestamp."""

    RECOVERY_WINDOW_DAYS = 30           # Days deleted data stays recoverable


@dataclass(frozen=True)
class StorageTenant:
    """A file-storage tenant checked for the user's personal site."""

    name: str                           # Short label shown in reports
    tenant_id: str                      # Tenant ID used to acquire tokens
    admin_url: str                      # Tenant admin endpoint
    my_site_host: str                   # Host serving personal sites
    user_domain: str | None = None      # UPN suffix; None = configured USER_DOMAIN


# Priority order: the first tenant reporting a site wins.
STORAGE_TENANTS: tuple[StorageTenant, ...] = (
    StorageTenant(
        name="primary",
        tenant_id="contoso.onmicrosoft.com",
        admin_url="https://contoso-admin.sharepoint.com",
        my_site_host="contoso-my.sharepoint.com",
    ),
    StorageTenant(
        name="legacy",
        tenant_id="contosolegacy.onmicrosoft.com",
        admin_url="https://contosolegacy-admin.sharepoint.com",
        my_site_host="contosolegacy-my.sharepoint.com",
    ),
)


class ReportDefaults:
    """Report naming and rendering."""

    FILENAME_PREFIX = "RetentionReport"
    FILENAME_TIMESTAMP_FORMAT = "%Y%m%d_%H%M%S"
    FILE_EXTENSION = "html"
    NOT_AVAILABLE = "N/A"               # Rendered for every absent value
    UNAVAILABLE = "Unavailable"         # Rendered for a failed backend


class Endpoints:
    """Backend base URLs and token scopes."""

    GRAPH_API_BASE = "https://graph.microsoft.com/v1.0"
    GRAPH_SCOPE = "https://graph.microsoft.com/.default"
    EXCHANGE_ADMIN_BASE = "https://outlook.office365.com/adminapi/beta"
    EXCHANGE_SCOPE = "https://outlook.office365.com/.default"
