# investigator/adapters/exchange_mailbox.py
"""
Mailbox adapter backed by the Exchange Online admin REST endpoint.

Runs Get-Mailbox and Get-MailboxStatistics through InvokeCommand, the same
cmdlets an administrator would run in a remote shell, and normalizes the
results to MailboxRecord / MailboxStatistics.
"""

import logging
import re
from typing import Any

from investigator.adapters.auth import TokenProvider
from investigator.adapters.base import MailboxAdapter, MailboxRecord, MailboxStatistics
from investigator.adapters.http import BackendHttpClient
from investigator.constants import Endpoints
from investigator.errors import AdapterError

logger = logging.getLogger(__name__)

# Error text Exchange uses when the identity does not resolve
NOT_FOUND_MARKERS = (
    "ManagementObjectNotFoundException",
    "couldn't be found",
    "couldn't find",
)

# e.g. "1.5 GB (1,610,612,736 bytes)"
SIZE_BYTES_PATTERN = re.compile(r"\(([\d,]+)\s*bytes\)", re.IGNORECASE)


def parse_size_bytes(value: Any) -> int | None:
    """
    Convert an Exchange size value to bytes.

    Accepts plain integers and the "<n> GB (<bytes> bytes)" display form.
    Returns None when the value carries no byte count.
    """
    if value is None:
        return None
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, dict):
        return parse_size_bytes(value.get("Value"))
    text = str(value).strip()
    if text.isdigit():
        return int(text)
    match = SIZE_BYTES_PATTERN.search(text)
    if match:
        return int(match.group(1).replace(",", ""))
    return None


class ExchangeMailboxAdapter(MailboxAdapter):
    """Look up active and soft-deleted mailboxes and their statistics."""

    def __init__(
        self,
        tenant_id: str,
        tokens: TokenProvider,
        timeout: float = BackendHttpClient.DEFAULT_TIMEOUT,
        max_attempts: int = 3,
        http: BackendHttpClient | None = None,
    ):
        self.tenant_id = tenant_id
        self.http = http or BackendHttpClient(
            backend=self.name,
            tokens=tokens,
            scope=Endpoints.EXCHANGE_SCOPE,
            timeout=timeout,
            max_attempts=max_attempts,
        )

    async def _invoke(self, cmdlet: str, parameters: dict[str, Any]) -> list[dict[str, Any]]:
        """Run a cmdlet; an unresolved identity yields an empty list."""
        data = await self.http.request_json(
            "POST",
            f"{Endpoints.EXCHANGE_ADMIN_BASE}/{self.tenant_id}/InvokeCommand",
            tenant_id=self.tenant_id,
            json_body={"CmdletInput": {"CmdletName": cmdlet, "Parameters": parameters}},
            not_found_markers=NOT_FOUND_MARKERS,
        )
        if data is None:
            return []

        results = data.get("value")
        if not isinstance(results, list):
            raise AdapterError(self.name, f"{cmdlet} response has no 'value' list")
        return [r for r in results if isinstance(r, dict)]

    async def lookup_mailbox(self, alias: str, include_soft_deleted: bool = False) -> MailboxRecord | None:
        parameters: dict[str, Any] = {"Identity": alias}
        if include_soft_deleted:
            parameters["SoftDeletedMailbox"] = True

        results = await self._invoke("Get-Mailbox", parameters)
        if not results:
            return None

        if len(results) > 1:
            logger.warning(f"Get-Mailbox returned {len(results)} mailboxes for {alias}; using the first")
        return self._to_record(results[0], soft_deleted=include_soft_deleted)

    async def get_mailbox_statistics(self, mailbox: MailboxRecord) -> MailboxStatistics:
        parameters: dict[str, Any] = {"Identity": mailbox.identity}
        if mailbox.soft_deleted:
            parameters["IncludeSoftDeletedRecipients"] = True

        results = await self._invoke("Get-MailboxStatistics", parameters)
        if not results:
            raise AdapterError(self.name, f"no statistics returned for {mailbox.identity}")

        stats = results[0]
        item_count = stats.get("ItemCount")
        if item_count is None:
            raise AdapterError(self.name, "statistics response has no ItemCount")
        try:
            item_count = int(item_count)
        except (TypeError, ValueError):
            raise AdapterError(self.name, f"invalid ItemCount: {item_count!r}")

        return MailboxStatistics(
            item_count=item_count,
            total_size_bytes=parse_size_bytes(stats.get("TotalItemSize")),
        )

    def _to_record(self, mailbox: dict[str, Any], soft_deleted: bool) -> MailboxRecord:
        identity = mailbox.get("ExchangeGuid") or mailbox.get("Guid") or mailbox.get("Identity")
        if not identity:
            raise AdapterError(self.name, "mailbox has no identity")

        holds = mailbox.get("InPlaceHolds") or []
        if isinstance(holds, str):
            holds = [holds]

        return MailboxRecord(
            identity=str(identity),
            soft_deleted=soft_deleted,
            display_name=mailbox.get("DisplayName"),
            primary_address=mailbox.get("PrimarySmtpAddress"),
            recipient_type=mailbox.get("RecipientTypeDetails"),
            litigation_hold=bool(mailbox.get("LitigationHoldEnabled")),
            in_place_holds=tuple(str(h) for h in holds),
            retention_policy=mailbox.get("RetentionPolicy"),
            soft_deleted_at=mailbox.get("WhenSoftDeleted") if soft_deleted else None,
        )

    async def close(self) -> None:
        await self.http.close()
