# investigator/adapters/graph_directory.py
"""
Directory adapter backed by Microsoft Graph.

Deleted users stay in the directory's deleted-items container for the
recovery window; this adapter finds them by mail nickname (the alias).

API Documentation: https://learn.microsoft.com/graph/api/directory-deleteditems-list
"""

import logging
from typing import Any

from investigator.adapters.auth import TokenProvider
from investigator.adapters.base import DeletedAccountRecord, DirectoryAdapter
from investigator.adapters.http import BackendHttpClient
from investigator.constants import Endpoints
from investigator.errors import AdapterError

logger = logging.getLogger(__name__)

DELETED_USER_FIELDS = "id,displayName,userPrincipalName,mail,mailNickname,deletedDateTime"


class GraphDirectoryAdapter(DirectoryAdapter):
    """Look up deleted accounts in the Graph deleted-items container."""

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
            scope=Endpoints.GRAPH_SCOPE,
            timeout=timeout,
            max_attempts=max_attempts,
        )

    async def lookup_deleted_account(self, alias: str) -> DeletedAccountRecord | None:
        nickname = alias.replace("'", "''")
        data = await self.http.request_json(
            "GET",
            f"{Endpoints.GRAPH_API_BASE}/directory/deletedItems/microsoft.graph.user",
            tenant_id=self.tenant_id,
            params={
                "$filter": f"mailNickname eq '{nickname}'",
                "$select": DELETED_USER_FIELDS,
                "$count": "true",
            },
            headers={"ConsistencyLevel": "eventual"},
        )
        if data is None:
            return None

        users = data.get("value")
        if not isinstance(users, list):
            raise AdapterError(self.name, "deleted items response has no 'value' list")

        matches = [
            user for user in users
            if isinstance(user, dict) and (user.get("mailNickname") or "").casefold() == alias.casefold()
        ]
        if not matches:
            return None

        if len(matches) > 1:
            logger.info(f"{len(matches)} deleted accounts match {alias}; using the most recent deletion")

        # ISO-8601 strings in one format sort chronologically
        user = max(matches, key=lambda u: u.get("deletedDateTime") or "")
        return self._to_record(user)

    def _to_record(self, user: dict[str, Any]) -> DeletedAccountRecord:
        return DeletedAccountRecord(
            deleted_at=user.get("deletedDateTime"),
            primary_address=user.get("mail") or user.get("userPrincipalName"),
            display_name=user.get("displayName"),
            object_id=user.get("id"),
        )

    async def close(self) -> None:
        await self.http.close()
