# investigator/adapters/auth.py
"""
Access tokens for backend APIs.

Wraps azure-identity client-secret credentials and caches one token per
(tenant, scope) until shortly before it expires.
"""

import asyncio
import logging
from datetime import UTC, datetime, timedelta

from azure.core.exceptions import ClientAuthenticationError
from azure.identity import ClientSecretCredential

from investigator.errors import AdapterError

logger = logging.getLogger(__name__)

# Refresh tokens this long before they expire
TOKEN_REFRESH_MARGIN = timedelta(minutes=5)


class TokenProvider:
    """
    Client-credential token source shared by the adapters.

    Usage:
        tokens = TokenProvider(client_id, client_secret)
        token = await tokens.get_token("contoso.onmicrosoft.com", Endpoints.GRAPH_SCOPE)
    """

    def __init__(self, client_id: str, client_secret: str):
        self.client_id = client_id
        self.client_secret = client_secret
        self._credentials: dict[str, ClientSecretCredential] = {}
        self._tokens: dict[tuple[str, str], tuple[str, datetime]] = {}

    def _credential(self, tenant_id: str) -> ClientSecretCredential:
        if tenant_id not in self._credentials:
            self._credentials[tenant_id] = ClientSecretCredential(
                tenant_id=tenant_id,
                client_id=self.client_id,
                client_secret=self.client_secret,
            )
        return self._credentials[tenant_id]

    async def get_token(self, tenant_id: str, scope: str, backend: str = "auth") -> str:
        """
        Get an access token, reusing a cached one while it is still valid.

        The credential call blocks on the identity endpoint, so it runs in the
        default executor and a caller's timeout can still cancel the wait.

        Raises:
            AdapterError: If the token cannot be acquired
        """
        cached = self._tokens.get((tenant_id, scope))
        if cached and datetime.now(UTC) < cached[1] - TOKEN_REFRESH_MARGIN:
            return cached[0]

        credential = self._credential(tenant_id)
        loop = asyncio.get_running_loop()
        try:
            token = await loop.run_in_executor(None, lambda: credential.get_token(scope))
        except ClientAuthenticationError as e:
            raise AdapterError(backend, f"authentication failed for tenant {tenant_id}: {e.message}")

        expires_at = datetime.fromtimestamp(token.expires_on, tz=UTC)
        self._tokens[(tenant_id, scope)] = (token.token, expires_at)
        logger.debug(f"Acquired token for {tenant_id} ({scope}), expires {expires_at.isoformat()}")
        return token.token

    def close(self) -> None:
        for credential in self._credentials.values():
            credential.close()
        self._credentials.clear()
        self._tokens.clear()
