# investigator/adapters/http.py
"""
HTTP plumbing shared by the backend adapters.

Translates httpx transport failures, HTTP error statuses and malformed
payloads into AdapterError so nothing backend-specific leaks past an adapter.
"""

import logging
from typing import Any

import httpx

from investigator.adapters.auth import TokenProvider
from investigator.errors import AdapterError, BackendThrottledError
from investigator.services.resilience import with_retry

logger = logging.getLogger(__name__)

THROTTLE_STATUSES = {429, 503}


class BackendHttpClient:
    """
    Authenticated JSON client for one backend.

    Throttled requests (429/503) are retried with backoff up to max_attempts;
    every other failure is raised immediately as AdapterError.
    """

    DEFAULT_TIMEOUT = 30.0

    def __init__(
        self,
        backend: str,
        tokens: TokenProvider,
        scope: str,
        timeout: float = DEFAULT_TIMEOUT,
        max_attempts: int = 3,
        client: httpx.AsyncClient | None = None,
    ):
        self.backend = backend
        self.tokens = tokens
        self.scope = scope
        self.max_attempts = max_attempts
        self.client = client or httpx.AsyncClient(
            timeout=timeout,
            headers={"Accept": "application/json"},
        )

    async def request_json(
        self,
        method: str,
        url: str,
        tenant_id: str,
        params: dict[str, Any] | None = None,
        json_body: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
        not_found_statuses: tuple[int, ...] = (404,),
        not_found_markers: tuple[str, ...] = (),
    ) -> dict[str, Any] | None:
        """
        Send a request and return the decoded JSON body.

        Args:
            not_found_statuses: Statuses that mean "no such object"
            not_found_markers: Case-insensitive substrings of an error body
                that mean "no such object" regardless of status

        Returns:
            Decoded JSON object, or None when the backend reports the object
            does not exist

        Raises:
            AdapterError: On transport failure, error status or non-JSON body
        """
        send = with_retry(
            max_attempts=self.max_attempts,
            min_wait=1.0,
            max_wait=10.0,
            retry_exceptions=(BackendThrottledError,),
        )(self._send)
        response = await send(method, url, tenant_id, params, json_body, headers)

        if response.status_code in not_found_statuses:
            return None

        if response.status_code >= 400:
            body = response.text.lower()
            if any(marker.lower() in body for marker in not_found_markers):
                return None
            logger.debug(f"{self.backend} error body: {response.text[:500]}")
            raise AdapterError(self.backend, f"HTTP {response.status_code} from {url}")

        try:
            data = response.json()
        except ValueError:
            raise AdapterError(self.backend, f"non-JSON response from {url}")
        if not isinstance(data, dict):
            raise AdapterError(self.backend, f"unexpected response shape from {url}")
        return data

    async def _send(
        self,
        method: str,
        url: str,
        tenant_id: str,
        params: dict[str, Any] | None,
        json_body: dict[str, Any] | None,
        headers: dict[str, str] | None,
    ) -> httpx.Response:
        token = await self.tokens.get_token(tenant_id, self.scope, backend=self.backend)
        request_headers = {"Authorization": f"Bearer {token}"}
        if headers:
            request_headers.update(headers)

        try:
            response = await self.client.request(
                method,
                url,
                params=params,
                json=json_body,
                headers=request_headers,
            )
        except httpx.TimeoutException as e:
            raise AdapterError(self.backend, f"request to {url} timed out: {e}")
        except httpx.HTTPError as e:
            raise AdapterError(self.backend, f"request to {url} failed: {e}")

        if response.status_code in THROTTLE_STATUSES:
            raise BackendThrottledError(self.backend, f"throttled with HTTP {response.status_code}")

        return response

    async def close(self) -> None:
        """Close the HTTP client."""
        await self.client.aclose()
