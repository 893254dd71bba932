from __future__ import annotations

import asyncio
import logging
from typing import Any, Dict, Optional

import httpx

logger = logging.getLogger(__name__)


PING_QUERY = "{ actor { user { email } } }"


class NerdGraphUnavailableError(RuntimeError):
    """NerdGraph could not answer a query the caller cannot do without."""


# PUBLIC_INTERFACE
def dig(obj: Any, *path: str) -> Any:
    """Walk nested dicts by key; returns None as soon as a step is missing or not a dict."""
    cur = obj
    for key in path:
        if not isinstance(cur, dict):
            return None
        cur = cur.get(key)
    return cur


class NerdGraphClient:
    """
    Client for the NerdGraph GraphQL endpoint.

    - Keeps one lazily created httpx.AsyncClient for connection reuse.
    - execute() never raises for remote problems: any failure is reported as None.
    """

    def __init__(
        self,
        url: str,
        api_key: str,
        timeout_sec: float = 12.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self._url = url
        self._api_key = api_key
        self._timeout_sec = float(timeout_sec)
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    @property
    def timeout_sec(self) -> float:
        return self._timeout_sec

    def _http(self) -> httpx.AsyncClient:
        """Return the shared AsyncClient, creating it on first use."""
        if self._client is None:
            self._client = httpx.AsyncClient(
                timeout=httpx.Timeout(self._timeout_sec),
                transport=self._transport,
                headers={"Content-Type": "application/json", "API-Key": self._api_key},
            )
        return self._client

    async def _post(self, payload: Dict[str, Any]) -> httpx.Response:
        return await self._http().post(self._url, json=payload)

    # PUBLIC_INTERFACE
    async def execute(self, query: str, variables: Optional[Dict[str, Any]] = None) -> Optional[Dict[str, Any]]:
        """
        Run one GraphQL query and return the parsed envelope, or None on failure.

        Failure covers timeouts (the in-flight request is cancelled), transport errors,
        non-2xx statuses, bodies that are not a JSON object, and envelopes carrying
        errors without any data. Errors next to non-null data are logged and the
        partial envelope is returned.
        """
        payload: Dict[str, Any] = {"query": query}
        if variables:
            payload["variables"] = variables

        try:
            response = await asyncio.wait_for(self._post(payload), timeout=self._timeout_sec)
        except asyncio.TimeoutError:
            logger.warning("NerdGraph call timed out after %ss", self._timeout_sec)
            return None
        except httpx.HTTPError as exc:
            logger.warning("NerdGraph transport error: %s", exc)
            return None

        if response.status_code >= 400:
            logger.warning("NerdGraph returned HTTP %s", response.status_code)
            return None

        try:
            body = response.json()
        except ValueError:
            logger.warning("NerdGraph returned a non-JSON body (status=%s)", response.status_code)
            return None

        if not isinstance(body, dict):
            logger.warning("NerdGraph returned an unexpected body type: %s", type(body).__name__)
            return None

        errors = body.get("errors")
        if errors:
            if body.get("data") is None:
                logger.warning("NerdGraph query failed: %s", _error_messages(errors))
                return None
            logger.warning("NerdGraph query returned partial data: %s", _error_messages(errors))

        return body

    # PUBLIC_INTERFACE
    async def ping(self) -> bool:
        """Run a trivial query to validate connectivity and credentials."""
        body = await self.execute(PING_QUERY)
        return dig(body, "data", "actor") is not None

    async def close(self) -> None:
        """Close the underlying HTTP client."""
        if self._client is None:
            return
        try:
            await self._client.aclose()
        except Exception:
            logger.exception("Error closing NerdGraph HTTP client")
        self._client = None


def _error_messages(errors: Any) -> str:
    if not isinstance(errors, list):
        return str(errors)
    return "; ".join(str(e.get("message", e)) if isinstance(e, dict) else str(e) for e in errors)
