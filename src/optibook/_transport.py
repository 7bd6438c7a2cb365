"""JSON-over-HTTP transport for the console's data API."""

from __future__ import annotations

import json
import logging
from collections.abc import Mapping
from typing import Any, Protocol

import aiohttp

from optibook.config import ApiConfig
from optibook.exceptions import (
    OptibookApiError,
    OptibookAuthenticationError,
    OptibookError,
    OptibookTransportError,
)

_logger = logging.getLogger(__name__)


class DataApi(Protocol):
    """Structural transport interface used by the domain adapters."""

    async def request(
        self,
        method: str,
        endpoint: str,
        *,
        json_body: Mapping[str, Any] | None = None,
    ) -> dict[str, Any]:
        ...


def _error_text(body: Any) -> str:
    if isinstance(body, dict):
        for key in ("error", "message"):
            value = body.get(key)
            if isinstance(value, str) and value:
                return value
    return ""


class HttpDataApi:
    """aiohttp implementation of :class:`DataApi`.

    Usage::

        async with HttpDataApi(ApiConfig.from_env()) as api:
            payload = await api.request("GET", "/api/bookings")
    """

    def __init__(
        self,
        config: ApiConfig,
        *,
        session: aiohttp.ClientSession | None = None,
    ) -> None:
        self._config = config
        self._external_session = session is not None
        self._http = session

    async def __aenter__(self) -> HttpDataApi:
        if self._http is None:
            self._http = aiohttp.ClientSession(timeout=aiohttp.ClientTimeout(total=self._config.timeout))
        return self

    async def __aexit__(self, *exc: Any) -> None:
        if not self._external_session and self._http is not None:
            await self._http.close()
            self._http = None

    def _require_session(self) -> aiohttp.ClientSession:
        if self._http is None:
            raise OptibookError("Transport not initialized. Use 'async with HttpDataApi(...) as api:'")
        return self._http

    def _headers(self) -> dict[str, str]:
        headers = {"accept": "application/json", "content-type": "application/json"}
        if self._config.token:
            headers["authorization"] = f"Bearer {self._config.token}"
        return headers

    async def request(
        self,
        method: str,
        endpoint: str,
        *,
        json_body: Mapping[str, Any] | None = None,
    ) -> dict[str, Any]:
        """Send one request and return the decoded JSON object.

        Non-2xx answers carrying an ``error``/``message`` field raise
        :class:`OptibookApiError` (:class:`OptibookAuthenticationError` for
        401/403); everything else that goes wrong on the wire raises
        :class:`OptibookTransportError`. An empty body decodes to ``{}``.
        """
        http = self._require_session()
        url = f"{self._config.base_url}{endpoint}"
        body = json.dumps(json_body, separators=(",", ":"), default=str) if json_body is not None else None

        _logger.debug("%s %s", method, url)

        try:
            async with http.request(method, url, data=body, headers=self._headers()) as resp:
                status = resp.status
                text = await resp.text()
        except aiohttp.ClientError as exc:
            raise OptibookTransportError(f"Request to {endpoint} failed: {exc}", endpoint=endpoint) from exc

        decoded: Any = None
        if text.strip():
            try:
                decoded = json.loads(text)
            except json.JSONDecodeError as exc:
                if 200 <= status < 300:
                    raise OptibookTransportError(
                        f"Invalid JSON from {endpoint}: {text[:200]}",
                        status_code=status,
                        endpoint=endpoint,
                    ) from exc

        if not 200 <= status < 300:
            message = _error_text(decoded)
            if not message:
                raise OptibookTransportError(
                    f"HTTP {status} from {endpoint}: {text[:200]}",
                    status_code=status,
                    endpoint=endpoint,
                )
            error_cls = OptibookAuthenticationError if status in (401, 403) else OptibookApiError
            raise error_cls(message, code=str(status), endpoint=endpoint)

        if decoded is None:
            return {}
        if not isinstance(decoded, dict):
            raise OptibookTransportError(
                f"Expected a JSON object from {endpoint}",
                status_code=status,
                endpoint=endpoint,
            )
        return decoded
