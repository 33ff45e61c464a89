"""HTTP transport for the REST peers (device auth, device message, vehicle profile)."""

from __future__ import annotations

import json
import logging
from collections.abc import Mapping
from typing import Any, Protocol

import aiohttp

from pyassoc._constants import USER_AGENT
from pyassoc._redact import redact_for_log
from pyassoc.exceptions import AssocTransportError

_logger = logging.getLogger(__name__)


class RestTransport(Protocol):
    """Structural transport interface used by the peer clients.

    Having a protocol here makes it easy to pass test doubles/mocks while
    keeping the production implementation (`HttpTransport`) concrete.
    """

    async def post_json(
        self,
        url: str,
        body: Mapping[str, Any] | None,
        *,
        headers: Mapping[str, str] | None = None,
    ) -> Any: ...

    async def delete_json(
        self,
        url: str,
        *,
        headers: Mapping[str, str] | None = None,
    ) -> Any: ...


class HttpTransport:
    """JSON-over-HTTP transport that maps peer failures to :class:`AssocTransportError`.

    Any 2xx status is a success.  Everything else, including connection
    errors and timeouts, raises.
    """

    def __init__(self, http_session: aiohttp.ClientSession, *, timeout: float = 30.0) -> None:
        self._http = http_session
        self._timeout = aiohttp.ClientTimeout(total=timeout)

    async def post_json(
        self,
        url: str,
        body: Mapping[str, Any] | None,
        *,
        headers: Mapping[str, str] | None = None,
    ) -> Any:
        """POST *body* as JSON and return the decoded response (``None`` when empty)."""
        data = json.dumps(body, separators=(",", ":")) if body is not None else None
        return await self._request("POST", url, data=data, headers=headers)

    async def delete_json(
        self,
        url: str,
        *,
        headers: Mapping[str, str] | None = None,
    ) -> Any:
        """DELETE *url* and return the decoded response (``None`` when empty)."""
        return await self._request("DELETE", url, data=None, headers=headers)

    async def _request(
        self,
        method: str,
        url: str,
        *,
        data: str | None,
        headers: Mapping[str, str] | None,
    ) -> Any:
        request_headers: dict[str, str] = {
            "accept": "application/json",
            "content-type": "application/json",
            "user-agent": USER_AGENT,
        }
        if headers:
            request_headers.update(headers)

        _logger.debug("%s %s headers=%s", method, url, redact_for_log(request_headers))

        try:
            async with self._http.request(
                method,
                url,
                data=data,
                headers=request_headers,
                timeout=self._timeout,
            ) as resp:
                text = await resp.text()
                if not 200 <= resp.status < 300:
                    raise AssocTransportError(
                        f"HTTP {resp.status} from {url}: {text[:200]}",
                        status_code=resp.status,
                        endpoint=url,
                    )
                status = resp.status
        except AssocTransportError:
            raise
        except (aiohttp.ClientError, TimeoutError) as exc:
            raise AssocTransportError(
                f"Request to {url} failed: {exc}",
                endpoint=url,
            ) from exc

        _logger.debug("%s %s -> %s", method, url, status)

        if not text.strip():
            return None
        try:
            return json.loads(text)
        except json.JSONDecodeError as exc:
            raise AssocTransportError(
                f"Invalid JSON from {url}: {text[:200]}",
                status_code=status,
                endpoint=url,
            ) from exc
