"""
HTTPX HTTP Adapter

Architectural Intent:
- Infrastructure adapter implementing HttpPort with httpx
- One short-lived AsyncClient per request; redirects are followed
- Bodies are decoded as text; binary streaming is not supported
"""

import logging
from typing import Any, Optional

import httpx

from aias.domain.exceptions import HttpRequestFailed
from aias.domain.ports.http_port import HttpPort, HttpResponse

logger = logging.getLogger(__name__)


class HttpxHttpAdapter(HttpPort):
    def __init__(self, transport: Optional[httpx.AsyncBaseTransport] = None) -> None:
        self._transport = transport

    async def request(
        self,
        method: str,
        url: str,
        headers: Optional[dict[str, str]] = None,
        params: Optional[dict[str, Any]] = None,
        data: Any = None,
        json_data: Optional[dict[str, Any]] = None,
        timeout: float = 30,
    ) -> HttpResponse:
        body: dict[str, Any] = {}
        if json_data is not None:
            body["json"] = json_data
        elif isinstance(data, dict):
            body["data"] = data
        elif data:
            body["content"] = str(data)

        logger.debug("HTTP %s %s", method, url)
        try:
            async with httpx.AsyncClient(
                timeout=timeout,
                follow_redirects=True,
                transport=self._transport,
            ) as client:
                response = await client.request(
                    method, url, headers=headers, params=params, **body
                )
        except (httpx.RequestError, httpx.InvalidURL) as e:
            logger.warning("HTTP %s %s failed: %s", method, url, e)
            raise HttpRequestFailed(url, str(e) or type(e).__name__) from e

        return HttpResponse(
            status=response.status_code,
            status_text=response.reason_phrase,
            headers=dict(response.headers),
            data=response.text,
        )
