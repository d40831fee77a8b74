from __future__ import annotations

from typing import Optional

import httpx

from .errors import TransportError
from .logging import get_logger

logger = get_logger(__name__)


DEFAULT_USER_AGENT = "weather-company-client/0.1 (+https://github.com/weather-company-client)"


class HttpTransport:
    """Async GET wrapper around httpx.

    Reuses an injected ``httpx.AsyncClient`` when given; otherwise opens a
    short-lived client per request so no connection outlives its event loop.
    """

    def __init__(
        self,
        client: Optional[httpx.AsyncClient] = None,
        *,
        user_agent: str = DEFAULT_USER_AGENT,
    ) -> None:
        self.client = client
        self.user_agent = user_agent

    async def fetch(self, url: str, *, trace_id: str | None = None) -> httpx.Response:
        headers = {"User-Agent": self.user_agent}

        logger.info("http.fetch", trace_id=trace_id, host=httpx.URL(url).host)
        try:
            if self.client is not None:
                response = await self.client.get(url, headers=headers)
            else:
                async with httpx.AsyncClient() as client:
                    response = await client.get(url, headers=headers)
        except httpx.RequestError as exc:
            logger.warning("http.fetch.failed", trace_id=trace_id, error=str(exc))
            raise TransportError(str(exc)) from exc

        logger.info("http.fetch.complete", trace_id=trace_id, status_code=response.status_code)
        return response
