"""
services/bing.py — Bing Web Search v7 client
"""

from __future__ import annotations

from typing import Optional

import httpx

from exceptions import SearchServiceError
from observability.logger import get_logger

log = get_logger(__name__)

_BING_URL = "https://api.bing.microsoft.com/v7.0/search"
_TIMEOUT = 15.0


class BingWebSearchClient:

    def __init__(
        self,
        api_key: str,
        endpoint: str = _BING_URL,
        http_client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self._endpoint = endpoint
        self._headers = {"Ocp-Apim-Subscription-Key": api_key}
        self._client = http_client or httpx.AsyncClient(timeout=_TIMEOUT)

    async def search(self, query: str, count: int = 5) -> list[dict]:
        """Return up to `count` results as {title, url, snippet} dicts."""
        try:
            response = await self._client.get(
                self._endpoint,
                params={"q": query, "count": count, "textDecorations": "false"},
                headers=self._headers,
            )
            response.raise_for_status()
            payload = response.json()
        except httpx.HTTPStatusError as e:
            raise SearchServiceError(
                f"Web search failed. Status code: {e.response.status_code}",
                service="bing",
                status_code=e.response.status_code,
            ) from e
        except (httpx.HTTPError, ValueError) as e:
            raise SearchServiceError(f"Web search failed: {type(e).__name__}: {e}", service="bing") from e

        pages = (payload.get("webPages") or {}).get("value") or []
        results = [
            {"title": p.get("name", ""), "url": p.get("url", ""), "snippet": p.get("snippet", "")}
            for p in pages[:count]
        ]
        log.debug("bing.search.complete", query=query, results=len(results))
        return results

    async def aclose(self) -> None:
        await self._client.aclose()
