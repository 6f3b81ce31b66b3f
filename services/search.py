"""
services/search.py — Azure AI Search client

Hybrid query against one index: the user's text for keyword + semantic
ranking, and the query embedding for vector recall.

POST {endpoint}/indexes/{index}/docs/search?api-version=...
"""

from __future__ import annotations

from typing import Optional

import httpx

from exceptions import SearchServiceError
from observability.logger import get_logger

log = get_logger(__name__)

_TIMEOUT = 20.0
_VECTOR_FIELD = "embedding"


class DocumentSearchClient:

    def __init__(
        self,
        api_key: str,
        endpoint: str,
        index: str,
        semantic_config: str = "default",
        api_version: str = "2023-11-01",
        http_client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self._url = f"{endpoint.rstrip('/')}/indexes/{index}/docs/search"
        self._api_version = api_version
        self._semantic_config = semantic_config
        self._headers = {"api-key": api_key, "Content-Type": "application/json"}
        self._client = http_client or httpx.AsyncClient(timeout=_TIMEOUT)

    async def search(self, query: str, vector: list[float], top: int = 3) -> list[dict]:
        """Return up to `top` documents as {title, content, score} dicts."""
        body = {
            "search": query,
            "top": top,
            "queryType": "semantic",
            "semanticConfiguration": self._semantic_config,
            "vectorQueries": [
                {"kind": "vector", "vector": vector, "fields": _VECTOR_FIELD, "k": top},
            ],
        }
        try:
            response = await self._client.post(
                self._url,
                params={"api-version": self._api_version},
                headers=self._headers,
                json=body,
            )
            response.raise_for_status()
            payload = response.json()
        except httpx.HTTPStatusError as e:
            raise SearchServiceError(
                f"Document search failed. Status code: {e.response.status_code}",
                service="search",
                status_code=e.response.status_code,
            ) from e
        except (httpx.HTTPError, ValueError) as e:
            raise SearchServiceError(
                f"Document search failed: {type(e).__name__}: {e}", service="search",
            ) from e

        docs = []
        for item in payload.get("value", []):
            docs.append({
                "title": item.get("title") or item.get("id", ""),
                "content": item.get("content", ""),
                "score": item.get("@search.rerankerScore", item.get("@search.score")),
            })
        log.debug("search.query.complete", query=query, results=len(docs))
        return docs

    async def aclose(self) -> None:
        await self._client.aclose()
