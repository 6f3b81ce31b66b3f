"""
tests/unit/test_services.py — Backend Client Unit Tests

HTTP clients run against httpx.MockTransport; the SQL factory runs
against a real sqlite file in tmp_path.

Run with:
    pytest tests/unit/test_services.py -v
"""

from __future__ import annotations

import json
import sqlite3
import sys
from pathlib import Path

import httpx
import pytest

_ROOT = Path(__file__).parent.parent.parent
if str(_ROOT) not in sys.path:
    sys.path.insert(0, str(_ROOT))

from exceptions import SearchServiceError, SqlQueryError, TranslationServiceError
from services.bing import BingWebSearchClient
from services.search import DocumentSearchClient
from services.sql import SqlConnectionFactory
from services.translator import TranslatorClient


def mock_client(handler) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


# ─────────────────────────────────────────────────────────────────────────────
# TranslatorClient
# ─────────────────────────────────────────────────────────────────────────────


class TestTranslatorClient:

    @pytest.mark.asyncio
    async def test_success(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["url"] = request.url
            seen["headers"] = request.headers
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, json=[{"translations": [{"text": "Hallo", "to": "de"}]}])

        client = TranslatorClient("key", "https://translator.example/", http_client=mock_client(handler))
        assert await client.translate("Hello", "de") == "Hallo"

        assert seen["url"].path == "/translate"
        assert seen["url"].params["api-version"] == "3.0"
        assert seen["url"].params["to"] == "de"
        assert seen["headers"]["Ocp-Apim-Subscription-Key"] == "key"
        assert seen["headers"]["Ocp-Apim-Subscription-Region"] == "eastus2"
        assert seen["body"] == [{"Text": "Hello"}]

    @pytest.mark.asyncio
    async def test_error_status(self):
        client = TranslatorClient(
            "key", "https://translator.example",
            http_client=mock_client(lambda request: httpx.Response(401, json={"error": "denied"})),
        )
        with pytest.raises(TranslationServiceError, match="Status code: 401") as exc_info:
            await client.translate("Hello", "de")
        assert exc_info.value.status_code == 401

    @pytest.mark.asyncio
    async def test_unexpected_body(self):
        client = TranslatorClient(
            "key", "https://translator.example",
            http_client=mock_client(lambda request: httpx.Response(200, json={"weird": True})),
        )
        with pytest.raises(TranslationServiceError, match="unexpected body"):
            await client.translate("Hello", "de")

    @pytest.mark.asyncio
    async def test_transport_error(self):
        def handler(request):
            raise httpx.ConnectError("refused", request=request)

        client = TranslatorClient("key", "https://translator.example", http_client=mock_client(handler))
        with pytest.raises(TranslationServiceError, match="ConnectError"):
            await client.translate("Hello", "de")


# ─────────────────────────────────────────────────────────────────────────────
# BingWebSearchClient
# ─────────────────────────────────────────────────────────────────────────────


class TestBingWebSearchClient:

    @pytest.mark.asyncio
    async def test_results(self):
        payload = {"webPages": {"value": [
            {"name": "Python", "url": "https://python.org", "snippet": "Official site"},
            {"name": "PyPI", "url": "https://pypi.org", "snippet": "Packages"},
        ]}}

        def handler(request):
            assert request.url.params["q"] == "python"
            assert request.headers["Ocp-Apim-Subscription-Key"] == "bing-key"
            return httpx.Response(200, json=payload)

        client = BingWebSearchClient("bing-key", http_client=mock_client(handler))
        results = await client.search("python", count=1)
        assert results == [{"title": "Python", "url": "https://python.org", "snippet": "Official site"}]

    @pytest.mark.asyncio
    async def test_no_web_pages(self):
        client = BingWebSearchClient("k", http_client=mock_client(lambda r: httpx.Response(200, json={})))
        assert await client.search("nothing") == []

    @pytest.mark.asyncio
    async def test_error_status(self):
        client = BingWebSearchClient("k", http_client=mock_client(lambda r: httpx.Response(503)))
        with pytest.raises(SearchServiceError, match="Status code: 503"):
            await client.search("python")


# ─────────────────────────────────────────────────────────────────────────────
# DocumentSearchClient
# ─────────────────────────────────────────────────────────────────────────────


class TestDocumentSearchClient:

    @pytest.mark.asyncio
    async def test_hybrid_query(self):
        seen = {}

        def handler(request):
            seen["path"] = request.url.path
            seen["api_version"] = request.url.params["api-version"]
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, json={"value": [
                {"id": "1", "title": "Handbook", "content": "Leave policy", "@search.rerankerScore": 2.5},
                {"id": "2", "content": "Untitled doc", "@search.score": 0.4},
            ]})

        client = DocumentSearchClient(
            "key", "https://search.example/", index="docs", semantic_config="sem",
            http_client=mock_client(handler),
        )
        docs = await client.search("leave", [0.1, 0.2], top=2)

        assert seen["path"] == "/indexes/docs/docs/search"
        assert seen["api_version"] == "2023-11-01"
        assert seen["body"]["queryType"] == "semantic"
        assert seen["body"]["semanticConfiguration"] == "sem"
        assert seen["body"]["vectorQueries"][0]["vector"] == [0.1, 0.2]
        assert docs == [
            {"title": "Handbook", "content": "Leave policy", "score": 2.5},
            {"title": "2", "content": "Untitled doc", "score": 0.4},
        ]

    @pytest.mark.asyncio
    async def test_error_status(self):
        client = DocumentSearchClient(
            "key", "https://search.example", index="docs",
            http_client=mock_client(lambda r: httpx.Response(403)),
        )
        with pytest.raises(SearchServiceError) as exc_info:
            await client.search("x", [0.0])
        assert exc_info.value.status_code == 403


# ─────────────────────────────────────────────────────────────────────────────
# SqlConnectionFactory
# ─────────────────────────────────────────────────────────────────────────────


@pytest.fixture
def sqlite_db(tmp_path):
    path = tmp_path / "sales.db"
    conn = sqlite3.connect(path)
    conn.execute("CREATE TABLE sales (region TEXT, amount INTEGER)")
    conn.executemany("INSERT INTO sales VALUES (?, ?)", [("north", 10), ("south", 20), ("east", 30)])
    conn.commit()
    conn.close()
    return path


class TestSqlConnectionFactory:

    def test_strips_sqlite_prefix(self, sqlite_db):
        assert SqlConnectionFactory(f"sqlite:///{sqlite_db}").path == sqlite_db

    @pytest.mark.asyncio
    async def test_select(self, sqlite_db):
        factory = SqlConnectionFactory(str(sqlite_db))
        rows = await factory.query("SELECT region, amount FROM sales ORDER BY amount")
        assert rows == [
            {"region": "north", "amount": 10},
            {"region": "south", "amount": 20},
            {"region": "east", "amount": 30},
        ]

    @pytest.mark.asyncio
    async def test_max_rows(self, sqlite_db):
        rows = await SqlConnectionFactory(str(sqlite_db), max_rows=2).query("SELECT * FROM sales")
        assert len(rows) == 2

    @pytest.mark.asyncio
    async def test_rejects_writes(self, sqlite_db):
        with pytest.raises(SqlQueryError, match="Only SELECT"):
            await SqlConnectionFactory(str(sqlite_db)).query("DELETE FROM sales")

    @pytest.mark.asyncio
    async def test_sql_error_wrapped(self, sqlite_db):
        with pytest.raises(SqlQueryError, match="no such table"):
            await SqlConnectionFactory(str(sqlite_db)).query("SELECT * FROM missing")
