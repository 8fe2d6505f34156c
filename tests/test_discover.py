"""Tests for skillgraph.discover — search result handling."""

import httpx
import pytest


class TestExtractUrls:
    def test_rank_order_and_dedupe(self):
        from skillgraph.discover import extract_urls

        payload = {"organic": [
            {"link": "https://a.example.com"},
            {"link": "ftp://files.example.com"},
            {"title": "no link"},
            {"link": "https://a.example.com"},
            {"link": "http://b.example.com"},
        ]}
        assert extract_urls(payload) == ["https://a.example.com", "http://b.example.com"]

    def test_max_results(self):
        from skillgraph.discover import extract_urls

        payload = {"organic": [{"link": f"https://x.example.com/{i}"} for i in range(20)]}
        assert len(extract_urls(payload, max_results=5)) == 5

    def test_no_results(self):
        from skillgraph.discover import extract_urls

        assert extract_urls({}) == []


class TestSearchDocs:
    async def test_posts_query(self):
        from skillgraph.discover import search_docs

        def handler(request):
            assert request.headers["X-API-KEY"] == "key"
            assert b"Docker Networking documentation" in request.content
            return httpx.Response(200, json={"organic": [{"link": "https://docs.docker.com"}]})

        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            urls = await search_docs("Docker Networking", api_key="key", client=client)
        assert urls == ["https://docs.docker.com"]

    async def test_missing_key(self, monkeypatch):
        from skillgraph.discover import search_docs

        monkeypatch.delenv("SERPER_API_KEY", raising=False)
        with pytest.raises(ValueError):
            await search_docs("topic")

    async def test_http_error(self):
        from skillgraph.discover import search_docs

        transport = httpx.MockTransport(lambda request: httpx.Response(500))
        async with httpx.AsyncClient(transport=transport) as client:
            with pytest.raises(httpx.HTTPStatusError):
                await search_docs("topic", api_key="key", client=client)
