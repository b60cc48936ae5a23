"""Tests for the Tavily search provider (httpx mock transport, no network)."""

import json
from unittest.mock import patch

import httpx
import pytest

from trial_scout.core.config import DEFAULT_DOMAINS
from trial_scout.search.base import SearchOptions
from trial_scout.search.tavily import TAVILY_API_URL, TavilySearchProvider


def _client(handler) -> httpx.AsyncClient:  # type: ignore[no-untyped-def]
    return httpx.AsyncClient(base_url=TAVILY_API_URL, transport=httpx.MockTransport(handler))


SAMPLE_RESPONSE = {
    "query": "diabetes patient boston",
    "results": [
        {
            "url": "https://www.gofundme.com/f/help-linda",
            "title": "Help Linda Beat Diabetes",
            "content": "Linda, 58, was diagnosed...",
            "raw_content": "Full page text about Linda...",
            "score": 0.91,
        },
        {
            "url": "https://www.givesendgo.com/tomsfight",
            "title": None,
            "content": None,
            "score": 0.5,
        },
        {"title": "missing url"},
    ],
}


class TestTavilySearchProvider:
    def test_empty_key_rejected(self) -> None:
        with pytest.raises(ValueError, match="must not be empty"):
            TavilySearchProvider("")

    def test_from_env_missing(self) -> None:
        with (
            patch.dict("os.environ", {}, clear=True),
            pytest.raises(ValueError, match="TAVILY_API_KEY"),
        ):
            TavilySearchProvider.from_env()

    async def test_from_env_custom_var(self) -> None:
        with patch.dict("os.environ", {"MY_TAVILY": "k"}):
            provider = TavilySearchProvider.from_env("MY_TAVILY")
        assert provider.provider_id == "tavily"
        await provider.aclose()

    async def test_search_request_and_parsing(self) -> None:
        captured: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            captured.append(request)
            return httpx.Response(200, json=SAMPLE_RESPONSE)

        async with TavilySearchProvider("secret", client=_client(handler)) as tavily:
            hits = await tavily.search("diabetes patient boston", SearchOptions())

        request = captured[0]
        assert request.method == "POST"
        assert request.url.path == "/search"
        assert request.headers["Authorization"] == "Bearer secret"
        body = json.loads(request.content)
        assert body == {
            "query": "diabetes patient boston",
            "search_depth": "advanced",
            "max_results": 10,
            "include_domains": DEFAULT_DOMAINS,
            "include_raw_content": True,
        }

        assert len(hits) == 2
        assert hits[0].url == "https://www.gofundme.com/f/help-linda"
        assert hits[0].raw_content == "Full page text about Linda..."
        assert hits[0].page_text == "Full page text about Linda..."
        assert hits[0].score == 0.91
        assert hits[1].content == ""
        assert hits[1].raw_content is None

    async def test_options_forwarded(self) -> None:
        bodies: list[dict] = []

        def handler(request: httpx.Request) -> httpx.Response:
            bodies.append(json.loads(request.content))
            return httpx.Response(200, json={"results": []})

        options = SearchOptions(max_results=3, include_raw_content=False,
                                include_domains=["fundly.com"], search_depth="basic")
        async with TavilySearchProvider("k", client=_client(handler)) as tavily:
            assert await tavily.search("q", options) == []

        assert bodies[0]["max_results"] == 3
        assert bodies[0]["include_raw_content"] is False
        assert bodies[0]["include_domains"] == ["fundly.com"]
        assert bodies[0]["search_depth"] == "basic"

    async def test_missing_results_key(self) -> None:
        async with TavilySearchProvider(
            "k", client=_client(lambda r: httpx.Response(200, json={})),
        ) as tavily:
            assert await tavily.search("q", SearchOptions()) == []

    async def test_http_error_raises(self) -> None:
        async with TavilySearchProvider(
            "k", client=_client(lambda r: httpx.Response(401, json={"detail": "bad key"})),
        ) as tavily:
            with pytest.raises(httpx.HTTPStatusError):
                await tavily.search("q", SearchOptions())

    async def test_injected_client_not_closed(self) -> None:
        client = _client(lambda r: httpx.Response(200, json={}))
        async with TavilySearchProvider("k", client=client):
            pass
        assert client.is_closed is False
        await client.aclose()
