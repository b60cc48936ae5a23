"""Tavily web-search provider over its REST API."""

import logging
import os
from types import TracebackType
from typing import Any

import httpx
from pydantic import ValidationError

from trial_scout.core.schemas import RawHit
from trial_scout.search.base import SearchOptions, SearchProvider

logger = logging.getLogger(__name__)

TAVILY_API_URL = "https://api.tavily.com"


class TavilySearchProvider(SearchProvider):
    """Search provider backed by the Tavily search API.

    Usage::

        async with TavilySearchProvider.from_env() as tavily:
            hits = await tavily.search("heart patient fundraiser", SearchOptions())
    """

    def __init__(
        self,
        api_key: str,
        *,
        client: httpx.AsyncClient | None = None,
        base_url: str = TAVILY_API_URL,
        timeout: float = 30.0,
    ) -> None:
        if not api_key:
            msg = "Tavily API key must not be empty"
            raise ValueError(msg)
        self._api_key = api_key
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(
            base_url=base_url,
            timeout=httpx.Timeout(timeout, connect=10.0),
        )

    @classmethod
    def from_env(cls, env_var: str = "TAVILY_API_KEY", **kwargs: Any) -> "TavilySearchProvider":
        api_key = os.environ.get(env_var)
        if not api_key:
            msg = f"{env_var} environment variable is required"
            raise ValueError(msg)
        return cls(api_key, **kwargs)

    @property
    def provider_id(self) -> str:
        return "tavily"

    async def search(self, query: str, options: SearchOptions) -> list[RawHit]:
        payload = {
            "query": query,
            "search_depth": options.search_depth,
            "max_results": options.max_results,
            "include_domains": options.include_domains,
            "include_raw_content": options.include_raw_content,
        }
        logger.debug("Tavily search: '%s'", query)
        response = await self._client.post(
            "/search",
            json=payload,
            headers={"Authorization": f"Bearer {self._api_key}"},
        )
        response.raise_for_status()
        return self._parse_results(response.json())

    def _parse_results(self, data: dict[str, Any]) -> list[RawHit]:
        hits: list[RawHit] = []
        for item in data.get("results") or []:
            try:
                hits.append(RawHit(
                    url=item["url"],
                    title=item.get("title"),
                    content=item.get("content") or "",
                    raw_content=item.get("raw_content"),
                    score=item.get("score"),
                ))
            except (KeyError, TypeError, ValidationError):
                logger.debug("Skipping malformed Tavily result: %r", item)
        return hits

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self) -> "TavilySearchProvider":
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        await self.aclose()
