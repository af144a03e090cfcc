from __future__ import annotations

from datetime import date
from typing import Any

from tavily import AsyncTavilyClient

from extreme_search.config import settings
from extreme_search.exceptions import SearchProviderError
from extreme_search.models.research import ContentResult, SearchResult


def _client() -> AsyncTavilyClient:
    if not settings.tavily_api_key:
        raise SearchProviderError("TAVILY_API_KEY is not configured")
    return AsyncTavilyClient(api_key=settings.tavily_api_key)


async def search(
    query: str,
    *,
    max_results: int = 10,
    topic: str = "general",
    search_depth: str = "advanced",
    date_floor: date | None = None,
    max_chars: int = 800,
) -> list[SearchResult]:
    """Execute a Tavily web search and return normalized results."""
    kwargs: dict[str, Any] = {
        "query": query,
        "search_depth": search_depth,
        "max_results": max_results,
        "topic": topic,
        "include_favicon": True,
        "timeout": int(settings.search_timeout_seconds),
    }
    if date_floor:
        kwargs["start_date"] = date_floor.isoformat()

    response = await _client().search(**kwargs)

    return [
        SearchResult(
            title=r.get("title", "") or "",
            url=r.get("url", ""),
            content=(r.get("content", "") or "")[:max_chars],
            published_date=r.get("published_date", "") or "",
            favicon=r.get("favicon", "") or "",
        )
        for r in response.get("results", [])
        if r.get("url")
    ]


async def extract(urls: list[str], *, max_chars: int = 1500) -> list[ContentResult]:
    """Fetch full page text for the given URLs; failed URLs are left out."""
    if not urls:
        return []
    response = await _client().extract(
        urls=urls,
        extract_depth="advanced",
        include_favicon=True,
        timeout=settings.content_fetch_timeout_seconds,
    )
    return [
        ContentResult(
            url=r.get("url", ""),
            content=(r.get("raw_content", "") or "")[:max_chars],
            favicon=r.get("favicon", "") or "",
        )
        for r in response.get("results", [])
        if r.get("url")
    ]
