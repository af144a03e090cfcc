from __future__ import annotations

from datetime import date
from typing import Any

import httpx

from extreme_search.config import settings
from extreme_search.exceptions import SearchProviderError
from extreme_search.models.research import SearchResult

BRAVE_SEARCH_URL = "https://api.search.brave.com/res/v1/web/search"


def _freshness(date_floor: date | None) -> str | None:
    if date_floor is None:
        return None
    return f"{date_floor.isoformat()}to{date.today().isoformat()}"


async def search(
    query: str,
    *,
    max_results: int = 10,
    date_floor: date | None = None,
    max_chars: int = 800,
) -> list[SearchResult]:
    """Execute a Brave web search and normalize results."""
    if not settings.brave_api_key:
        raise SearchProviderError("BRAVE_API_KEY is not configured")

    params: dict[str, Any] = {
        "q": query,
        "count": max_results,
    }
    freshness = _freshness(date_floor)
    if freshness:
        params["freshness"] = freshness

    async with httpx.AsyncClient(timeout=settings.search_timeout_seconds) as client:
        response = await client.get(
            BRAVE_SEARCH_URL,
            params=params,
            headers={
                "Accept": "application/json",
                "X-Subscription-Token": settings.brave_api_key,
            },
        )
        response.raise_for_status()
        payload = response.json()

    mapped: list[SearchResult] = []
    for item in payload.get("web", {}).get("results", []):
        url = item.get("url", "")
        if not url:
            continue
        snippets = item.get("extra_snippets", []) or []
        description = item.get("description", "") or ""
        content = description.strip() or " ".join(snippets).strip()
        profile = item.get("profile") or {}
        meta = item.get("meta_url") or {}
        mapped.append(
            SearchResult(
                title=item.get("title", ""),
                url=url,
                content=content[:max_chars],
                published_date=item.get("page_age", "") or item.get("age", "") or "",
                favicon=meta.get("favicon", "") or profile.get("img", "") or "",
            )
        )
    return mapped
