from __future__ import annotations

import pytest

from extreme_search.config import settings


@pytest.fixture(autouse=True)
def _isolated_settings(monkeypatch):
    monkeypatch.setattr(settings, "openrouter_model", "")
    monkeypatch.setattr(settings, "default_model", "google/gemini-2.5-flash")
    monkeypatch.setattr(settings, "planner_model", "")
    monkeypatch.setattr(settings, "synthesis_model", "")
    monkeypatch.setattr(settings, "search_provider", "tavily")
    monkeypatch.setattr(settings, "search_fallback_to_tavily", True)
    monkeypatch.setattr(settings, "search_recency_years", 0)
    monkeypatch.setattr(settings, "tavily_api_key", "test-tavily")
    monkeypatch.setattr(settings, "brave_api_key", "test-brave")
    monkeypatch.setattr(settings, "agent_max_steps", 4)
    monkeypatch.setattr(settings, "daytona_api_key", "test-daytona")


@pytest.fixture
def fake_search(monkeypatch):
    """Search backend returning two pages per query; only a.com pages enrich.

    Queries containing "fail" raise. Returns the list of queries searched.
    """
    from extreme_search.models.research import ContentResult, SearchResult
    from extreme_search.tools import search_provider
    from extreme_search.tools.search_provider import SearchResponse

    queries: list[str] = []

    async def search(query, *, category=None, **kwargs):
        queries.append(query)
        if "fail" in query:
            raise RuntimeError("search backend down")
        slug = query.replace(" ", "-")
        return SearchResponse(
            results=[
                SearchResult(url=f"https://a.com/{slug}", title=f"A {query}", content="snippet a"),
                SearchResult(url=f"https://b.com/{slug}", title=f"B {query}", content="snippet b"),
            ],
            provider="tavily",
        )

    async def get_contents(urls, **kwargs):
        return [
            ContentResult(url=url, content=f"full text of {url}")
            for url in urls
            if url.startswith("https://a.com/")
        ]

    monkeypatch.setattr(search_provider, "search", search)
    monkeypatch.setattr(search_provider, "get_contents", get_contents)
    return queries
