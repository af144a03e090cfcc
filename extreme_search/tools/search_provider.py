from __future__ import annotations

import asyncio
from dataclasses import dataclass
from datetime import date

from extreme_search.config import settings
from extreme_search.exceptions import SearchProviderError
from extreme_search.models.research import ContentResult, SearchCategory, SearchResult
from extreme_search.services.dedupe import dedupe_by_domain
from extreme_search.services.logger import logger
from extreme_search.tools import brave_search, page_fetcher, tavily_search
from extreme_search.tools.web_utils import is_valid_url

CATEGORY_TOPICS = {
    SearchCategory.NEWS: "news",
    SearchCategory.FINANCIAL_REPORT: "finance",
}

RECENCY_MARKERS = ("latest", "current")


@dataclass
class SearchResponse:
    results: list[SearchResult]
    provider: str
    fallback_from: str | None = None
    fallback_reason: str | None = None


def _finalize(results: list[SearchResult]) -> list[SearchResult]:
    return dedupe_by_domain([r for r in results if is_valid_url(r.url)])


def recency_floor(today: date | None = None) -> date:
    """First day of the oldest year inside the configured recency window."""
    today = today or date.today()
    return date(today.year - max(int(settings.search_recency_years), 0), 1, 1)


def enhance_query(
    query: str,
    category: SearchCategory | None = None,
    *,
    year: int | None = None,
) -> str:
    """Append the category and a current-year hint to a raw query."""
    year = year or date.today().year
    enhanced = f"{query} {category.value}" if category else query
    lowered = enhanced.lower()
    if str(year) not in enhanced and not any(marker in lowered for marker in RECENCY_MARKERS):
        enhanced = f"{enhanced} {year} latest current"
    return enhanced


async def _tavily(
    query: str,
    category: SearchCategory | None,
    date_floor: date | None,
    max_results: int,
) -> list[SearchResult]:
    return await tavily_search.search(
        query,
        max_results=max_results,
        topic=CATEGORY_TOPICS.get(category, "general") if category else "general",
        date_floor=date_floor,
        max_chars=settings.search_snippet_chars,
    )


async def search(
    query: str,
    *,
    category: SearchCategory | None = None,
    date_floor: date | None = None,
    max_results: int | None = None,
) -> SearchResponse:
    """Run one search against the configured provider.

    Results are clipped to the snippet budget and reduced to one page per
    domain. Provider errors propagate unless the Brave -> Tavily fallback
    applies.
    """
    provider = settings.search_provider.lower().strip()
    use_fallback = settings.search_fallback_to_tavily
    max_results = max_results or settings.search_max_results_per_query
    date_floor = date_floor or recency_floor()
    enhanced = enhance_query(query, category)

    if provider == "tavily":
        results = await _tavily(enhanced, category, date_floor, max_results)
        return SearchResponse(results=_finalize(results), provider="tavily")

    if provider == "brave":
        try:
            results = await brave_search.search(
                enhanced,
                max_results=max_results,
                date_floor=date_floor,
                max_chars=settings.search_snippet_chars,
            )
            if results or not use_fallback:
                return SearchResponse(results=_finalize(results), provider="brave")
            reason = "brave returned zero results"
        except Exception as e:
            if not use_fallback:
                raise
            reason = str(e)

        logger.warning("Brave search failed for %r, falling back to Tavily: %s", query, reason)
        fallback_results = await _tavily(enhanced, category, date_floor, max_results)
        return SearchResponse(
            results=_finalize(fallback_results),
            provider="tavily",
            fallback_from="brave",
            fallback_reason=reason,
        )

    raise SearchProviderError(f"Unsupported SEARCH_PROVIDER: {settings.search_provider}")


async def _fetch_each(urls: list[str], max_chars: int) -> list[ContentResult]:
    semaphore = asyncio.Semaphore(max(int(settings.max_parallel_enrichment), 1))

    async def fetch_one(url: str) -> ContentResult | None:
        async with semaphore:
            try:
                return await page_fetcher.fetch_page(url, max_chars=max_chars)
            except Exception as e:
                logger.warning("Content fetch failed for %s: %s", url, e)
                return None

    fetched = await asyncio.gather(*(fetch_one(url) for url in urls))
    return [item for item in fetched if item is not None]


async def get_contents(urls: list[str], *, max_chars: int | None = None) -> list[ContentResult]:
    """Fetch full content for each URL.

    Failures are isolated per URL: a URL that cannot be fetched is simply
    missing from the returned list.
    """
    max_chars = max_chars or settings.content_max_chars
    urls = list(dict.fromkeys(u for u in urls if u))
    if not urls:
        return []

    if settings.search_provider.lower().strip() == "tavily":
        try:
            return await tavily_search.extract(urls, max_chars=max_chars)
        except Exception as e:
            logger.warning("Tavily extract failed for %d urls: %s", len(urls), e)
            return []

    return await _fetch_each(urls, max_chars)
