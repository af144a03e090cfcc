"""Result deduplication.

Two policies are applied at different points of the pipeline:

* ``dedupe_by_domain`` runs on each provider result set before enrichment and
  keeps one page per hostname, so a single query returns breadth rather than
  several pages of the same site.
* ``dedupe_sources`` runs once on the orchestrator's accumulated sources and
  drops records repeating a URL or a long-enough title.

Both keep the first occurrence and preserve order.
"""
from __future__ import annotations

from typing import Protocol, Sequence, TypeVar

from extreme_search.models.research import SearchResult
from extreme_search.tools.web_utils import normalized_domain

MIN_TITLE_MATCH_LENGTH = 10


class _HasUrl(Protocol):
    @property
    def url(self) -> str: ...


T = TypeVar("T", bound=_HasUrl)


def dedupe_by_domain(items: Sequence[T]) -> list[T]:
    seen_urls: set[str] = set()
    seen_domains: set[str] = set()
    kept: list[T] = []
    for item in items:
        domain = normalized_domain(item.url)
        if item.url in seen_urls or domain in seen_domains:
            continue
        seen_urls.add(item.url)
        seen_domains.add(domain)
        kept.append(item)
    return kept


def dedupe_sources(results: Sequence[SearchResult]) -> list[SearchResult]:
    seen_urls: set[str] = set()
    seen_titles: set[str] = set()
    kept: list[SearchResult] = []
    for result in results:
        if result.url in seen_urls or result.title in seen_titles:
            continue
        seen_urls.add(result.url)
        # Short titles ("Home", "News") are too generic to identify a page.
        if len(result.title) > MIN_TITLE_MATCH_LENGTH:
            seen_titles.add(result.title)
        kept.append(result)
    return kept
