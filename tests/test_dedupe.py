from __future__ import annotations

from extreme_search.models.research import SearchResult
from extreme_search.services.dedupe import dedupe_by_domain, dedupe_sources


def _result(url: str, title: str = "", content: str = "") -> SearchResult:
    return SearchResult(url=url, title=title, content=content)


def test_dedupe_sources_drops_repeated_url_keeping_first():
    results = [
        _result("https://a.com/x", "First article title", "one"),
        _result("https://b.com/y", "Second article title"),
        _result("https://a.com/x", "Different title entirely", "two"),
    ]

    deduped = dedupe_sources(results)

    assert [r.url for r in deduped] == ["https://a.com/x", "https://b.com/y"]
    assert deduped[0].content == "one"


def test_dedupe_sources_drops_repeated_long_title():
    results = [
        _result("https://a.com/x", "Fusion energy breakthroughs in 2026"),
        _result("https://mirror.org/x", "Fusion energy breakthroughs in 2026"),
    ]

    assert [r.url for r in dedupe_sources(results)] == ["https://a.com/x"]


def test_dedupe_sources_keeps_short_shared_titles():
    results = [
        _result("https://a.com/", "Home"),
        _result("https://b.com/", "Home"),
        _result("https://c.com/", "0123456789"),
        _result("https://d.com/", "0123456789"),
    ]

    assert len(dedupe_sources(results)) == 4


def test_dedupe_sources_is_idempotent_and_order_preserving():
    results = [
        _result("https://c.com/1", "Gamma report on tokamaks"),
        _result("https://a.com/1", "Alpha report on stellarators"),
        _result("https://c.com/1", "Gamma report on tokamaks"),
        _result("https://b.com/1", "Alpha report on stellarators"),
        _result("https://d.com/1", "Delta review of inertial confinement"),
    ]

    once = dedupe_sources(results)
    twice = dedupe_sources(once)

    assert once == twice
    assert [r.url for r in once] == ["https://c.com/1", "https://a.com/1", "https://d.com/1"]


def test_dedupe_sources_empty():
    assert dedupe_sources([]) == []


def test_dedupe_by_domain_keeps_one_page_per_host():
    results = [
        _result("https://www.example.com/a"),
        _result("https://example.com/b"),
        _result("https://EXAMPLE.com:443/c"),
        _result("https://news.example.com/d"),
        _result("https://other.org/e"),
    ]

    kept = dedupe_by_domain(results)

    assert [r.url for r in kept] == [
        "https://www.example.com/a",
        "https://news.example.com/d",
        "https://other.org/e",
    ]


def test_dedupe_by_domain_is_idempotent():
    results = [_result("https://a.com/1"), _result("https://a.com/2"), _result("https://b.com/1")]

    once = dedupe_by_domain(results)

    assert dedupe_by_domain(once) == once


def test_same_domain_pages_differ_between_policies():
    pair = [
        _result("https://example.com/fusion-2026", "Fusion records announced this year"),
        _result("https://example.com/fusion-startups", "Fusion startups raise new funding"),
    ]

    assert [r.url for r in dedupe_by_domain(pair)] == ["https://example.com/fusion-2026"]
    assert [r.url for r in dedupe_sources(pair)] == [
        "https://example.com/fusion-2026",
        "https://example.com/fusion-startups",
    ]
