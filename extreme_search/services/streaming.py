from __future__ import annotations

from typing import Any

from extreme_search.models.events import EventType, SSEEvent


def status(title: str, **kwargs: Any) -> SSEEvent:
    return SSEEvent(event=EventType.STATUS, data={"title": title, **kwargs})


def thinking(content: str) -> SSEEvent:
    return SSEEvent(event=EventType.THINKING, data={"content": content})


def search_query(query_id: str, query: str) -> SSEEvent:
    return SSEEvent(event=EventType.SEARCH_QUERY, data={"id": query_id, "query": query})


def source(query_id: str, title: str, url: str) -> SSEEvent:
    return SSEEvent(
        event=EventType.SOURCE,
        data={"id": query_id, "title": title, "url": url},
    )


def content(query_id: str, title: str, url: str, excerpt: str) -> SSEEvent:
    return SSEEvent(
        event=EventType.CONTENT,
        data={"id": query_id, "title": title, "url": url, "excerpt": excerpt},
    )


def research_complete(report: dict[str, Any]) -> SSEEvent:
    return SSEEvent(event=EventType.RESEARCH_COMPLETE, data=report)


def error(message: str, stage: str | None = None) -> SSEEvent:
    data: dict[str, Any] = {"message": message}
    if stage:
        data["stage"] = stage
    return SSEEvent(event=EventType.ERROR, data=data)
