from __future__ import annotations

import re

import httpx
from bs4 import BeautifulSoup

from extreme_search.config import settings
from extreme_search.models.research import ContentResult

USER_AGENT = "Mozilla/5.0 (compatible; extreme-research/0.1; +https://example.invalid/bot)"


def _normalize_text(text: str) -> str:
    text = text.replace("\xa0", " ")
    text = re.sub(r"\r\n?", "\n", text)
    text = re.sub(r"[ \t]+", " ", text)
    text = re.sub(r"\n{3,}", "\n\n", text)
    return text.strip()


def _extract_with_trafilatura(raw_html: str) -> str:
    import trafilatura

    extracted = trafilatura.extract(raw_html, output_format="txt")
    if not isinstance(extracted, str):
        return ""
    return _normalize_text(extracted)


def extract_main_text(raw_html: str) -> tuple[str, str]:
    """Return (title, main text) for an HTML document.

    Trafilatura does the boilerplate removal; when it finds nothing the
    visible text of the body is used instead.
    """
    soup = BeautifulSoup(raw_html, "html.parser")
    title = _normalize_text(soup.title.string) if soup.title and soup.title.string else ""

    text = _extract_with_trafilatura(raw_html)
    if text:
        return title, text

    for tag in soup(["script", "style", "noscript", "nav", "header", "footer"]):
        tag.decompose()
    return title, _normalize_text(soup.get_text("\n"))


async def fetch_page(url: str, *, max_chars: int = 1500) -> ContentResult:
    """Download one page and return its main text, clipped to max_chars.

    Raises httpx errors (including timeouts) to the caller.
    """
    async with httpx.AsyncClient(
        timeout=settings.content_fetch_timeout_seconds,
        follow_redirects=True,
        headers={"User-Agent": USER_AGENT},
    ) as client:
        response = await client.get(url)
        response.raise_for_status()
        raw_html = response.text

    title, text = extract_main_text(raw_html)
    return ContentResult(url=url, title=title, content=text[:max_chars])
