from __future__ import annotations

import re
import time
from datetime import date

from extreme_search.config import settings
from extreme_search.exceptions import SynthesisError
from extreme_search.llm_client import client as llm_client, extract_text, get_model
from extreme_search.models.research import SearchResult
from extreme_search.services import logger as log_service
from extreme_search.services.prompt_store import render_prompt
from extreme_search.tools.web_utils import clip

DEGRADED_NOTE = (
    "*Note: This is a best-effort summary of the collected sources; "
    "the full synthesis could not be generated due to connectivity issues.*"
)

REFERENCE_HEADINGS = (
    "references",
    "sources",
    "bibliography",
    "further reading",
    "citations",
    "works cited",
    "sources and evidence",
)

_HEADING_RE = re.compile(r"^\s{0,3}#{1,6}\s+(.*?)\s*#*\s*$", re.MULTILINE)
CITATION_RE = re.compile(r"\[[^\]]+\]\(https?://[^)\s]+\)")


def find_reference_headings(report: str) -> list[str]:
    """Headings that collect citations into a block instead of citing inline."""
    found = []
    for match in _HEADING_RE.finditer(report):
        heading = match.group(1).strip()
        normalized = re.sub(r"^[\d.\s]+", "", heading).strip(" :*").lower()
        if normalized in REFERENCE_HEADINGS:
            found.append(heading)
    return found


def uncited_paragraphs(report: str) -> list[str]:
    """Body paragraphs (headings removed) that carry no inline `[text](url)` citation."""
    uncited = []
    for block in re.split(r"\n[ \t]*\n", report):
        body = _HEADING_RE.sub("", block).strip()
        if body and not CITATION_RE.search(body):
            uncited.append(body)
    return uncited


def format_sources(sources: list[SearchResult], *, content_chars: int) -> str:
    return "\n".join(
        f"\n{i}. **{source.title}**\n"
        f"   URL: {source.url}\n"
        f"   Content: {clip(source.content, content_chars)}\n"
        f"   Published: {source.published_date or 'Unknown'}"
        for i, source in enumerate(sources, 1)
    )


def fallback_report(prompt: str, sources: list[SearchResult]) -> str:
    top = sources[: settings.fallback_report_sources]
    if top:
        body = "\n".join(
            f"\n### {i}. [{s.title or s.url}]({s.url})\n"
            f"{clip(s.content, settings.fallback_report_source_chars)}\n"
            for i, s in enumerate(top, 1)
        )
    else:
        body = "\nNo sources could be retrieved for this request.\n"
    return f"# Research Summary: {prompt}\n\n## Collected Findings\n{body}\n{DEGRADED_NOTE}\n"


class Synthesizer:
    """Writes the final cited markdown report from the collected sources."""

    name = "synthesizer"

    def __init__(self, model: str | None = None):
        synthesis_override = settings.synthesis_model.strip()
        self.model = synthesis_override or model or get_model()
        self.client = None

    async def _generate(self, prompt: str, sources: list[SearchResult], plan_summary: str) -> str:
        today = date.today()
        top_sources = sources[: settings.synthesis_max_sources]
        context = render_prompt(
            "synthesizer.context",
            source_count=len(sources),
            sources=format_sources(top_sources, content_chars=settings.synthesis_source_chars),
            plan_summary=plan_summary,
        )
        active_client = self.client or llm_client()
        t0 = time.monotonic()
        response = await active_client.messages.create(
            model=self.model,
            max_tokens=settings.synthesis_max_tokens,
            system=render_prompt(
                "synthesizer.system",
                today=today.strftime("%B %d, %Y"),
                current_year=today.year,
            ),
            messages=[
                {"role": "user", "content": f"<context>\n{context}\n</context>"},
                {"role": "assistant", "content": render_prompt("synthesizer.context_ack")},
                {"role": "user", "content": render_prompt("synthesizer.instruction", prompt=prompt)},
            ],
            temperature=0.3,
        )
        usage = getattr(response, "usage", None)
        log_service.log_llm_call(
            model=self.model,
            caller="synthesizer",
            input_tokens=getattr(usage, "input_tokens", 0) or 0,
            output_tokens=getattr(usage, "output_tokens", 0) or 0,
            duration_ms=int((time.monotonic() - t0) * 1000),
        )

        report = extract_text(response)
        if not report:
            raise SynthesisError("synthesis returned an empty report")
        return report

    async def synthesize(self, prompt: str, sources: list[SearchResult], plan_summary: str) -> tuple[str, bool]:
        """Return (report text, degraded). Never raises."""
        try:
            report = await self._generate(prompt, sources, plan_summary)
        except Exception as e:
            log_service.log_fallback("synthesis", e, model=self.model, sources=len(sources))
            return fallback_report(prompt, sources), True

        misplaced = find_reference_headings(report)
        if misplaced:
            log_service.logger.warning("Synthesized report groups citations under %s", misplaced)
        uncited = uncited_paragraphs(report)
        if uncited:
            log_service.logger.warning(
                "Synthesized report has %d paragraph(s) without inline citations", len(uncited)
            )
        return report, False
