from __future__ import annotations

import logging

import pytest

from helpers import FakeLLM, text_response
from extreme_search.agents.synthesizer import (
    CITATION_RE,
    DEGRADED_NOTE,
    Synthesizer,
    fallback_report,
    find_reference_headings,
    uncited_paragraphs,
)
from extreme_search.config import settings
from extreme_search.models.research import SearchResult

SOURCES = [
    SearchResult(url=f"https://site{i}.com/a", title=f"Source number {i}", content=f"content {i} " * 100)
    for i in range(1, 13)
]

GOOD_REPORT = (
    "# Fusion Energy in 2026\n\n## Executive Summary\n"
    "Tokamaks set new records [Source number 1](https://site1.com/a).\n"
)


def test_find_reference_headings():
    report = (
        "# Title\n## Key Findings\ntext\n## 5. References\n- a\n### Sources:\n"
        "## Further Reading\n## Sources of Funding\n"
    )

    assert find_reference_headings(report) == ["5. References", "Sources:", "Further Reading"]
    assert find_reference_headings(GOOD_REPORT) == []

# Reports written the way the synthesizer prompt asks: every body paragraph
# cites inline, no citation block at the end.
SEED_REPORTS = [
    GOOD_REPORT,
    (
        "# Solid-State Batteries: Status in 2026\n\n"
        "## Executive Summary\n\n"
        "Several manufacturers moved solid-state cells into pilot production this year "
        "[Pilot lines ramp up](https://news.example.com/ssb-pilot), while energy density "
        "gains remain modest at roughly 10-15% over liquid lithium-ion "
        "[Cell benchmarks 2026](https://labs.example.org/benchmarks).\n\n"
        "## 1. Manufacturing\n\n"
        "Dendrite suppression is still the main yield problem "
        "[Yield analysis](https://journal.example.edu/yield) and drives the cost gap.\n\n"
        "- Sulfide electrolytes dominate current pilots [Materials survey](https://survey.example.com/sulfide)\n"
        "- Oxide electrolytes trail on conductivity [Oxide review](https://review.example.com/oxide)\n\n"
        "## 2. Outlook\n\n"
        "| Metric | 2025 | 2026 |\n|---|---|---|\n"
        "| Pilot capacity (GWh) | 2 | 5 [Capacity tracker](https://tracker.example.com/gwh) |\n"
    ),
    (
        "# Coral Reef Bleaching\n\n"
        "### Key Findings\n"
        "Global bleaching affected over 80% of reef area between 2023 and 2025 "
        "[NOAA Coral Reef Watch](https://coralreefwatch.example.gov/2025).\n\n"
        "### Conclusion\n"
        "Recovery depends on marine heatwave frequency "
        "[Heatwave projections](https://climate.example.org/heatwaves).\n"
    ),
]


@pytest.mark.parametrize("report", SEED_REPORTS)
def test_seed_reports_cite_every_paragraph_inline(report):
    paragraphs = [
        block for block in report.split("\n\n")
        if block.strip() and not all(line.lstrip().startswith("#") for line in block.strip().splitlines())
    ]

    assert paragraphs
    for paragraph in paragraphs:
        assert CITATION_RE.search(paragraph), paragraph
    assert uncited_paragraphs(report) == []
    assert find_reference_headings(report) == []


def test_uncited_paragraphs_reports_bare_body_text():
    report = (
        "# Title\n\n## Overview\nFusion output doubled.\n\n"
        "Cited claim [Source](https://a.com/x).\n\n## References\n"
    )

    assert uncited_paragraphs(report) == ["Fusion output doubled."]


def test_fallback_report_lists_top_sources_with_marker():
    report = fallback_report("fusion energy", SOURCES)

    assert report.startswith("# Research Summary: fusion energy")
    assert DEGRADED_NOTE in report
    for source in SOURCES[: settings.fallback_report_sources]:
        assert f"[{source.title}]({source.url})" in report
    assert SOURCES[settings.fallback_report_sources].title not in report
    assert find_reference_headings(report) == []
    assert len(CITATION_RE.findall(report)) == settings.fallback_report_sources


def test_fallback_report_without_sources():
    report = fallback_report("fusion energy", [])

    assert "No sources could be retrieved" in report
    assert DEGRADED_NOTE in report


@pytest.mark.asyncio
async def test_synthesize_sends_top_sources_and_plan():
    synthesizer = Synthesizer(model="google/gemini-2.5-flash")
    synthesizer.client = FakeLLM(text_response(GOOD_REPORT))

    report, degraded = await synthesizer.synthesize("fusion energy", SOURCES, '1. Plan: "q"')

    assert report == GOOD_REPORT.strip()
    assert degraded is False
    call = synthesizer.client.calls[0]
    assert call["temperature"] == 0.3
    context = call["messages"][0]["content"]
    assert "Source number 10" in context
    assert "Source number 11" not in context
    assert '1. Plan: "q"' in context
    assert 'fusion energy' in call["messages"][2]["content"]


@pytest.mark.asyncio
@pytest.mark.parametrize("outcome", [TimeoutError("llm timed out"), text_response("")])
async def test_synthesize_falls_back_to_source_digest(outcome):
    synthesizer = Synthesizer()
    synthesizer.client = FakeLLM(outcome)

    report, degraded = await synthesizer.synthesize("fusion energy", SOURCES, "")

    assert degraded is True
    assert DEGRADED_NOTE in report
    assert "Source number 1" in report


def test_synthesis_model_override(monkeypatch):
    monkeypatch.setattr(settings, "synthesis_model", "anthropic/claude-sonnet-4")

    assert Synthesizer(model="google/gemini-2.5-flash").model == "anthropic/claude-sonnet-4"


@pytest.mark.asyncio
async def test_synthesize_warns_about_uncited_paragraphs(caplog):
    synthesizer = Synthesizer()
    synthesizer.client = FakeLLM(
        text_response("# Fusion\n\nTokamaks set records.\n\n## Sources\n- https://site1.com/a\n")
    )

    with caplog.at_level(logging.WARNING, logger="extreme_search"):
        report, degraded = await synthesizer.synthesize("fusion energy", SOURCES, "")

    assert degraded is False
    assert report.startswith("# Fusion")
    messages = [record.getMessage() for record in caplog.records]
    assert "Synthesized report has 2 paragraph(s) without inline citations" in messages
    assert any("groups citations under ['Sources']" in m for m in messages)


@pytest.mark.asyncio
async def test_synthesize_does_not_warn_for_inline_citations(caplog):
    synthesizer = Synthesizer()
    synthesizer.client = FakeLLM(text_response(SEED_REPORTS[1]))

    with caplog.at_level(logging.WARNING, logger="extreme_search"):
        await synthesizer.synthesize("solid-state batteries", SOURCES, "")

    assert not [r for r in caplog.records if "without inline citations" in r.getMessage()]
