from __future__ import annotations

import json
import time
from datetime import date
from typing import Any

from extreme_search.config import settings
from extreme_search.exceptions import PlannerError
from extreme_search.llm_client import client as llm_client, extract_text, get_model
from extreme_search.models.research import MAX_QUERY_CHARS, PlanSection, ResearchPlan
from extreme_search.services import logger as log_service
from extreme_search.services import streaming
from extreme_search.services.progress import ProgressEmitter
from extreme_search.services.prompt_store import render_prompt

TITLE_MAX = 70

# (title prefix, query template) per fallback section
FALLBACK_SECTIONS = (
    ("Core concepts and fundamentals of", "{topic} definition fundamentals basics {year}"),
    ("Current research and developments in", "{topic} latest research {year} current developments"),
    ("Applications and practical aspects of", "{topic} applications real world examples uses {year}"),
)


def _shorten(text: str, limit: int) -> str:
    """Collapse whitespace and cut at a word boundary within limit characters."""
    text = " ".join(text.split())
    if len(text) <= limit:
        return text
    cut = text[:limit]
    if " " in cut and not text[limit].isspace():
        cut = cut.rsplit(" ", 1)[0]
    return cut.rstrip(" ,.;:-")


def fallback_plan(prompt: str, current_date: date | None = None) -> ResearchPlan:
    """Three-section template plan built from the prompt text alone."""
    year = (current_date or date.today()).year
    sections = []
    for prefix, query_template in FALLBACK_SECTIONS:
        topic = _shorten(prompt, TITLE_MAX - len(prefix) - 1)
        title = f"{prefix} {topic}".strip()
        # the topic gets whatever the template leaves of the query limit
        topic_limit = MAX_QUERY_CHARS - len(query_template.format(topic="", year=year))
        query = query_template.format(topic=_shorten(prompt, topic_limit), year=year).strip()
        sections.append(PlanSection(title=title, queries=[query]))
    return ResearchPlan(sections=sections, fallback=True)


def extract_json_object(raw_text: str) -> dict[str, Any]:
    text = raw_text.strip()
    if text.startswith("```"):
        parts = text.split("```")
        if len(parts) >= 2:
            text = parts[1]
        if text.startswith("json"):
            text = text[4:]
        text = text.strip()
    start = text.find("{")
    end = text.rfind("}")
    if start < 0 or end <= start:
        raise json.JSONDecodeError("object not found", text, 0)
    parsed = json.loads(text[start : end + 1])
    if not isinstance(parsed, dict):
        raise json.JSONDecodeError("not an object", text, 0)
    return parsed


class ResearchPlanner:
    """Turns a free-text prompt into a 2-3 section plan with one query each."""

    name = "planner"

    def __init__(self, model: str | None = None, emitter: ProgressEmitter | None = None):
        planner_override = settings.planner_model.strip()
        self.model = planner_override or model or get_model()
        self.emitter = emitter or ProgressEmitter()
        self.client = None

    async def _generate(self, prompt: str, current_date: date) -> ResearchPlan:
        active_client = self.client or llm_client()
        values = {
            "today": current_date.strftime("%B %d, %Y"),
            "current_year": current_date.year,
        }
        t0 = time.monotonic()
        response = await active_client.messages.create(
            model=self.model,
            max_tokens=2048,
            system=render_prompt("planner.system", **values),
            messages=[{"role": "user", "content": render_prompt("planner.user", prompt=prompt, **values)}],
            json_mode=True,
        )
        usage = getattr(response, "usage", None)
        log_service.log_llm_call(
            model=self.model,
            caller="planner",
            input_tokens=getattr(usage, "input_tokens", 0) or 0,
            output_tokens=getattr(usage, "output_tokens", 0) or 0,
            duration_ms=int((time.monotonic() - t0) * 1000),
        )

        text = extract_text(response)
        if not text:
            raise PlannerError("planner returned no text")
        try:
            return ResearchPlan.model_validate(extract_json_object(text))
        except ValueError as e:
            # json.JSONDecodeError and pydantic.ValidationError are both ValueErrors.
            raise PlannerError(f"planner output rejected: {e}") from e

    async def plan(self, prompt: str, current_date: date | None = None) -> ResearchPlan:
        current_date = current_date or date.today()
        try:
            return await self._generate(prompt, current_date)
        except Exception as e:
            log_service.log_fallback("planner", e, model=self.model)
            self.emitter.emit(
                streaming.status("Using fallback research plan due to API connectivity issues")
            )
            return fallback_plan(prompt, current_date)
