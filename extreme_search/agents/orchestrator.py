from __future__ import annotations

import asyncio
import time
import uuid
from typing import Any, AsyncGenerator

from extreme_search.agents.planner import ResearchPlanner
from extreme_search.agents.research_agent import ResearchAgent
from extreme_search.agents.synthesizer import Synthesizer
from extreme_search.config import settings
from extreme_search.exceptions import EmptyPromptError
from extreme_search.llm_client import get_model
from extreme_search.models.events import SSEEvent
from extreme_search.models.research import (
    ResearchPlan,
    ResearchReport,
    SearchResult,
    ToolCallRecord,
)
from extreme_search.services import logger as log_service
from extreme_search.services import streaming
from extreme_search.services.dedupe import dedupe_sources
from extreme_search.services.progress import ProgressEmitter
from extreme_search.tools import search_provider
from extreme_search.tools.web_utils import clip

DIRECT_SEARCH_NOTE = "Research completed using direct search fallback due to connectivity issues."


class ResearchOrchestrator:
    """Runs one research request end to end.

    Flow:
      1. Plan the research (template plan if the planner model fails)
      2. Execute the plan with the tool-calling agent
         (direct parallel searches if the agent fails)
      3. Deduplicate the accumulated sources
      4. Synthesize a cited report (source digest if synthesis fails)

    Progress goes to `self.emitter`; the report is the return value of `run`.
    """

    def __init__(
        self,
        model: str | None = None,
        emitter: ProgressEmitter | None = None,
        request_id: str | None = None,
    ):
        self.model = model or get_model()
        self.emitter = emitter or ProgressEmitter()
        self.request_id = request_id or uuid.uuid4().hex
        self.planner = ResearchPlanner(model=self.model, emitter=self.emitter)
        self.synthesizer = Synthesizer(model=self.model)
        self.client = None

    def _agent(self, plan: ResearchPlan) -> ResearchAgent:
        agent = ResearchAgent(plan, model=self.model, emitter=self.emitter)
        agent.client = self.client
        return agent

    def _step(self, step_type: str, status: str, **data: Any) -> None:
        log_service.log_research_step(self.request_id, step_type, status, data or None)

    async def _direct_search(self, plan: ResearchPlan) -> list[SearchResult]:
        """Search every planned query without model mediation."""
        semaphore = asyncio.Semaphore(max(int(settings.max_parallel_searches), 1))

        async def run_one(query: str) -> list[SearchResult]:
            async with semaphore:
                response = await search_provider.search(query)
            return response.results

        queries = plan.queries
        for query in queries:
            self.emitter.emit(streaming.status(f'Direct search for "{query}"'))

        outcomes = await asyncio.gather(*(run_one(q) for q in queries), return_exceptions=True)

        collected: list[SearchResult] = []
        for query, outcome in zip(queries, outcomes):
            if isinstance(outcome, BaseException):
                log_service.logger.warning("Direct search failed for %r: %s", query, outcome)
                self.emitter.emit(streaming.thinking(f'Search failed for "{query}"'))
                continue
            collected.extend(outcome)
            self.emitter.emit(streaming.thinking(f'Found {len(outcome)} sources for "{query}"'))
        return collected

    async def run(self, prompt: str) -> ResearchReport:
        if not prompt or not prompt.strip():
            raise EmptyPromptError("Research prompt must not be empty")

        started_at = time.monotonic()
        degraded: list[str] = []
        sources: list[SearchResult] = []
        tool_results: list[ToolCallRecord] = []
        charts: list[dict[str, Any]] = []

        self.emitter.emit(streaming.status("Beginning autonomous research"))
        self.emitter.emit(streaming.status("Planning research"))
        self._step("plan", "started")

        plan = await self.planner.plan(prompt)
        if plan.fallback:
            degraded.append("plan")
        self._step("plan", "completed", sections=len(plan.sections), fallback=plan.fallback)

        self.emitter.emit(
            streaming.status(
                "Research plan ready, starting up research agent",
                plan=[section.model_dump() for section in plan.sections],
            )
        )
        self.emitter.emit(
            streaming.status(
                f"Starting systematic research execution - {plan.total_queries} searches planned"
            )
        )

        agent = self._agent(plan)
        try:
            agent_text, tool_results = await agent.execute(prompt)
            sources.extend(agent.sources)
            charts = agent.charts
            self._step("execute", "completed", steps=agent.steps_taken, tool_calls=len(tool_results))
        except Exception as e:
            log_service.log_fallback("execute", e, model=self.model, steps=agent.steps_taken)
            self.emitter.emit(
                streaming.status("Using direct search fallback due to API connectivity issues")
            )
            degraded.append("execute")
            # Work finished before the failure is kept.
            tool_results = list(agent.records)
            sources.extend(agent.sources)
            charts = agent.charts
            sources.extend(await self._direct_search(plan))
            agent_text = DIRECT_SEARCH_NOTE
            self._step("execute", "fallback", sources=len(sources))
        log_service.logger.debug("Agent final text: %s", agent_text[:500])

        self.emitter.emit(streaming.status("Synthesizing research findings..."))
        self.emitter.emit(
            streaming.thinking(
                f"Analyzing {len(sources)} sources and compiling comprehensive research report..."
            )
        )
        unique_sources = dedupe_sources(sources)
        log_service.logger.info(
            "Total sources found: %d, unique sources: %d", len(sources), len(unique_sources)
        )

        self.emitter.emit(streaming.status("Synthesizing comprehensive research report"))
        report_text, synthesis_degraded = await self.synthesizer.synthesize(
            prompt, unique_sources, plan.summary()
        )
        if synthesis_degraded:
            degraded.append("synthesis")
        self.emitter.emit(streaming.status("Research synthesis completed"))
        self._step(
            "synthesis",
            "completed",
            degraded=degraded,
            runtime_ms=int((time.monotonic() - started_at) * 1000),
        )

        return ResearchReport(
            text=report_text,
            sources=[
                source.model_copy(
                    update={"content": clip(source.content, settings.report_source_chars)}
                )
                for source in unique_sources
            ],
            tool_results=tool_results,
            charts=charts,
            plan=plan,
            degraded_stages=degraded,
        )

    async def _run_and_close(self, prompt: str) -> ResearchReport:
        try:
            return await self.run(prompt)
        finally:
            self.emitter.close()

    async def research(self, prompt: str) -> AsyncGenerator[SSEEvent, None]:
        """Run the pipeline, yielding progress events as they are produced.

        The last event is `research_complete` with the serialized report.
        """
        task = asyncio.create_task(self._run_and_close(prompt))
        try:
            async for event in self.emitter.stream():
                yield event
            report = await task
        finally:
            if not task.done():
                task.cancel()
        yield streaming.research_complete(report.model_dump(mode="json"))


async def run_research(
    prompt: str,
    *,
    model: str | None = None,
    emitter: ProgressEmitter | None = None,
) -> ResearchReport:
    """Entry point used by the chat tool layer."""
    return await ResearchOrchestrator(model=model, emitter=emitter).run(prompt)
