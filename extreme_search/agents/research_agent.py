from __future__ import annotations

import json
from datetime import date
from typing import Any, Awaitable, Callable

from pydantic import ValidationError

from extreme_search.agents.base import BaseAgent, ToolRejected
from extreme_search.config import settings
from extreme_search.models.research import (
    CodeRunnerArgs,
    CodeRunnerCall,
    MAX_QUERY_CHARS,
    ContentResult,
    ResearchPlan,
    SearchCategory,
    SearchResult,
    ToolCallRecord,
    WebSearchArgs,
    WebSearchCall,
)
from extreme_search.services import streaming
from extreme_search.services.logger import logger
from extreme_search.services.progress import ProgressEmitter
from extreme_search.services.prompt_store import render_prompt
from extreme_search.tools import code_runner, search_provider

CONTENT_EXCERPT_CHARS = 300
TOOL_RESULT_CONTENT_CHARS = 1000


def merge_enriched(results: list[SearchResult], contents: list[ContentResult]) -> list[SearchResult]:
    """Swap each snippet for its fetched full text, keeping the snippet when none came back."""
    by_url = {c.url: c for c in contents}
    merged: list[SearchResult] = []
    for result in results:
        enriched = by_url.get(result.url)
        if enriched is None or not enriched.content.strip():
            merged.append(result)
            continue
        merged.append(
            result.model_copy(
                update={
                    "title": result.title or enriched.title,
                    "content": enriched.content,
                    "published_date": result.published_date or enriched.published_date,
                    "favicon": result.favicon or enriched.favicon,
                }
            )
        )
    return merged


class ResearchAgent(BaseAgent):
    """Executes a research plan through `webSearch` and `codeRunner` tool calls."""

    name = "research"
    tool_choice = "required"
    temperature = 0
    tools = [
        {
            "name": "webSearch",
            "description": "Search the web for information on a topic",
            "input_schema": {
                "type": "object",
                "properties": {
                    "query": {
                        "type": "string",
                        "maxLength": MAX_QUERY_CHARS,
                        "description": "The search query to achieve the todo",
                    },
                    "category": {
                        "type": "string",
                        "enum": [c.value for c in SearchCategory],
                        "description": "The category of the search if relevant",
                    },
                },
                "required": ["query"],
            },
        },
        {
            "name": "codeRunner",
            "description": "Run Python code in a sandbox",
            "input_schema": {
                "type": "object",
                "properties": {
                    "title": {
                        "type": "string",
                        "description": "The title of what you are running the code for",
                    },
                    "code": {
                        "type": "string",
                        "description": "The Python code to run with proper syntax and imports",
                    },
                },
                "required": ["title", "code"],
            },
        },
    ]

    def __init__(
        self,
        plan: ResearchPlan,
        model: str | None = None,
        emitter: ProgressEmitter | None = None,
    ):
        super().__init__(model, emitter=emitter)
        self.plan = plan
        self.max_tokens = settings.agent_max_tokens
        self.step_budget = min(plan.total_queries, max(int(settings.agent_max_steps), 1))
        self.records: list[ToolCallRecord] = []
        self.sources: list[SearchResult] = []
        self._handlers: dict[str, Callable[[dict[str, Any], str, int], Awaitable[str]]] = {
            "webSearch": self._web_search,
            "codeRunner": self._code_runner,
        }

    @property
    def system_prompt(self) -> str:
        today = date.today()
        return render_prompt(
            "agent.system",
            today=today.strftime("%B %d, %Y"),
            current_year=today.year,
            total_queries=self.plan.total_queries,
            query_list="\n".join(f'{idx}. "{q}"' for idx, q in enumerate(self.plan.queries, 1)),
        )

    @property
    def web_searches_done(self) -> int:
        return sum(1 for r in self.records if r.tool_name == "webSearch")

    @property
    def charts(self) -> list[dict[str, Any]]:
        return [
            chart
            for record in self.records
            if isinstance(record, CodeRunnerCall) and record.result is not None
            for chart in record.result.charts
        ]

    def should_stop(self) -> bool:
        return self.web_searches_done >= self.step_budget

    def on_step_finished(self, step_index: int) -> None:
        self.emitter.emit(
            streaming.thinking(f"Search {self.web_searches_done}/{self.plan.total_queries} complete")
        )

    async def handle_tool_call(
        self, tool_name: str, tool_input: dict[str, Any], *, tool_use_id: str, step_index: int
    ) -> str:
        handler = self._handlers.get(tool_name)
        if handler is None:
            raise ToolRejected(f"Unknown tool: {tool_name}")
        if tool_name == "webSearch" and self.should_stop():
            raise ToolRejected(
                f"Search budget of {self.step_budget} exhausted; stop calling tools."
            )
        return await handler(tool_input, tool_use_id, step_index)

    async def _web_search(self, tool_input: dict[str, Any], tool_use_id: str, step_index: int) -> str:
        try:
            args = WebSearchArgs.model_validate(tool_input)
        except ValidationError as e:
            raise ToolRejected(f"Invalid webSearch arguments: {e}") from e

        in_category = f" in {args.category.value} sources" if args.category else ""
        self.emitter.emit(
            streaming.thinking(f'Searching for information about "{args.query}"{in_category}...')
        )
        self.emitter.emit(streaming.status(f'Searching the web for "{args.query}"'))
        self.emitter.emit(streaming.search_query(tool_use_id, args.query))

        try:
            response = await search_provider.search(args.query, category=args.category)
            results = response.results
        except Exception as e:
            # One failed query must not abort the plan.
            logger.warning("Search failed for query %r: %s", args.query, e)
            results = []

        self.emitter.emit(
            streaming.thinking(f"Found {len(results)} relevant sources. Analyzing content...")
        )
        for result in results:
            self.emitter.emit(streaming.source(tool_use_id, result.title, result.url))

        if results:
            self.emitter.emit(
                streaming.status(f'Reading content from search results for "{args.query}"')
            )
            contents = await search_provider.get_contents([r.url for r in results])
            titles = {r.url: r.title for r in results}
            for item in contents:
                self.emitter.emit(
                    streaming.content(
                        tool_use_id,
                        item.title or titles.get(item.url, ""),
                        item.url,
                        item.content[:CONTENT_EXCERPT_CHARS] + "...",
                    )
                )
            results = merge_enriched(results, contents)

        self.records.append(WebSearchCall(step_index=step_index, arguments=args, result=results))
        self.sources.extend(results)

        if not results:
            return f"No results found for '{args.query}'."
        return f"Found {len(results)} results for '{args.query}':\n" + "\n".join(
            f"- [{r.title}]({r.url}) ({r.published_date or 'date unknown'}): "
            f"{r.content[:TOOL_RESULT_CONTENT_CHARS]}"
            for r in results
        )

    async def _code_runner(self, tool_input: dict[str, Any], tool_use_id: str, step_index: int) -> str:
        try:
            args = CodeRunnerArgs.model_validate(tool_input)
        except ValidationError as e:
            raise ToolRejected(f"Invalid codeRunner arguments: {e}") from e

        self.emitter.emit(streaming.status(args.title, type="code", code=args.code))
        try:
            output = await code_runner.run_code(args.code)
        except Exception as e:
            logger.warning("Code run %r failed: %s", args.title, e)
            self.records.append(CodeRunnerCall(step_index=step_index, arguments=args, error=str(e)))
            raise

        self.emitter.emit(
            streaming.status(
                args.title,
                type="result",
                code=args.code,
                result=output.result,
                charts=output.charts,
            )
        )
        self.records.append(CodeRunnerCall(step_index=step_index, arguments=args, result=output))
        return json.dumps({"result": output.result, "charts": output.charts})

    async def execute(self, prompt: str) -> tuple[str, list[ToolCallRecord]]:
        text = await self.run(prompt, max_steps=self.step_budget)
        return text, list(self.records)
