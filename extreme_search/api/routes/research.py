from __future__ import annotations

from fastapi import APIRouter, HTTPException
from sse_starlette.sse import EventSourceResponse

from extreme_search.agents.orchestrator import ResearchOrchestrator
from extreme_search.exceptions import ExtremeSearchError
from extreme_search.llm_client import get_model, supports_tools
from extreme_search.models.schemas import ResearchRequest
from extreme_search.services import logger as log_service
from extreme_search.services import streaming

router = APIRouter(prefix="/api/research", tags=["research"])


@router.post("/extreme")
async def extreme_research(request: ResearchRequest):
    """Run autonomous research and stream progress events over SSE.

    The final event is `research_complete` carrying the report, sources,
    tool results, and charts.
    """
    prompt = request.prompt.strip()
    if not prompt:
        raise HTTPException(status_code=400, detail="Research prompt must not be empty")

    model = request.model or get_model()
    if not supports_tools(model):
        raise HTTPException(
            status_code=400,
            detail=f"Model '{model}' does not support web search and tool calling",
        )

    async def event_generator():
        orchestrator = ResearchOrchestrator(model=model)
        log_service.log_event(
            event_type="research_started",
            message="Extreme research started",
            request_id=orchestrator.request_id,
            model=model,
            prompt=prompt[:100],
        )
        try:
            async for event in orchestrator.research(prompt):
                yield event.to_sse()
            log_service.log_event(
                event_type="research_finished",
                message="Extreme research finished",
                request_id=orchestrator.request_id,
                emitted=orchestrator.emitter.emitted,
                dropped=orchestrator.emitter.dropped,
            )
        except ExtremeSearchError as e:
            log_service.log_event(
                event_type="stream_error",
                message="Research request rejected",
                error=str(e),
                request_id=orchestrator.request_id,
            )
            yield streaming.error(str(e)).to_sse()
        except Exception as e:
            log_service.log_event(
                event_type="stream_error",
                message="Unhandled error in research stream",
                error=str(e),
                request_id=orchestrator.request_id,
            )
            yield streaming.error("Research stream failed unexpectedly.").to_sse()

    return EventSourceResponse(event_generator())
