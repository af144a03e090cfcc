from __future__ import annotations

import time
from enum import Enum
from typing import Any

from extreme_search.llm_client import client as llm_client, extract_text, get_model
from extreme_search.services import logger as log_service
from extreme_search.services.progress import ProgressEmitter


class AgentState(str, Enum):
    IDLE = "idle"
    STEPPING = "stepping"
    TOOL_INVOKED = "tool_invoked"
    OBSERVED = "observed"
    FINISHED = "finished"
    ABORTED = "aborted"


class ToolRejected(Exception):
    """A tool call that is answered with an error result instead of running."""


class BaseAgent:
    """Bounded tool-use loop over the OpenRouter messages adapter.

    Subclasses define `system_prompt`, `tools`, and `handle_tool_call`.
    Each step is one model call; the tool calls it requests run one after
    another and their results are fed back before the next step. The loop
    ends when the model answers without tools, when `should_stop` says so,
    or when `max_steps` is reached.
    """

    name: str = "base"
    system_prompt: str = ""
    tools: list[dict[str, Any]] = []
    tool_choice: str = "auto"
    temperature: float | None = 0
    max_tokens: int = 4096

    def __init__(self, model: str | None = None, emitter: ProgressEmitter | None = None):
        self.model = model or get_model()
        self.emitter = emitter or ProgressEmitter()
        self.client = None
        self.state = AgentState.IDLE
        self.steps_taken = 0
        self._final_text = ""

    async def handle_tool_call(
        self, tool_name: str, tool_input: dict[str, Any], *, tool_use_id: str, step_index: int
    ) -> str:
        """Execute a tool call and return the text fed back to the model.

        Must be overridden by subclasses that define tools.
        """
        raise NotImplementedError(f"Tool {tool_name} not handled")

    def should_stop(self) -> bool:
        return False

    def on_step_finished(self, step_index: int) -> None:
        pass

    async def _log_call(self, response: Any, elapsed_ms: int) -> None:
        try:
            usage = getattr(response, "usage", None)
            log_service.log_llm_call(
                model=self.model,
                caller=self.name,
                input_tokens=getattr(usage, "input_tokens", 0) or 0,
                output_tokens=getattr(usage, "output_tokens", 0) or 0,
                duration_ms=elapsed_ms,
            )
        except Exception as e:
            # Never break agent execution because logging failed.
            log_service.logger.debug("Failed to log LLM call in %s: %s", self.name, e)

    async def run(self, user_message: str, *, max_steps: int = 10) -> str:
        """Run the loop and return the model's final text.

        Errors from the model call propagate; the agent is left ABORTED.
        """
        messages: list[dict[str, Any]] = [{"role": "user", "content": user_message}]
        self.state = AgentState.STEPPING

        try:
            for step_index in range(max(max_steps, 0)):
                if self.should_stop():
                    break

                active_client = self.client or llm_client()
                kwargs: dict[str, Any] = {
                    "model": self.model,
                    "max_tokens": self.max_tokens,
                    "system": self.system_prompt,
                    "messages": messages,
                    "temperature": self.temperature,
                }
                if self.tools:
                    kwargs["tools"] = self.tools
                    kwargs["tool_choice"] = self.tool_choice

                t0 = time.monotonic()
                response = await active_client.messages.create(**kwargs)
                await self._log_call(response, int((time.monotonic() - t0) * 1000))
                self.steps_taken += 1

                tool_use_blocks = [b for b in response.content if b.type == "tool_use"]
                text = extract_text(response)
                if text:
                    self._final_text = text

                if not tool_use_blocks:
                    break

                messages.append({"role": "assistant", "content": response.content})

                tool_results = []
                for tool_block in tool_use_blocks:
                    self.state = AgentState.TOOL_INVOKED
                    try:
                        result_text = await self.handle_tool_call(
                            tool_block.name,
                            tool_block.input,
                            tool_use_id=tool_block.id,
                            step_index=step_index,
                        )
                        tool_results.append({
                            "type": "tool_result",
                            "tool_use_id": tool_block.id,
                            "content": result_text,
                        })
                    except Exception as e:
                        tool_results.append({
                            "type": "tool_result",
                            "tool_use_id": tool_block.id,
                            "content": f"Error: {e}",
                            "is_error": True,
                        })
                    self.state = AgentState.OBSERVED

                messages.append({"role": "user", "content": tool_results})
                self.on_step_finished(step_index)
                self.state = AgentState.STEPPING
        except BaseException:
            self.state = AgentState.ABORTED
            raise

        self.state = AgentState.FINISHED
        return self._final_text
