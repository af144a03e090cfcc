"""Fake model responses shared by the agent and pipeline tests."""

from __future__ import annotations

from typing import Any

from extreme_search.llm_client import MessageResponse, TextBlock, ToolUseBlock, Usage


def text_response(text: str) -> MessageResponse:
    return MessageResponse(content=[TextBlock(type="text", text=text)], usage=Usage(10, 20))


def tool_response(*calls: tuple[str, str, dict[str, Any]], text: str = "") -> MessageResponse:
    """Build a response requesting tools; each call is (id, name, input)."""
    content: list[Any] = [TextBlock(type="text", text=text)] if text else []
    content.extend(
        ToolUseBlock(type="tool_use", id=call_id, name=name, input=tool_input)
        for call_id, name, tool_input in calls
    )
    return MessageResponse(content=content, usage=Usage(10, 20))


class FakeMessages:
    def __init__(self, responses: list[Any]):
        self.responses = list(responses)
        self.calls: list[dict[str, Any]] = []

    async def create(self, **kwargs: Any) -> Any:
        self.calls.append(kwargs)
        if not self.responses:
            raise AssertionError("unexpected model call")
        item = self.responses.pop(0)
        if isinstance(item, BaseException):
            raise item
        return item


class FakeLLM:
    def __init__(self, *responses: Any):
        self.messages = FakeMessages(list(responses))

    @property
    def calls(self) -> list[dict[str, Any]]:
        return self.messages.calls
