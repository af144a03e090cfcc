from __future__ import annotations

import json
from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class EventType(str, Enum):
    STATUS = "status"
    THINKING = "thinking"
    SEARCH_QUERY = "search_query"
    SOURCE = "source"
    CONTENT = "content"
    RESEARCH_COMPLETE = "research_complete"
    ERROR = "error"


@dataclass(frozen=True)
class SSEEvent:
    event: EventType
    data: dict[str, Any] = field(default_factory=dict)

    def to_sse(self) -> dict[str, str]:
        """Payload shape accepted by ``EventSourceResponse``."""
        return {"event": self.event.value, "data": json.dumps(self.data)}
