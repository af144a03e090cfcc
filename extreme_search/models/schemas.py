from __future__ import annotations

from pydantic import BaseModel


# --- Requests ---


class ResearchRequest(BaseModel):
    prompt: str
    model: str | None = None
