from __future__ import annotations

from pydantic import BaseModel


class LLMResponse(BaseModel):
    """Raw completion plus the usage figures needed for cost logging."""
    content: str
    input_tokens: int
    output_tokens: int
    model: str
    provider: str
    finish_reason: str | None = None  # "length" means the output was cut off
